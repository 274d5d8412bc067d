"""Pytest fixtures and test doubles shared across nftpersona tests."""

from __future__ import annotations

import pytest

from nftpersona.analyzer.llm import TextGenerator
from nftpersona.core.exceptions import UpstreamDataError
from nftpersona.core.models import Collection, ContractMetadata, Transfer


# ── Test doubles ──────────────────────────────────────────────────────────────


def make_transfers(count: int, distinct: bool = True) -> list[Transfer]:
    """``count`` transfers; distinct=True gives every transfer its own from/to pair."""
    return [
        Transfer(
            from_address=f"0xfrom{i if distinct else 0}",
            to_address=f"0xto{i if distinct else 0}",
            block_num=hex(1000 + i),
        )
        for i in range(count)
    ]


class FakeProvider:
    """In-memory blockchain data provider with per-address failure injection."""

    def __init__(
        self,
        metadata: dict[str, ContractMetadata] | None = None,
        owners: dict[str, list[str]] | None = None,
        transfers: dict[str, list[Transfer]] | None = None,
        failing: set[str] | None = None,
        reachable: bool = True,
    ) -> None:
        self.metadata = metadata or {}
        self.owners = owners or {}
        self.transfers = transfers or {}
        self.failing = failing or set()
        self.reachable = reachable
        self.calls: list[tuple[str, str]] = []

    def _check(self, method: str, address: str) -> None:
        self.calls.append((method, address))
        if address in self.failing:
            raise UpstreamDataError(f"{method} failed for {address}")

    async def get_contract_metadata(self, address: str) -> ContractMetadata:
        self._check("metadata", address)
        return self.metadata.get(address, ContractMetadata(name=f"Collection {address[-4:]}"))

    async def get_owners(self, address: str) -> list[str]:
        self._check("owners", address)
        return self.owners.get(address, [])

    async def get_asset_transfers(self, address: str, max_count: int, order: str = "desc") -> list[Transfer]:
        self._check("transfers", address)
        return self.transfers.get(address, [])[:max_count]

    async def get_block_number(self) -> int:
        self.calls.append(("block_number", ""))
        if not self.reachable:
            raise ConnectionError("network down")
        return 123456

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)


class FakeGenerator(TextGenerator):
    """Returns a canned reply, or raises ``error`` when set."""

    def __init__(self, reply: str = "", error: Exception | None = None, configured: bool = True) -> None:
        self.reply = reply
        self.error = error
        self._configured = configured
        self.prompts: list[str] = []
        self.max_tokens: list[int | None] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def generate(self, prompt: str, max_tokens: int | None = None) -> str:
        self.prompts.append(prompt)
        self.max_tokens.append(max_tokens)
        if self.error:
            raise self.error
        return self.reply


# ── Data fixtures ─────────────────────────────────────────────────────────────


@pytest.fixture
def collections() -> list[Collection]:
    return [
        Collection(contract_address="0xAAA0000000000000000000000000000000000001", name="Alpha", symbol="ALP",
                   total_supply=1000, owners=400),
        Collection(contract_address="0xBBB0000000000000000000000000000000000002", name="Beta", symbol="BET",
                   total_supply=5000, owners=900),
        Collection(contract_address="0xCCC0000000000000000000000000000000000003", name="Gamma", symbol="GAM",
                   total_supply=300, owners=120),
    ]


@pytest.fixture
def collection(collections: list[Collection]) -> Collection:
    return collections[0]


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()
