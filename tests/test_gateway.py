"""Tests for the collection gateway: per-item failure isolation and progress."""

from __future__ import annotations

import pytest

from conftest import FakeProvider
from nftpersona.collectors.gateway import (
    SHAPE_COLLECTION_CONTRACTS,
    CollectionGateway,
    is_curated,
)
from nftpersona.core.models import ERROR_IMAGE, ContractMetadata

ADDRS = ["0x1111aaaa", "0x2222bbbb", "0x3333cccc"]


@pytest.mark.asyncio
async def test_fetch_one_builds_collection() -> None:
    provider = FakeProvider(
        metadata={ADDRS[0]: ContractMetadata(name="Alpha", symbol="ALP", total_supply=100, image_url="ipfs://img")},
        owners={ADDRS[0]: ["0xa", "0xb", "0xc"]},
    )
    result = await CollectionGateway(provider, ADDRS, fetch_delay=0).fetch_one(ADDRS[0])

    assert result.degraded is False
    c = result.collection
    assert (c.name, c.symbol, c.total_supply, c.owners) == ("Alpha", "ALP", 100, 3)
    assert c.image == "ipfs://img"
    assert c.open_sea_url.endswith(ADDRS[0])


@pytest.mark.asyncio
async def test_fetch_one_uses_placeholder_image_when_missing() -> None:
    provider = FakeProvider(metadata={ADDRS[0]: ContractMetadata(name="No Image")})
    result = await CollectionGateway(provider, ADDRS, fetch_delay=0).fetch_one(ADDRS[0])
    assert result.collection.image == "https://via.placeholder.com/300x300?text=No+Image"


@pytest.mark.asyncio
async def test_fetch_one_degrades_on_provider_failure() -> None:
    provider = FakeProvider(failing={ADDRS[1]})
    result = await CollectionGateway(provider, ADDRS, fetch_delay=0).fetch_one(ADDRS[1])

    assert result.degraded is True
    assert "failed" in result.error
    c = result.collection
    assert c.name == "Unknown Collection (0x2222...)"
    assert c.name.startswith("Unknown Collection (")
    assert c.symbol is None and c.total_supply is None and c.owners is None
    assert c.image == ERROR_IMAGE
    assert c.contract_address == ADDRS[1]


@pytest.mark.asyncio
async def test_fetch_one_degrades_on_unexpected_exception() -> None:
    class Broken(FakeProvider):
        async def get_owners(self, address: str) -> list[str]:
            raise TimeoutError("slow upstream")

    result = await CollectionGateway(Broken(), ADDRS, fetch_delay=0).fetch_one(ADDRS[0])
    assert result.degraded is True
    assert result.error == "slow upstream"


@pytest.mark.asyncio
async def test_fetch_all_keeps_order_and_isolates_failures() -> None:
    provider = FakeProvider(failing={ADDRS[1]})
    results = await CollectionGateway(provider, ADDRS, fetch_delay=0).fetch_all()

    assert [r.collection.contract_address for r in results] == ADDRS
    assert [r.degraded for r in results] == [False, True, False]


@pytest.mark.asyncio
async def test_fetch_all_returns_every_item_even_when_all_degrade() -> None:
    provider = FakeProvider(failing=set(ADDRS))
    results = await CollectionGateway(provider, ADDRS, fetch_delay=0).fetch_all()
    assert len(results) <= len(ADDRS)
    assert all(r.degraded for r in results)


@pytest.mark.asyncio
async def test_fetch_all_progress_is_monotonic_and_ends_at_100() -> None:
    seen: list[tuple[float, str]] = []

    async def record(progress: float, status: str) -> None:
        seen.append((progress, status))

    await CollectionGateway(FakeProvider(), ADDRS, fetch_delay=0).fetch_all(record)

    values = [p for p, _ in seen]
    assert values == sorted(values)
    assert values[0] == 0
    assert values[-1] == 100
    assert all(0 <= p <= 100 for p in values)
    assert seen[-1][1] == "Loaded 3 collections!"


@pytest.mark.asyncio
async def test_check_connection() -> None:
    assert await CollectionGateway(FakeProvider()).check_connection() is True
    assert await CollectionGateway(FakeProvider(reachable=False)).check_connection() is False


def test_default_contract_list() -> None:
    gateway = CollectionGateway(FakeProvider())
    assert len(gateway.contracts) == 16
    assert gateway.contracts == SHAPE_COLLECTION_CONTRACTS
    assert is_curated(SHAPE_COLLECTION_CONTRACTS[0].lower())
    assert not is_curated("0xdeadbeef")
