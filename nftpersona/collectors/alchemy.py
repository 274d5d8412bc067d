"""Alchemy NFT API and JSON-RPC client for Shape mainnet."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from nftpersona.collectors.base import BaseClient
from nftpersona.core.exceptions import UpstreamDataError
from nftpersona.core.models import ContractMetadata, Transfer

logger = logging.getLogger(__name__)

NFT_API = "https://{network}.g.alchemy.com/nft/v3/{api_key}"
RPC_URL = "https://{network}.g.alchemy.com/v2/{api_key}"

# getOwnersForContract pages hold up to 50k owners
MAX_OWNER_PAGES = 10


class AlchemyClient(BaseClient):
    name = "alchemy"

    def __init__(self, config: dict, api_key: str = "") -> None:
        super().__init__(config)
        self.api_key = api_key
        network = config.get("network", "shape-mainnet")
        self.nft_url = NFT_API.format(network=network, api_key=api_key)
        self.rpc_url = RPC_URL.format(network=network, api_key=api_key)

    async def _nft_get(self, method: str, **params: Any) -> dict:
        try:
            resp = await self.debug_request("GET", f"{self.nft_url}/{method}", params=params)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamDataError(f"{method} failed: {e}", {"method": method}) from e
        if not isinstance(body, dict):
            raise UpstreamDataError(f"{method} returned {type(body).__name__}", {"method": method})
        return body

    async def _rpc(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            resp = await self.debug_request("POST", self.rpc_url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamDataError(f"{method} failed: {e}", {"method": method}) from e
        if not isinstance(body, dict):
            raise UpstreamDataError(f"{method} returned {type(body).__name__}", {"method": method})
        if body.get("error"):
            err = body["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            raise UpstreamDataError(f"{method} error: {message}", {"method": method})
        return body.get("result")

    async def get_contract_metadata(self, address: str) -> ContractMetadata:
        body = await self._nft_get(
            "getNFTsForContract",
            contractAddress=address, withMetadata="true", limit="10",
        )
        nfts = body.get("nfts")
        if not isinstance(nfts, list):
            raise UpstreamDataError("getNFTsForContract: missing nfts", {"address": address})
        if not nfts:
            return ContractMetadata()

        first = nfts[0] if isinstance(nfts[0], dict) else {}
        contract = first.get("contract") or {}
        image = first.get("image") or {}
        return ContractMetadata(
            name=contract.get("name") or None,
            symbol=contract.get("symbol") or None,
            total_supply=_int(contract.get("totalSupply")),
            image_url=image.get("originalUrl") or image.get("cachedUrl") or None,
        )

    async def get_owners(self, address: str) -> list[str]:
        owners: list[str] = []
        page_key: str | None = None
        for _ in range(MAX_OWNER_PAGES):
            params: dict[str, str] = {"contractAddress": address}
            if page_key:
                params["pageKey"] = page_key
            body = await self._nft_get("getOwnersForContract", **params)
            page = body.get("owners")
            if not isinstance(page, list):
                raise UpstreamDataError("getOwnersForContract: missing owners", {"address": address})
            owners.extend(o for o in page if isinstance(o, str))
            page_key = body.get("pageKey")
            if not page_key:
                break
        else:
            logger.warning("[alchemy] owner list for %s truncated at %d pages", address, MAX_OWNER_PAGES)
        return owners

    async def get_asset_transfers(
        self, address: str, max_count: int, order: str = "desc"
    ) -> list[Transfer]:
        result = await self._rpc("alchemy_getAssetTransfers", [{
            "fromBlock": "0x0",
            "toBlock": "latest",
            "contractAddresses": [address],
            "category": ["erc721"],
            "maxCount": hex(max_count),
            "order": order,
        }])
        transfers = result.get("transfers") if isinstance(result, dict) else None
        if not isinstance(transfers, list):
            raise UpstreamDataError("alchemy_getAssetTransfers: missing transfers", {"address": address})
        return [
            Transfer(
                from_address=t.get("from"),
                to_address=t.get("to"),
                block_num=t.get("blockNum"),
                hash=t.get("hash"),
                token_id=t.get("erc721TokenId") or t.get("tokenId"),
            )
            for t in transfers
            if isinstance(t, dict)
        ]

    async def get_block_number(self) -> int:
        from web3 import AsyncWeb3
        from web3.providers import AsyncHTTPProvider

        w3 = AsyncWeb3(AsyncHTTPProvider(
            self.rpc_url, request_kwargs={"timeout": self.timeout},
        ))
        return await w3.eth.block_number


def _int(v: str | int | None) -> int | None:
    if v is None:
        return None
    try:
        return int(v)
    except (ValueError, TypeError):
        return None
