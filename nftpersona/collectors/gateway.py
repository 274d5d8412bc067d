"""Collection data gateway: curated Shape collections with per-item failure isolation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Sequence
from typing import Any

from nftpersona.core.models import (
    ERROR_IMAGE,
    Collection,
    CollectionFetch,
    placeholder_image,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], Coroutine[Any, Any, None]]

SHAPE_COLLECTION_CONTRACTS = [
    "0x6E148B55e4Cd30Ea6727d7E0661c3918A6C4E9Db",  # Almost Normal
    "0xdad1276ecd6d27116da400b33c81ce49d91d5831",  # Shape Punks
    "0x5fa1fdb5fe2c315abaad750dae700747f250b0c2",  # DEFAULT_STATE.EXE
    "0xab3a867a6b14cc2f3286b9f03698656f8a892e9e",  # COPE SALADA
    "0xf2e4b2a15872a20d0ffb336a89b94ba782ce9ba5",  # DeePle
    "0x3ea45cecbf513dfc8527b585cfbf0f474d130925",  # Arsonic Shape Editions
    "0xadede2a59b46ef9815e349464ea14d40195d4a2b",  # Shapets
    "0xa311e4ab8afea4f152da8f02a9d789c6d43fd1f3",  # Bullinus
    "0xf520f9297fc6f6ab186c911e41f715634d5a2de2",  # Shape Study
    "0xbb8f2711bd4bc98223990267f771e97d2d9bc167",  # Infinite Garden
    "0x4E454C9aBCaD9780F3569E494d7EdE3CB6575b01",  # The Shape Inside Any Space
    "0xb6d2a34815055f2844aeb69d3386c605208a96cb",  # Prismatic Daimonic Masks
    "0xe112Cf01c6cE916fFC2bDc350cC405E8357285DF",  # EVENT HORIZON
    "0xB33F463369c1C53B2fD9260877565d5624CCDDd9",  # whimsies
    "0x0c86384cbe928421b88ef6f3787afd9261d04346",  # Copy of Noodlz
    "0x758bb513346939825a2094a1d4fbd9135514d67e",  # Fragmented Order
]


def degraded_collection(address: str) -> Collection:
    return Collection(
        contract_address=address,
        name=f"Unknown Collection ({address[:6]}...)",
        image=ERROR_IMAGE,
    )


def is_curated(address: str) -> bool:
    return address.lower() in {c.lower() for c in SHAPE_COLLECTION_CONTRACTS}


class CollectionGateway:
    """Wraps the blockchain data provider for the curated collection list.

    ``provider`` is anything exposing ``get_contract_metadata``, ``get_owners``
    and ``get_block_number`` coroutines (see ``AlchemyClient``).
    """

    def __init__(
        self,
        provider: Any,
        contracts: Sequence[str] | None = None,
        fetch_delay: float = 0.1,
    ) -> None:
        self.provider = provider
        self.contracts = list(SHAPE_COLLECTION_CONTRACTS if contracts is None else contracts)
        self.fetch_delay = fetch_delay

    async def fetch_one(self, address: str) -> CollectionFetch:
        try:
            metadata, owners = await asyncio.gather(
                self.provider.get_contract_metadata(address),
                self.provider.get_owners(address),
            )
            collection = Collection(
                contract_address=address,
                name=metadata.name,
                symbol=metadata.symbol,
                total_supply=metadata.total_supply,
                owners=len(owners),
                image=metadata.image_url or placeholder_image(metadata.name),
            )
        except Exception as e:
            logger.warning("[gateway] fetch failed for %s: %s", address, e)
            return CollectionFetch(
                collection=degraded_collection(address), degraded=True, error=str(e),
            )

        logger.info(
            "[gateway] fetched %s (%s): supply=%s owners=%s",
            collection.name, collection.symbol, collection.total_supply, collection.owners,
        )
        return CollectionFetch(collection=collection)

    async def fetch_all(self, on_progress: ProgressCallback | None = None) -> list[CollectionFetch]:
        total = len(self.contracts)
        results: list[CollectionFetch] = []
        logger.info("[gateway] fetching %d collections", total)
        if on_progress:
            await on_progress(0, "Starting collection fetch...")

        for i, address in enumerate(self.contracts):
            result = await self.fetch_one(address)
            results.append(result)
            if on_progress:
                await on_progress(
                    round((i + 1) / total * 100),
                    f"Fetched collection {i + 1}/{total}: {result.collection.display_name}",
                )
            if self.fetch_delay and i < total - 1:
                await asyncio.sleep(self.fetch_delay)

        degraded = sum(1 for r in results if r.degraded)
        logger.info("[gateway] fetched %d/%d collections (%d degraded)", total - degraded, total, degraded)
        if on_progress:
            await on_progress(100, f"Loaded {len(results)} collections!")
        return results

    async def check_connection(self) -> bool:
        try:
            block = await self.provider.get_block_number()
        except Exception as e:
            logger.error("[gateway] Shape Network connection failed: %s", e)
            return False
        logger.info("[gateway] Shape Network connected, latest block %s", block)
        return True
