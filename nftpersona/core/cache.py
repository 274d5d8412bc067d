"""Process-wide collection cache: EMPTY -> LOADING -> POPULATED, write once."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from nftpersona.collectors.gateway import CollectionGateway, ProgressCallback
from nftpersona.core.exceptions import GatewayUnreachableError
from nftpersona.core.models import CacheLoad, CacheSource, Collection

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    POPULATED = "populated"


FALLBACK_COLLECTIONS: tuple[Collection, ...] = (
    Collection(
        contract_address="0x6E148B55e4Cd30Ea6727d7E0661c3918A6C4E9Db",
        name="Almost Normal",
        symbol="NORMAL",
        total_supply=2500,
        owners=800,
        image="https://via.placeholder.com/300x300?text=Almost+Normal",
        open_sea_url="https://opensea.io/collection/almost-normal",
        original_url="https://almostnormal.xyz",
    ),
    Collection(
        contract_address="0xdad1276ecd6d27116da400b33c81ce49d91d5831",
        name="Shape Punks",
        symbol="SPUNK",
        total_supply=1000,
        owners=600,
        image="https://via.placeholder.com/300x300?text=Shape+Punks",
        open_sea_url="https://opensea.io/collection/shape-punks",
        original_url="https://shapepunks.com",
    ),
    Collection(
        contract_address="0x5fa1fdb5fe2c315abaad750dae700747f250b0c2",
        name="DEFAULT_STATE.EXE",
        symbol="DSE",
        total_supply=500,
        owners=300,
        image="https://via.placeholder.com/300x300?text=DEFAULT_STATE",
        open_sea_url="https://opensea.io/collection/default-state-exe",
        original_url="https://defaultstate.xyz",
    ),
)


class CollectionCache:
    """Holds the curated collections for the lifetime of the process.

    The upstream batch fetch happens at most once per instance until
    ``clear()`` is called. Concurrent ``load()`` calls wait on a lock and
    then see the populated list. A failed probe or any error during the
    fetch stores ``FALLBACK_COLLECTIONS`` instead, so the cache always ends
    up POPULATED.
    """

    def __init__(
        self,
        gateway: CollectionGateway,
        progress_start: float = 10,
        progress_end: float = 95,
    ) -> None:
        self.gateway = gateway
        self.progress_start = progress_start
        self.progress_end = progress_end
        self.state = CacheState.EMPTY
        self._collections: list[Collection] = []
        self._source: CacheSource | None = None
        self._lock = asyncio.Lock()

    @property
    def collections(self) -> list[Collection]:
        return self._collections

    @property
    def source(self) -> CacheSource | None:
        return self._source

    @property
    def is_populated(self) -> bool:
        return self.state is CacheState.POPULATED

    async def load(self, on_progress: ProgressCallback | None = None) -> CacheLoad:
        if self.is_populated:
            logger.info("[cache] using cached collections (%d items)", len(self._collections))
            return CacheLoad(collections=self._collections, source=CacheSource.CACHED)

        async with self._lock:
            if self.is_populated:
                return CacheLoad(collections=self._collections, source=CacheSource.CACHED)
            self.state = CacheState.LOADING
            try:
                return await self._load_live(on_progress)
            except Exception as e:
                logger.warning("[cache] failed to load live collections, using fallback: %s", e)
                return await self._load_fallback(on_progress, str(e))
            finally:
                if self.state is CacheState.LOADING:
                    # cancelled mid-load
                    self.state = CacheState.EMPTY

    async def _load_live(self, on_progress: ProgressCallback | None) -> CacheLoad:
        await _emit(on_progress, 5, "Testing Shape Network connection...")
        if not await self.gateway.check_connection():
            raise GatewayUnreachableError("Shape Network connection failed")

        await _emit(on_progress, self.progress_start, "Fetching Shape Network collections...")
        span = self.progress_end - self.progress_start

        async def remap(progress: float, status: str) -> None:
            await _emit(on_progress, self.progress_start + progress * span / 100, status)

        fetched = await self.gateway.fetch_all(remap if on_progress else None)
        collections = [f.collection for f in fetched]
        self._store(collections, CacheSource.LIVE)
        await _emit(on_progress, 100, f"Loaded {len(collections)} collections!")
        return CacheLoad(
            collections=self._collections,
            source=CacheSource.LIVE,
            degraded_count=sum(1 for f in fetched if f.degraded),
        )

    async def _load_fallback(self, on_progress: ProgressCallback | None, error: str) -> CacheLoad:
        self._store(list(FALLBACK_COLLECTIONS), CacheSource.FALLBACK)
        await _emit(on_progress, 90, "Using fallback collections...")
        await _emit(on_progress, 100, "Fallback collections loaded")
        return CacheLoad(collections=self._collections, source=CacheSource.FALLBACK, error=error)

    def _store(self, collections: list[Collection], source: CacheSource) -> None:
        self._collections = collections
        self._source = source
        self.state = CacheState.POPULATED

    def clear(self) -> None:
        """Reset to EMPTY. Development and test use only."""
        self._collections = []
        self._source = None
        self.state = CacheState.EMPTY


async def _emit(on_progress: ProgressCallback | None, progress: float, status: str) -> None:
    if on_progress:
        await on_progress(progress, status)
