"""Tests for the collection cache lifecycle and fallback behavior."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeProvider
from nftpersona.collectors.gateway import CollectionGateway
from nftpersona.core.cache import FALLBACK_COLLECTIONS, CacheState, CollectionCache
from nftpersona.core.models import CacheSource

ADDRS = ["0x1111aaaa", "0x2222bbbb"]


def make_cache(provider: FakeProvider) -> CollectionCache:
    return CollectionCache(CollectionGateway(provider, ADDRS, fetch_delay=0))


@pytest.mark.asyncio
async def test_load_fetches_once_and_reuses_the_same_list() -> None:
    provider = FakeProvider()
    cache = make_cache(provider)
    assert cache.state is CacheState.EMPTY

    first = await cache.load()
    second = await cache.load()

    assert first.source is CacheSource.LIVE
    assert second.source is CacheSource.CACHED
    assert second.collections is first.collections
    assert provider.count("metadata") == len(ADDRS)
    assert provider.count("block_number") == 1
    assert cache.state is CacheState.POPULATED


@pytest.mark.asyncio
async def test_clear_resets_and_allows_a_new_fetch() -> None:
    provider = FakeProvider()
    cache = make_cache(provider)
    await cache.load()
    cache.clear()

    assert cache.state is CacheState.EMPTY
    assert cache.collections == []

    await cache.load()
    assert provider.count("metadata") == 2 * len(ADDRS)


@pytest.mark.asyncio
async def test_unreachable_gateway_falls_back_to_static_set() -> None:
    provider = FakeProvider(reachable=False)
    cache = make_cache(provider)

    loaded = await cache.load()

    assert loaded.source is CacheSource.FALLBACK
    assert loaded.error == "Shape Network connection failed"
    assert loaded.collections == list(FALLBACK_COLLECTIONS)
    assert len(loaded.collections) >= 3
    assert provider.count("metadata") == 0
    assert cache.state is CacheState.POPULATED


@pytest.mark.asyncio
async def test_unexpected_error_during_fetch_falls_back() -> None:
    class Exploding(CollectionGateway):
        async def fetch_all(self, on_progress=None):
            raise RuntimeError("boom")

    cache = CollectionCache(Exploding(FakeProvider(), ADDRS, fetch_delay=0))
    loaded = await cache.load()

    assert loaded.source is CacheSource.FALLBACK
    assert loaded.error == "boom"
    assert cache.state is CacheState.POPULATED


@pytest.mark.asyncio
async def test_progress_is_remapped_into_the_configured_range() -> None:
    seen: list[float] = []

    async def record(progress: float, status: str) -> None:
        seen.append(progress)

    cache = CollectionCache(
        CollectionGateway(FakeProvider(), ADDRS, fetch_delay=0), progress_start=10, progress_end=95,
    )
    await cache.load(record)

    assert seen == sorted(seen)
    assert seen[0] == 5
    assert seen[-1] == 100
    # gateway's own 0..100 lands in 10..95
    assert 10 in seen and 95 in seen


@pytest.mark.asyncio
async def test_degraded_items_are_counted_but_kept() -> None:
    cache = make_cache(FakeProvider(failing={ADDRS[0]}))
    loaded = await cache.load()

    assert loaded.source is CacheSource.LIVE
    assert loaded.degraded_count == 1
    assert len(loaded.collections) == 2


@pytest.mark.asyncio
async def test_concurrent_loads_fetch_once() -> None:
    provider = FakeProvider()
    cache = make_cache(provider)

    results = await asyncio.gather(cache.load(), cache.load(), cache.load())

    assert provider.count("block_number") == 1
    assert all(r.collections is results[0].collections for r in results)
