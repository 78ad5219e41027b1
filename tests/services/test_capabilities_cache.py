from __future__ import annotations

import pytest

from clinidex.app.services.capabilities_cache import CapabilitiesCache
from clinidex.app.services.search_pipeline import StoreUnavailable


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(memory_store, clock) -> CapabilitiesCache:
    return CapabilitiesCache(memory_store, ttl=60.0, clock=clock)


@pytest.mark.anyio
async def test_snapshot_lists_distinct_values(cache):
    snapshot = await cache.get()

    assert snapshot.types == ("consensus", "guideline", "review")
    assert snapshot.regions == ("EU", "UK", "US")
    assert "Cardiology" in snapshot.fields
    assert snapshot.as_dict()["yearRange"] == {"min": 2015, "max": 2022}


@pytest.mark.anyio
async def test_snapshot_is_reused_within_ttl(cache, memory_store, clock):
    first = await cache.get()
    clock.now += 59.0
    second = await cache.get()

    assert second is first
    assert memory_store.capability_calls == 3


@pytest.mark.anyio
async def test_snapshot_refreshes_after_ttl(cache, memory_store, clock):
    first = await cache.get()
    clock.now += 60.0
    second = await cache.get()

    assert second is not first
    assert second == first
    assert memory_store.capability_calls == 6


@pytest.mark.anyio
async def test_stale_snapshot_served_when_refresh_fails(
    cache, memory_store, clock, unavailable
):
    first = await cache.get()
    clock.now += 120.0
    memory_store.fail_with = unavailable

    assert await cache.get() is first


@pytest.mark.anyio
async def test_failure_without_snapshot_raises(cache, memory_store, unavailable):
    memory_store.fail_with = unavailable

    with pytest.raises(StoreUnavailable):
        await cache.get()


@pytest.mark.anyio
async def test_invalidate_forces_reload(cache, memory_store):
    await cache.get()
    cache.invalidate()
    await cache.get()

    assert memory_store.capability_calls == 6


@pytest.mark.anyio
async def test_empty_catalog_has_no_year_range(empty_store, clock):
    cache = CapabilitiesCache(empty_store, ttl=60.0, clock=clock)

    snapshot = await cache.get()

    assert snapshot.types == ()
    assert snapshot.year_range is None
    assert snapshot.as_dict()["yearRange"] is None


@pytest.mark.anyio
async def test_recovered_store_replaces_stale_snapshot(
    cache, memory_store, clock, unavailable
):
    first = await cache.get()
    clock.now += 120.0
    memory_store.fail_with = unavailable
    assert await cache.get() is first

    memory_store.fail_with = None
    refreshed = await cache.get()

    assert refreshed is not first
    assert await cache.get() is refreshed
