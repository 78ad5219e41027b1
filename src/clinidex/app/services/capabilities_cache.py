"""Time-bounded snapshot of the filter values available in the catalog."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from cachetools import TTLCache

from clinidex.app.services.search_pipeline.exceptions import StoreUnavailable
from clinidex.app.services.search_pipeline.models import Capabilities, YearRange
from clinidex.app.services.search_pipeline.store import DocumentStore

logger = logging.getLogger(__name__)

_SNAPSHOT_KEY = "capabilities"


class CapabilitiesCache:
    """Single-entry cache with a fixed TTL.

    Reads never lock. Concurrent refreshes may both hit the store; the last
    one to finish replaces the entry. A failed refresh keeps serving the
    previous snapshot when one exists, even after it has expired.
    """

    __slots__ = ("_store", "_ttl", "_clock", "_cache", "_last_snapshot")

    def __init__(
        self,
        store: DocumentStore,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._clock = clock
        self._cache: TTLCache[str, Capabilities] = TTLCache(
            maxsize=1, ttl=ttl, timer=clock
        )
        self._last_snapshot: Capabilities | None = None

    @property
    def ttl(self) -> float:
        return self._ttl

    def invalidate(self) -> None:
        self._cache.clear()
        self._last_snapshot = None

    async def get(self) -> Capabilities:
        cached = self._cache.get(_SNAPSHOT_KEY)
        if cached is not None:
            return cached

        logger.info("Refreshing search capabilities cache from the document store")
        try:
            capabilities = await self._load()
        except StoreUnavailable:
            stale = self._last_snapshot
            if stale is None:
                raise
            logger.warning(
                "Capabilities refresh failed; serving the previous snapshot",
                exc_info=True,
            )
            return stale

        self._cache[_SNAPSHOT_KEY] = capabilities
        self._last_snapshot = capabilities
        return capabilities

    async def _load(self) -> Capabilities:
        types, regions, fields, (year_min, year_max) = await asyncio.gather(
            self._store.distinct_values("type"),
            self._store.distinct_values("region"),
            self._store.distinct_values("field"),
            self._store.year_range(),
        )
        year_range = None
        if year_min is not None or year_max is not None:
            year_range = YearRange(min=year_min, max=year_max)
        return Capabilities(
            types=tuple(types),
            regions=tuple(regions),
            fields=tuple(fields),
            year_range=year_range,
        )


__all__ = ["CapabilitiesCache"]
