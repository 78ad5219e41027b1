from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from clinidex.app.services.outcome import Outcome, capture
from clinidex.app.services.search_pipeline.store import Counters

logger = logging.getLogger(__name__)


class TelemetryService:
    """Fire-and-forget visit and search tallies.

    Increments run as background tasks. A failing increment is folded into an
    :class:`Outcome`, logged and dropped so it never reaches the request that
    triggered it.
    """

    def __init__(self, counters: Counters) -> None:
        self._counters = counters
        self._pending: set[asyncio.Task[Outcome[None]]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def record_search(self) -> None:
        self._spawn("search", self._counters.increment_search_count)

    def record_visit(self) -> None:
        self._spawn("visit", self._counters.increment_visit_count)

    def _spawn(self, kind: str, operation: Callable[[], Awaitable[None]]) -> None:
        task = asyncio.create_task(self._run(kind, operation), name=f"telemetry-{kind}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run(
        self, kind: str, operation: Callable[[], Awaitable[None]]
    ) -> Outcome[None]:
        outcome = await capture(operation())
        if outcome.ok:
            logger.debug("Recorded %s", kind)
        else:
            logger.error("Failed to record %s: %s", kind, outcome.error)
        return outcome

    async def drain(self) -> None:
        """Wait for in-flight increments; used at shutdown and in tests."""

        pending = list(self._pending)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


__all__ = ["TelemetryService"]
