from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass

from clinidex.app.services.search_config import RateLimitConfig

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RateDecision:
    """Gate result for one request."""

    allowed: bool
    count: int


class FixedWindowRateLimiter:
    """Per-client request counter cleared for everyone on a fixed cadence.

    This is a global fixed window: all identities reset together when the
    background task fires, so bursts straddling a reset are admitted.
    """

    def __init__(self, config: RateLimitConfig) -> None:
        self._config = config
        self._counts: dict[str, int] = {}
        self._task: asyncio.Task | None = None

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def applies_to(self, path: str) -> bool:
        return self._config.enabled and path.startswith(self._config.path_prefix)

    def hit(self, identity: str) -> RateDecision:
        """Count a request for ``identity`` and decide whether it may proceed."""

        # Runs on the event loop without awaiting, so read-increment-store is atomic.
        count = self._counts.get(identity, 0) + 1
        self._counts[identity] = count
        return RateDecision(allowed=count <= self._config.max_requests, count=count)

    def count_for(self, identity: str) -> int:
        return self._counts.get(identity, 0)

    def reset(self) -> int:
        """Discard every window at once and return how many identities were tracked."""

        cleared = len(self._counts)
        self._counts = {}
        return cleared

    async def start(self) -> None:
        """Start the background window reset."""

        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-reset")

    async def stop(self) -> None:
        """Cancel the background window reset."""

        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._config.window)
                cleared = self.reset()
                if cleared:
                    logger.debug("Rate limit window reset (%d identities)", cleared)
        except asyncio.CancelledError:
            logger.debug("Rate limit reset loop cancelled")
            raise


__all__ = ["FixedWindowRateLimiter", "RateDecision"]
