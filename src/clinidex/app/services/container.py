"""Application service and lifecycle helpers."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path

from clinidex.persistence.local_db import LocalDB
from clinidex.app.services.autocomplete import AutocompleteResolver
from clinidex.app.services.capabilities_cache import CapabilitiesCache
from clinidex.app.services.rate_limiter import FixedWindowRateLimiter
from clinidex.app.services.search_config import SearchConfig
from clinidex.app.services.search_pipeline import (
    DefaultSearchNormalizer,
    RankingPolicy,
    SearchPipeline,
    SearchPipelineComponents,
)
from clinidex.app.services.telemetry import TelemetryService
from clinidex.settings import settings


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AppServices:
    """Bundle long-lived application services."""

    config: SearchConfig
    db: LocalDB
    telemetry: TelemetryService
    search_pipeline: SearchPipeline
    capabilities: CapabilitiesCache
    autocomplete: AutocompleteResolver
    rate_limiter: FixedWindowRateLimiter

    @classmethod
    def create(
        cls,
        config: SearchConfig | None = None,
        db_path: str | Path | None = None,
    ) -> "AppServices":
        config = config or SearchConfig.from_settings(settings)
        db = LocalDB(db_path, weights=config.ranking)
        normalizer = DefaultSearchNormalizer()
        telemetry = TelemetryService(db)
        search_pipeline = SearchPipeline(
            components=SearchPipelineComponents(
                store=db,
                normalizer=normalizer,
                policy=RankingPolicy(),
            ),
            recorder=telemetry,
        )
        return cls(
            config=config,
            db=db,
            telemetry=telemetry,
            search_pipeline=search_pipeline,
            capabilities=CapabilitiesCache(db, ttl=config.capabilities_ttl),
            autocomplete=AutocompleteResolver(
                db, config.autocomplete, normalizer=normalizer
            ),
            rate_limiter=FixedWindowRateLimiter(config.rate_limit),
        )


class AppLifecycle:
    """Manage startup and shutdown of long-lived application services."""

    def __init__(self, services: AppServices) -> None:
        self._services = services
        self._lock = asyncio.Lock()
        self._started = False

    async def __aenter__(self) -> "AppLifecycle":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Open the database and start the rate-limit window reset."""

        async with self._lock:
            if self._started:
                return

            logger.debug("Starting application lifecycle: db.init -> rate_limiter.start")
            db_initialised = False
            try:
                await self._services.db.init()
                db_initialised = True
                await self._services.rate_limiter.start()
            except Exception:
                logger.debug(
                    "Startup failed; rolling back initialised services", exc_info=True
                )
                with suppress(Exception):
                    if db_initialised:
                        logger.debug("Rollback: closing database after startup failure")
                        await self._services.db.close()
                raise

            self._started = True
            logger.info("Application lifecycle started")

    async def stop(self) -> None:
        """Stop the resetter, drain telemetry and close the database."""

        async with self._lock:
            if not self._started:
                return
            self._started = False

        logger.debug(
            "Stopping application lifecycle: rate_limiter.stop -> telemetry.drain -> db.close"
        )
        errors: list[Exception] = []

        try:
            await self._services.rate_limiter.stop()
        except Exception as exc:  # pragma: no cover - defensive logging occurs below
            logger.exception("Failed to stop rate limiter cleanly")
            errors.append(exc)

        await self._services.telemetry.drain()

        try:
            await self._services.db.close()
        except Exception as exc:
            logger.exception("Failed to close database cleanly")
            errors.append(exc)

        if errors:
            raise errors[0]

        logger.info("Application lifecycle stopped")

    @property
    def services(self) -> AppServices:
        return self._services


def get_services() -> AppServices:
    """Return the :class:`AppServices` container bound to the current app."""

    from quart import current_app

    services = current_app.extensions.get("clinidex")
    if services is None:
        raise RuntimeError("App services container is not initialised")
    return services


def get_search_pipeline() -> SearchPipeline:
    return get_services().search_pipeline


def get_capabilities_cache() -> CapabilitiesCache:
    return get_services().capabilities


def get_autocomplete() -> AutocompleteResolver:
    return get_services().autocomplete


def get_rate_limiter() -> FixedWindowRateLimiter:
    return get_services().rate_limiter


def get_telemetry() -> TelemetryService:
    return get_services().telemetry
