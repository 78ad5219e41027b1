from __future__ import annotations

import logging

import pytest

from clinidex.app.services.outcome import Outcome, capture
from clinidex.app.services.telemetry import TelemetryService


@pytest.mark.anyio
async def test_visits_and_searches_are_tallied(counters):
    telemetry = TelemetryService(counters)

    telemetry.record_visit()
    telemetry.record_search()
    telemetry.record_search()
    await telemetry.drain()

    assert counters.visits == 1
    assert counters.searches == 2
    assert telemetry.pending == 0


@pytest.mark.anyio
async def test_failures_are_logged_and_dropped(counters, caplog):
    counters.fail_with = RuntimeError("database is locked")
    telemetry = TelemetryService(counters)

    with caplog.at_level(logging.ERROR, logger="clinidex.app.services.telemetry"):
        telemetry.record_visit()
        await telemetry.drain()

    assert counters.visits == 0
    assert "Failed to record visit" in caplog.text


@pytest.mark.anyio
async def test_drain_without_pending_work_returns(counters):
    await TelemetryService(counters).drain()


@pytest.mark.anyio
async def test_capture_folds_exceptions_into_outcome():
    async def boom() -> None:
        raise ValueError("bad")

    async def fine() -> int:
        return 7

    failed = await capture(boom())
    succeeded = await capture(fine())

    assert not failed.ok
    assert isinstance(failed.error, ValueError)
    assert succeeded.ok
    assert succeeded.value == 7
    assert Outcome.success().ok
