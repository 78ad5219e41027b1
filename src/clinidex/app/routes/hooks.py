"""Request hooks guarding and logging the search routes."""

from __future__ import annotations

import logging
import time

from quart import Response, g, request

from clinidex.app.services.container import get_rate_limiter

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too Many Requests - Rate limit exceeded"


def _client_identity() -> str:
    return request.remote_addr or "unknown"


async def enforce_rate_limit() -> Response | None:
    limiter = get_rate_limiter()
    if not limiter.applies_to(request.path):
        return None

    identity = _client_identity()
    decision = limiter.hit(identity)
    if not decision.allowed:
        logger.warning("RATE_LIMIT | IP: %s | Count: %d", identity, decision.count)
        return Response(RATE_LIMIT_MESSAGE, status=429, mimetype="text/plain")

    g.search_started_at = time.perf_counter()
    return None


async def log_search_request(response: Response) -> Response:
    started_at = g.get("search_started_at")
    if started_at is None:
        return response

    duration_ms = (time.perf_counter() - started_at) * 1000
    logger.info(
        "SEARCH_LOG | Status: %d | Duration: %.0fms | Q: %r | Types: %s | IP: %s",
        response.status_code,
        duration_ms,
        request.args.get("q"),
        request.args.getlist("type"),
        _client_identity(),
    )
    return response
