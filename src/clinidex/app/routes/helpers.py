from __future__ import annotations

from typing import Iterable

from clinidex.app.services.search_pipeline import InvalidSearchQuery

# SQLite binds integers as signed 64-bit values.
MAX_SQL_INTEGER = 2**63 - 1


def optional_int(raw: str | None, name: str) -> int | None:
    """Parse an optional integer query parameter or raise ``InvalidSearchQuery``."""

    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    try:
        parsed = int(value)
    except ValueError as exc:
        raise InvalidSearchQuery(f"Parameter '{name}' must be an integer") from exc
    if not -MAX_SQL_INTEGER <= parsed <= MAX_SQL_INTEGER:
        raise InvalidSearchQuery(f"Parameter '{name}' is out of range")
    return parsed


def optional_text(raw: str | None) -> str | None:
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def split_multi(values: Iterable[str]) -> tuple[str, ...]:
    """Flatten repeated and comma separated values, keeping first occurrences."""

    seen: dict[str, None] = {}
    for raw in values:
        for part in raw.split(","):
            value = part.strip()
            if value:
                seen.setdefault(value, None)
    return tuple(seen)
