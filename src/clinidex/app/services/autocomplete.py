from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from clinidex.app.services.outcome import capture
from clinidex.app.services.search_config import AutocompleteLimits
from clinidex.app.services.search_pipeline.models import Suggestion
from clinidex.app.services.search_pipeline.normalizer import (
    BaseSearchNormalizer,
    DefaultSearchNormalizer,
)
from clinidex.app.services.search_pipeline.store import DocumentStore

logger = logging.getLogger(__name__)


class AutocompleteResolver:
    """Suggest document titles for a partial query.

    Store failures are logged and turned into an empty list; this path never
    raises into the route.
    """

    def __init__(
        self,
        store: DocumentStore,
        limits: AutocompleteLimits,
        normalizer: BaseSearchNormalizer | None = None,
    ) -> None:
        self._store = store
        self._limits = limits
        self._normalizer = normalizer or DefaultSearchNormalizer()

    async def suggest(self, query: str | None) -> list[Suggestion]:
        trimmed = (query or "").strip()
        if len(trimmed) < self._limits.min_query_length:
            return []

        normalized = self._normalizer.normalize(trimmed)
        if not normalized.has_query:
            return []

        logger.info("Fetching autocomplete suggestions for %r", normalized.canonical)
        outcome = await capture(
            self._store.autocomplete(
                normalized.prefix_expression, normalized.original, self._limits.limit
            )
        )
        if not outcome.ok:
            logger.error(
                "Error fetching autocomplete suggestions for %r: %s",
                normalized.canonical,
                outcome.error,
            )
            return []
        return self._collect(outcome.value or ())

    def _collect(self, rows: Sequence[Mapping[str, Any]]) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        seen: set[tuple[str, str]] = set()
        for row in rows:
            keys = row.keys()
            title = str(row["title"] or "").strip() if "title" in keys else ""
            slug = str(row["slug"] or "") if "slug" in keys else ""
            if not title:
                continue
            key = (title, slug)
            if key in seen:
                continue
            seen.add(key)
            suggestions.append(Suggestion(title=title, slug=slug))
            if len(suggestions) >= self._limits.limit:
                break
        return suggestions


__all__ = ["AutocompleteResolver"]
