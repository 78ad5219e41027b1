"""Composable pipeline orchestration for search queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from .models import RankedResult, SearchPage, SearchQuery
from .normalizer import BaseSearchNormalizer, DefaultSearchNormalizer
from .ranking import RankingPolicy, RankingRequest
from .store import DocumentStore

logger = logging.getLogger(__name__)


class SearchRecorder(Protocol):
    def record_search(self) -> None:
        ...


@dataclass(slots=True)
class SearchPipelineComponents:
    """Concrete pipeline step implementations."""

    store: DocumentStore
    normalizer: BaseSearchNormalizer = field(default_factory=DefaultSearchNormalizer)
    policy: RankingPolicy = field(default_factory=RankingPolicy)


@dataclass(slots=True)
class SearchPipeline:
    """Normalize, rank through the store and map rows into results."""

    components: SearchPipelineComponents
    recorder: SearchRecorder | None = None

    async def execute(self, query: SearchQuery) -> SearchPage:
        comps = self.components
        pagination = query.pagination
        filters = query.filters

        normalized = comps.normalizer.normalize(query.text)
        slug = (query.slug or "").strip() or None

        logger.info(
            "Performing search - q=%r prefix=%r slug=%r types=%s region=%r field=%r "
            "years=%s-%s page=%d size=%d",
            normalized.canonical,
            normalized.prefix_expression,
            slug,
            list(filters.types),
            filters.region,
            filters.field,
            filters.year_from,
            filters.year_to,
            pagination.page,
            pagination.size,
        )

        if not normalized.has_query and slug is None and not filters.active:
            logger.debug("Aborting search: no query, no filters and no slug provided")
            return SearchPage(
                results=[],
                total=0,
                limit=pagination.size,
                offset=pagination.offset,
            )

        request = RankingRequest.build(normalized, slug, filters)
        page = await comps.store.search_documents(request, pagination)

        results = [self._map_row(request, row) for row in page.rows]
        logger.info(
            "Found %d total results (%d in current page) for q=%r slug=%r",
            page.total,
            len(results),
            normalized.canonical,
            slug,
        )

        if self.recorder is not None:
            self.recorder.record_search()

        return SearchPage(
            results=results,
            total=page.total,
            limit=pagination.size,
            offset=pagination.offset,
        )

    def _map_row(self, request: RankingRequest, row: Mapping[str, Any]) -> RankedResult:
        keys = row.keys()
        tier = self.components.policy.classify(
            request,
            slug=row["slug"] if "slug" in keys else None,
            title=row["title"] if "title" in keys else None,
        )
        return RankedResult.from_row(row, tier)


__all__ = [
    "SearchPipeline",
    "SearchPipelineComponents",
    "SearchRecorder",
]
