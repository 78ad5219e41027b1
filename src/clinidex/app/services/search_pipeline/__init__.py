"""Search pipeline component interfaces and defaults."""
from __future__ import annotations

from .exceptions import (
    InvalidSearchQuery,
    ResultMappingError,
    SearchError,
    StoreUnavailable,
)
from .models import (
    Capabilities,
    MatchTier,
    Pagination,
    RankedResult,
    SearchFilters,
    SearchPage,
    SearchQuery,
    StorePage,
    Suggestion,
    YearRange,
)
from .normalizer import BaseSearchNormalizer, DefaultSearchNormalizer, NormalizedQuery
from .ranking import RankingPolicy, RankingRequest, fold_title
from .store import Counters, DocumentStore
from .pipeline import SearchPipeline, SearchPipelineComponents

__all__ = [
    "BaseSearchNormalizer",
    "Capabilities",
    "Counters",
    "DefaultSearchNormalizer",
    "DocumentStore",
    "InvalidSearchQuery",
    "MatchTier",
    "NormalizedQuery",
    "Pagination",
    "RankedResult",
    "RankingPolicy",
    "RankingRequest",
    "ResultMappingError",
    "SearchError",
    "SearchFilters",
    "SearchPage",
    "SearchPipeline",
    "SearchPipelineComponents",
    "SearchQuery",
    "StorePage",
    "StoreUnavailable",
    "Suggestion",
    "YearRange",
    "fold_title",
]
