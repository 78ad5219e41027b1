from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class PaginationLimits:
    """Page size bounds applied to every search request."""

    default_page_size: int
    max_page_size: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class RankingWeights:
    """Column weights handed to the store's relevance function."""

    title_weight: float
    keyword_weight: float

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class AutocompleteLimits:
    """Bounds for title suggestions."""

    min_query_length: int
    limit: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class RateLimitConfig:
    """Fixed-window limiter configuration."""

    enabled: bool
    max_requests: int
    window: float
    path_prefix: str

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class SearchConfig:
    """Aggregate search configuration used across services."""

    pagination: PaginationLimits
    ranking: RankingWeights
    autocomplete: AutocompleteLimits
    rate_limit: RateLimitConfig
    capabilities_ttl: float

    @classmethod
    def from_settings(cls, settings: Any) -> "SearchConfig":
        """Construct a :class:`SearchConfig` from application settings."""

        search_settings = settings.SEARCH
        ranking_settings = search_settings.ranking
        autocomplete_settings = search_settings.autocomplete
        rate_settings = settings.RATE_LIMIT

        pagination = PaginationLimits(
            default_page_size=int(search_settings.default_page_size),
            max_page_size=int(search_settings.max_page_size),
        )
        ranking = RankingWeights(
            title_weight=float(ranking_settings.title_weight),
            keyword_weight=float(ranking_settings.keyword_weight),
        )
        autocomplete = AutocompleteLimits(
            min_query_length=int(autocomplete_settings.min_query_length),
            limit=int(autocomplete_settings.limit),
        )
        rate_limit = RateLimitConfig(
            enabled=bool(rate_settings.enabled),
            max_requests=int(rate_settings.max_requests),
            window=float(rate_settings.window),
            path_prefix=str(rate_settings.path_prefix),
        )
        return cls(
            pagination=pagination,
            ranking=ranking,
            autocomplete=autocomplete,
            rate_limit=rate_limit,
            capabilities_ttl=float(settings.CAPABILITIES.ttl),
        )

    def as_dict(self) -> dict[str, Any]:
        """Return the full configuration as a dictionary."""

        return {
            "pagination": self.pagination.as_dict(),
            "ranking": self.ranking.as_dict(),
            "autocomplete": self.autocomplete.as_dict(),
            "rate_limit": self.rate_limit.as_dict(),
            "capabilities_ttl": self.capabilities_ttl,
        }


DEFAULT_SEARCH_CONFIG = SearchConfig(
    pagination=PaginationLimits(default_page_size=20, max_page_size=50),
    ranking=RankingWeights(title_weight=1.0, keyword_weight=0.4),
    autocomplete=AutocompleteLimits(min_query_length=3, limit=5),
    rate_limit=RateLimitConfig(
        enabled=True, max_requests=50, window=60.0, path_prefix="/search"
    ),
    capabilities_ttl=24 * 60 * 60.0,
)


__all__ = [
    "AutocompleteLimits",
    "DEFAULT_SEARCH_CONFIG",
    "PaginationLimits",
    "RankingWeights",
    "RateLimitConfig",
    "SearchConfig",
]
