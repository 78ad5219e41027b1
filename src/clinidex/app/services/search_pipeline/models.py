"""Request and result types shared across the search pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

import orjson

from .exceptions import InvalidSearchQuery, ResultMappingError

logger = logging.getLogger(__name__)

_MAX_OFFSET = 2**63 - 1


class MatchTier(str, Enum):
    """Priority class a document matched under, highest first."""

    SLUG_EXACT = "slug_exact"
    TITLE_EXACT = "title_exact"
    RANKED = "ranked"
    NO_QUERY = "no_query"


@dataclass(slots=True, frozen=True)
class Pagination:
    """Zero-based page index and a page size already clamped to the cap."""

    page: int
    size: int

    @property
    def offset(self) -> int:
        return self.page * self.size

    @classmethod
    def from_params(
        cls,
        page: int | None,
        size: int | None,
        *,
        default_size: int,
        max_size: int,
    ) -> "Pagination":
        """Validate raw paging input and silently cap ``size`` at ``max_size``."""

        resolved_page = 0 if page is None else page
        resolved_size = default_size if size is None else size
        if resolved_page < 0:
            raise InvalidSearchQuery("Page index must not be negative")
        if resolved_size <= 0:
            raise InvalidSearchQuery("Page size must be positive")
        size = min(resolved_size, max_size)
        if resolved_page * size > _MAX_OFFSET:
            raise InvalidSearchQuery("Page index is out of range")
        return cls(page=resolved_page, size=size)


@dataclass(slots=True, frozen=True)
class SearchFilters:
    """Conjunctive filter predicate applied before scoring."""

    types: tuple[str, ...] = ()
    region: str | None = None
    field: str | None = None
    year_from: int | None = None
    year_to: int | None = None

    @property
    def active(self) -> bool:
        return bool(self.types) or any(
            value is not None
            for value in (self.region, self.field, self.year_from, self.year_to)
        )


@dataclass(slots=True, frozen=True)
class SearchQuery:
    """One incoming search request."""

    text: str | None
    pagination: Pagination
    slug: str | None = None
    filters: SearchFilters = field(default_factory=SearchFilters)


@dataclass(slots=True, frozen=True)
class StorePage:
    """A page of raw store rows and the size of the unpaginated match set."""

    rows: Sequence[Mapping[str, Any]]
    total: int


_REQUIRED_COLUMNS = ("id", "type", "title", "year", "link", "region", "field", "score")


def _coerce_keywords(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (bytes, str)):
        decoded = orjson.loads(raw)
    else:
        decoded = raw
    if not isinstance(decoded, (list, tuple)):
        raise TypeError(f"keywords must be a list, got {type(decoded).__name__}")
    return tuple(str(keyword) for keyword in decoded)


@dataclass(slots=True, frozen=True)
class RankedResult:
    """Document projection plus its computed score and match tier."""

    id: str
    type: str
    title: str
    year: int
    link: str
    region: str
    field: str
    score: float
    tier: MatchTier
    slug: str | None = None
    authors: str | None = None
    source: str | None = None
    citation: str | None = None
    keywords: tuple[str, ...] = ()

    @classmethod
    def from_row(cls, row: Mapping[str, Any], tier: MatchTier) -> "RankedResult":
        """Project a store row, raising :class:`ResultMappingError` on bad shape."""

        try:
            missing = [
                column
                for column in _REQUIRED_COLUMNS
                if column not in row.keys() or row[column] is None
            ]
            if missing:
                raise KeyError(", ".join(missing))
            return cls(
                id=str(row["id"]),
                type=str(row["type"]),
                title=str(row["title"]),
                year=int(row["year"]),
                link=str(row["link"]),
                region=str(row["region"]),
                field=str(row["field"]),
                score=float(row["score"]),
                tier=tier,
                slug=_optional(row, "slug"),
                authors=_optional(row, "authors"),
                source=_optional(row, "source"),
                citation=_optional(row, "citation"),
                keywords=_coerce_keywords(_optional_raw(row, "keywords")),
            )
        except (KeyError, TypeError, ValueError, orjson.JSONDecodeError) as exc:
            logger.error(
                "Failed to map search row id=%s: %s",
                _optional_raw(row, "id"),
                exc,
            )
            raise ResultMappingError("Error mapping search result") from exc

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "region": self.region,
            "field": self.field,
            "title": self.title,
            "year": self.year,
            "link": self.link,
            "slug": self.slug,
            "authors": self.authors,
            "source": self.source,
            "citation": self.citation,
            "keywords": list(self.keywords),
            "score": self.score,
            "tier": self.tier.value,
        }


def _optional_raw(row: Mapping[str, Any], key: str) -> Any:
    return row[key] if key in row.keys() else None


def _optional(row: Mapping[str, Any], key: str) -> str | None:
    value = _optional_raw(row, key)
    return None if value is None else str(value)


@dataclass(slots=True, frozen=True)
class SearchPage:
    """Outcome of a search request."""

    results: list[RankedResult]
    total: int
    limit: int
    offset: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "results": [result.as_dict() for result in self.results],
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
        }


@dataclass(slots=True, frozen=True)
class YearRange:
    min: int | None
    max: int | None

    def as_dict(self) -> dict[str, int | None]:
        return {"min": self.min, "max": self.max}


@dataclass(slots=True, frozen=True)
class Capabilities:
    """Immutable snapshot of the filter values currently in the catalog."""

    types: tuple[str, ...]
    regions: tuple[str, ...]
    fields: tuple[str, ...]
    year_range: YearRange | None

    def as_dict(self) -> dict[str, Any]:
        return {
            "types": list(self.types),
            "regions": list(self.regions),
            "fields": list(self.fields),
            "yearRange": self.year_range.as_dict() if self.year_range else None,
        }


@dataclass(slots=True, frozen=True)
class Suggestion:
    title: str
    slug: str

    def as_dict(self) -> dict[str, str]:
        return {"title": self.title, "slug": self.slug}


__all__ = [
    "Capabilities",
    "MatchTier",
    "Pagination",
    "RankedResult",
    "SearchFilters",
    "SearchPage",
    "SearchQuery",
    "StorePage",
    "Suggestion",
    "YearRange",
]
