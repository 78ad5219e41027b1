"""Narrow interfaces the pipeline consumes from its collaborators."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from .models import Pagination, StorePage
from .ranking import RankingRequest

DIMENSIONS = ("type", "region", "field")


class DocumentStore(Protocol):
    """Read-only access to the document catalog.

    Implementations raise :class:`StoreUnavailable` when the backend fails.
    """

    async def search_documents(
        self, request: RankingRequest, pagination: Pagination
    ) -> StorePage:
        """Return one ordered page plus the total for the full match set."""

        ...

    async def distinct_values(self, dimension: str) -> list[str]:
        """Return sorted distinct non-null values for ``dimension``."""

        ...

    async def year_range(self) -> tuple[int | None, int | None]:
        """Return the global ``(min, max)`` publication year."""

        ...

    async def autocomplete(
        self, prefix_query: str, substring: str, limit: int
    ) -> Sequence[Mapping[str, Any]]:
        """Return ``title``/``slug`` rows ordered by relevance descending."""

        ...


class Counters(Protocol):
    """Visit and search tallies."""

    async def increment_search_count(self) -> None:
        ...

    async def increment_visit_count(self) -> None:
        ...


__all__ = ["Counters", "DIMENSIONS", "DocumentStore"]
