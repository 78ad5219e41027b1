from __future__ import annotations

"""Exceptions raised by search pipeline components."""


class SearchError(Exception):
    """Base class for failures surfaced by the search pipeline."""

    status_code = 500


class InvalidSearchQuery(SearchError, ValueError):
    """Exception raised when a provided search query is invalid."""

    status_code = 400


class ResultMappingError(SearchError):
    """A store row could not be projected into a search result."""

    status_code = 500


class StoreUnavailable(SearchError):
    """The document store failed to answer a request."""

    status_code = 503


__all__ = [
    "InvalidSearchQuery",
    "ResultMappingError",
    "SearchError",
    "StoreUnavailable",
]
