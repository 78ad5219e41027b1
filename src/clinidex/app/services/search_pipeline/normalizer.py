from __future__ import annotations

"""Query normalization component for the search pipeline."""

import re
from dataclasses import dataclass
from typing import Protocol

_NON_ALNUM_PATTERN = re.compile(r"[^\w\s]|_")
_WHITESPACE_PATTERN = re.compile(r"\s+")

PREFIX_JOIN = " AND "
PREFIX_WILDCARD = "*"


@dataclass(slots=True, frozen=True)
class NormalizedQuery:
    """Normalized representation of a user provided search query.

    ``canonical`` feeds relevance scoring, ``prefix_expression`` enables
    partial-word matches and ``original`` keeps the trimmed input verbatim
    for exact title comparison and the store's own free-text parser.
    """

    canonical: str
    prefix_expression: str
    original: str

    @property
    def has_query(self) -> bool:
        return bool(self.canonical)

    @property
    def tokens(self) -> list[str]:
        return self.canonical.split() if self.canonical else []


EMPTY_QUERY = NormalizedQuery(canonical="", prefix_expression="", original="")


class BaseSearchNormalizer(Protocol):
    """Interface for query normalization components."""

    def normalize(self, query: str | None) -> NormalizedQuery:
        ...


def canonicalize(text: str | None) -> str:
    """Lowercase ``text``, replace punctuation with spaces and collapse runs."""

    lowered = (text or "").lower()
    stripped = _NON_ALNUM_PATTERN.sub(" ", lowered)
    return _WHITESPACE_PATTERN.sub(" ", stripped).strip()


def prefix_expression(canonical: str) -> str:
    """Join canonical tokens into a wildcard-AND prefix expression."""

    if not canonical:
        return ""
    return PREFIX_JOIN.join(f"{token}{PREFIX_WILDCARD}" for token in canonical.split())


class DefaultSearchNormalizer:
    """Produce canonical text, prefix expression and original trimmed text."""

    def normalize(self, query: str | None) -> NormalizedQuery:
        original = (query or "").strip()
        if not original:
            return EMPTY_QUERY
        canonical = canonicalize(original)
        return NormalizedQuery(
            canonical=canonical,
            prefix_expression=prefix_expression(canonical),
            original=original,
        )


__all__ = [
    "BaseSearchNormalizer",
    "DefaultSearchNormalizer",
    "EMPTY_QUERY",
    "NormalizedQuery",
    "PREFIX_JOIN",
    "PREFIX_WILDCARD",
    "canonicalize",
    "prefix_expression",
]
