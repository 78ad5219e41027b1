"""Match tiers and the score each tier contributes.

Tiers, highest priority first:

1. ``slug == requested slug``                    -> 1000
2. ``fold(title) == fold(original text)``        -> 100
3. no usable query text                          -> 0
4. otherwise ``2 * relevance(original) + relevance(prefix expression)``

Stores sort by "query supplied" first, score descending and year
descending. Relevance values in tier 4 are squashed into ``[0, 1)`` by the
store so the ranked tier can never reach the exact title tier.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import MatchTier, SearchFilters
from .normalizer import NormalizedQuery

SLUG_EXACT_SCORE = 1000.0
TITLE_EXACT_SCORE = 100.0
NO_QUERY_SCORE = 0.0
PHRASE_RELEVANCE_MULTIPLIER = 2.0


def fold_title(text: str) -> str:
    """Case-fold ``text`` for exact title comparison (Unicode aware)."""

    return text.lower()


@dataclass(slots=True, frozen=True)
class RankingRequest:
    """Everything a store needs to score and order one search."""

    query: str
    prefix_query: str
    slug: str | None
    filters: SearchFilters

    @classmethod
    def build(
        cls,
        normalized: NormalizedQuery,
        slug: str | None,
        filters: SearchFilters,
    ) -> "RankingRequest":
        # Input without usable tokens (e.g. "!!!") drops to pure filter mode.
        query = normalized.original if normalized.has_query else ""
        return cls(
            query=query,
            prefix_query=normalized.prefix_expression,
            slug=slug or None,
            filters=filters,
        )

    @property
    def has_query(self) -> bool:
        return bool(self.query)

    @property
    def title_key(self) -> str:
        """Folded query text compared against folded document titles."""

        return fold_title(self.query)


class RankingPolicy:
    """Tier classification and per-tier scores shared by stores and mapping."""

    def classify(
        self,
        request: RankingRequest,
        *,
        slug: str | None,
        title: str | None,
    ) -> MatchTier:
        if request.slug is not None and slug == request.slug:
            return MatchTier.SLUG_EXACT
        if (
            request.has_query
            and title is not None
            and fold_title(title) == request.title_key
        ):
            return MatchTier.TITLE_EXACT
        if not request.has_query:
            return MatchTier.NO_QUERY
        return MatchTier.RANKED

    def score(
        self,
        tier: MatchTier,
        relevance: float = 0.0,
        prefix_relevance: float = 0.0,
    ) -> float:
        if tier is MatchTier.SLUG_EXACT:
            return SLUG_EXACT_SCORE
        if tier is MatchTier.TITLE_EXACT:
            return TITLE_EXACT_SCORE
        if tier is MatchTier.NO_QUERY:
            return NO_QUERY_SCORE
        return PHRASE_RELEVANCE_MULTIPLIER * relevance + prefix_relevance


__all__ = [
    "NO_QUERY_SCORE",
    "PHRASE_RELEVANCE_MULTIPLIER",
    "RankingPolicy",
    "RankingRequest",
    "SLUG_EXACT_SCORE",
    "TITLE_EXACT_SCORE",
    "fold_title",
]
