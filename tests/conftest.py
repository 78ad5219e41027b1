from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any

import pytest

from clinidex.app.services.search_config import DEFAULT_SEARCH_CONFIG, SearchConfig
from clinidex.app.services.search_pipeline import (
    Pagination,
    RankingPolicy,
    RankingRequest,
    StorePage,
    SearchFilters,
    StoreUnavailable,
    fold_title,
)
from clinidex.app.services.search_pipeline.normalizer import canonicalize


CATALOG: list[dict[str, Any]] = [
    {
        "id": "00000000-0000-0000-0000-000000000001",
        "type": "guideline",
        "year": 2017,
        "title": "AHA/ACC Guideline for the Management of Blood Pressure",
        "link": "https://example.org/aha-acc-bp",
        "region": "US",
        "field": "Cardiology",
        "keywords": ["hypertension", "blood pressure"],
        "slug": "aha-acc-blood-pressure",
        "authors": "Whelton PK et al.",
        "source": "Hypertension",
        "citation": "Hypertension. 2018;71:e13-e115",
    },
    {
        "id": "00000000-0000-0000-0000-000000000002",
        "type": "guideline",
        "year": 2019,
        "title": "Blood Pressure Measurement in Adults",
        "link": "https://example.org/bp-measurement",
        "region": "UK",
        "field": "Cardiology",
        "keywords": ["blood pressure", "measurement"],
        "slug": "bp-measurement",
    },
    {
        "id": "00000000-0000-0000-0000-000000000003",
        "type": "guideline",
        "year": 2022,
        "title": "Hypertension in Adults: Diagnosis and Management",
        "link": "https://example.org/nice-hypertension",
        "region": "UK",
        "field": "Cardiology",
        "keywords": ["hypertension", "blood pressure"],
        "slug": "nice-hypertension",
    },
    {
        "id": "00000000-0000-0000-0000-000000000004",
        "type": "consensus",
        "year": 2020,
        "title": "Bloodstream Infection Consensus",
        "link": "https://example.org/bsi",
        "region": "EU",
        "field": "Infectious Disease",
        "keywords": ["sepsis", "bacteremia"],
        "slug": "bloodstream-consensus",
    },
    {
        "id": "00000000-0000-0000-0000-000000000005",
        "type": "guideline",
        "year": 2021,
        "title": "Breast Cancer Screening",
        "link": "https://example.org/breast-screening",
        "region": "US",
        "field": "Oncology",
        "keywords": ["mammography"],
        "slug": "breast-screening",
    },
    {
        "id": "00000000-0000-0000-0000-000000000006",
        "type": "review",
        "year": 2015,
        "title": "Blood",
        "link": "https://example.org/blood",
        "region": "US",
        "field": "Hematology",
        "keywords": ["anemia"],
        "slug": "blood-title",
    },
]


_WORD = re.compile(r"\w+")


@dataclass(slots=True)
class CatalogDocument:
    id: str
    type: str
    year: int
    title: str
    link: str
    region: str
    field: str
    slug: str
    keywords: list[str] = field(default_factory=list)
    authors: str | None = None
    source: str | None = None
    citation: str | None = None

    def row(self, score: float) -> dict[str, Any]:
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
            "score": score,
        }


def _words(text: str) -> list[str]:
    return _WORD.findall(text.lower())


def _squash(raw: float) -> float:
    return raw / (1.0 + raw) if raw > 0 else 0.0


def _admits(filters: SearchFilters, doc: CatalogDocument) -> bool:
    if filters.types and doc.type not in filters.types:
        return False
    if filters.region is not None and doc.region != filters.region:
        return False
    if filters.field is not None and doc.field != filters.field:
        return False
    if filters.year_from is not None and doc.year < filters.year_from:
        return False
    if filters.year_to is not None and doc.year > filters.year_to:
        return False
    return True


def _matches(request: RankingRequest, doc: CatalogDocument, relevance: float) -> bool:
    if request.slug is not None and doc.slug == request.slug:
        return True
    if not request.has_query:
        return True
    return fold_title(doc.title) == request.title_key or relevance > 0


class InMemoryDocumentStore:
    """Document store that applies :class:`RankingPolicy` in Python.

    Relevance is a token overlap count weighted 1.0 for titles and 0.4 for
    keywords, squashed the same way the SQLite store squashes bm25.
    """

    def __init__(self, documents: list[dict[str, Any]] | None = None) -> None:
        source = CATALOG if documents is None else documents
        self.documents = [CatalogDocument(**doc) for doc in source]
        self.policy = RankingPolicy()
        self.search_calls = 0
        self.capability_calls = 0
        self.autocomplete_calls = 0
        self.fail_with: Exception | None = None
        self.rows_override: list[dict[str, Any]] | None = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _relevance(self, tokens: list[str], doc: CatalogDocument, *, prefix: bool) -> float:
        if not tokens:
            return 0.0
        title_words = _words(doc.title)
        keyword_words = _words(" ".join(doc.keywords))

        def hit(words: list[str], token: str) -> bool:
            if prefix:
                return any(word.startswith(token) for word in words)
            return token in words

        if not all(hit(title_words + keyword_words, token) for token in tokens):
            return 0.0
        raw = sum(1.0 for t in tokens if hit(title_words, t))
        raw += sum(0.4 for t in tokens if hit(keyword_words, t))
        return _squash(raw)

    async def search_documents(
        self, request: RankingRequest, pagination: Pagination
    ) -> StorePage:
        self.search_calls += 1
        self._check()
        if self.rows_override is not None:
            return StorePage(rows=self.rows_override, total=len(self.rows_override))

        query_tokens = canonicalize(request.query).split()
        prefix_tokens = [
            token.rstrip("*") for token in request.prefix_query.split(" AND ") if token
        ]
        scored: list[tuple[CatalogDocument, float]] = []
        for doc in self.documents:
            if not _admits(request.filters, doc):
                continue
            relevance = self._relevance(query_tokens, doc, prefix=False)
            prefix_relevance = self._relevance(prefix_tokens, doc, prefix=True)
            if not _matches(request, doc, relevance + prefix_relevance):
                continue
            tier = self.policy.classify(request, slug=doc.slug, title=doc.title)
            scored.append((doc, self.policy.score(tier, relevance, prefix_relevance)))

        # Score desc, year desc, then insertion order.
        scored.sort(key=lambda item: (-item[1], -item[0].year))
        window = scored[pagination.offset : pagination.offset + pagination.size]
        return StorePage(rows=[doc.row(score) for doc, score in window], total=len(scored))

    async def distinct_values(self, dimension: str) -> list[str]:
        self.capability_calls += 1
        self._check()
        return sorted({getattr(doc, dimension) for doc in self.documents})

    async def year_range(self) -> tuple[int | None, int | None]:
        self._check()
        years = [doc.year for doc in self.documents]
        if not years:
            return None, None
        return min(years), max(years)

    async def autocomplete(self, prefix_query: str, substring: str, limit: int):
        self.autocomplete_calls += 1
        self._check()
        if self.rows_override is not None:
            return self.rows_override
        prefix_tokens = [token.rstrip("*") for token in prefix_query.split(" AND ")]
        ranked = []
        for doc in self.documents:
            relevance = self._relevance(prefix_tokens, doc, prefix=True)
            if relevance > 0 and substring.lower() in doc.title.lower():
                ranked.append((relevance, doc))
        ranked.sort(key=lambda item: -item[0])
        return [{"title": doc.title, "slug": doc.slug} for _, doc in ranked[:limit]]


class FakeCounters:
    def __init__(self) -> None:
        self.searches = 0
        self.visits = 0
        self.fail_with: Exception | None = None

    async def increment_search_count(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.searches += 1

    async def increment_visit_count(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.visits += 1


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def catalog() -> list[dict[str, Any]]:
    return [dict(doc) for doc in CATALOG]


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def counters() -> FakeCounters:
    return FakeCounters()


@pytest.fixture
def unavailable() -> StoreUnavailable:
    return StoreUnavailable("database is locked")


@pytest.fixture
def search_config() -> SearchConfig:
    return DEFAULT_SEARCH_CONFIG


def config_with(**rate_limit: Any) -> SearchConfig:
    return replace(
        DEFAULT_SEARCH_CONFIG,
        rate_limit=replace(DEFAULT_SEARCH_CONFIG.rate_limit, **rate_limit),
    )


@pytest.fixture
def make_config():
    return config_with


@pytest.fixture
def empty_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore([])
