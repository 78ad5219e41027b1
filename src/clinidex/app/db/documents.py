from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, Mapping

import orjson
from aiosqlitepool import SQLiteConnectionPool

from clinidex.app.services.search_config import RankingWeights
from clinidex.app.services.search_pipeline.models import (
    MatchTier,
    Pagination,
    StorePage,
)
from clinidex.app.services.search_pipeline.ranking import (
    PHRASE_RELEVANCE_MULTIPLIER,
    RankingPolicy,
    RankingRequest,
    fold_title,
)
from clinidex.app.services.search_pipeline.store import DIMENSIONS
from .base import BaseRepository

logger = logging.getLogger(__name__)


_RESULT_COLUMNS = (
    "d.id, d.type, d.region, d.field, d.title, d.year, d.link, d.slug, "
    "d.authors, d.source, d.citation, d.keywords"
)

_HITS_CTE = """
{name} AS (
    SELECT rowid AS pk,
           -bm25(documents_fts, :title_weight, :keyword_weight) AS relevance
    FROM documents_fts
    WHERE documents_fts MATCH :{param}
)"""


def _quote_term(term: str) -> str:
    return '"' + term.replace('"', '""') + '"'


def websearch_expression(text: str) -> str:
    """Translate free text into an FTS5 expression that tolerates punctuation.

    Each whitespace separated term becomes a quoted string, so the tokenizer
    splits ``AHA/ACC`` the same way it split the indexed title. Terms are
    AND-joined; a leading ``-`` excludes a term. Terms without any letter or
    digit are dropped.
    """

    include: list[str] = []
    exclude: list[str] = []
    for raw in text.split():
        negate = raw.startswith("-") and len(raw) > 1
        term = raw[1:] if negate else raw
        if not any(ch.isalnum() for ch in term):
            continue
        (exclude if negate else include).append(_quote_term(term))

    if not include:
        return ""
    expression = " AND ".join(include)
    for term in exclude:
        expression += f" NOT {term}"
    return expression


def _squash(column: str) -> str:
    return f"COALESCE({column} / (1.0 + {column}), 0.0)"


def compose_search_sql(
    request: RankingRequest,
    weights: RankingWeights,
    policy: RankingPolicy | None = None,
) -> tuple[str, str, dict[str, Any]]:
    """Return ``(select_sql, count_sql, params)`` for one ranked search.

    Tier scores come from ``policy``; exact titles compare the stored
    ``title_key`` with the folded query so non-ASCII case is honoured.
    """

    policy = policy or RankingPolicy()

    params: dict[str, Any] = {
        "title_weight": weights.title_weight,
        "keyword_weight": weights.keyword_weight,
        "query_supplied": 1 if request.has_query else 0,
    }
    ctes: list[str] = []
    joins: list[str] = []
    relevance_terms: list[str] = []
    text_matches: list[str] = []

    if request.has_query:
        params["title_key"] = request.title_key
        text_matches.append("d.title_key = :title_key")

        phrase_query = websearch_expression(request.query)
        if phrase_query:
            params["phrase_query"] = phrase_query
            ctes.append(_HITS_CTE.format(name="phrase_hits", param="phrase_query"))
            joins.append("LEFT JOIN phrase_hits ph ON ph.pk = d.pk")
            relevance_terms.append(
                f"{PHRASE_RELEVANCE_MULTIPLIER!r} * {_squash('ph.relevance')}"
            )
            text_matches.append("ph.pk IS NOT NULL")

        if request.prefix_query:
            params["prefix_query"] = request.prefix_query
            ctes.append(_HITS_CTE.format(name="prefix_hits", param="prefix_query"))
            joins.append("LEFT JOIN prefix_hits px ON px.pk = d.pk")
            relevance_terms.append(_squash("px.relevance"))
            text_matches.append("px.pk IS NOT NULL")

    cases: list[str] = []
    if request.slug is not None:
        params["slug"] = request.slug
        slug_score = policy.score(MatchTier.SLUG_EXACT)
        cases.append(f"WHEN d.slug = :slug THEN {slug_score!r}")
    if request.has_query:
        title_score = policy.score(MatchTier.TITLE_EXACT)
        cases.append(f"WHEN d.title_key = :title_key THEN {title_score!r}")
        fallback = " + ".join(relevance_terms) or "0.0"
    else:
        fallback = repr(policy.score(MatchTier.NO_QUERY))
    score_sql = f"CASE {' '.join(cases)} ELSE {fallback} END" if cases else fallback

    where: list[str] = []
    if text_matches:
        text_clause = " OR ".join(text_matches)
        if request.slug is not None:
            where.append(f"(d.slug = :slug OR {text_clause})")
        else:
            where.append(f"({text_clause})")

    filters = request.filters
    if filters.types:
        placeholders = []
        for index, doc_type in enumerate(filters.types):
            params[f"type_{index}"] = doc_type
            placeholders.append(f":type_{index}")
        where.append(f"d.type IN ({', '.join(placeholders)})")
    if filters.region is not None:
        params["region"] = filters.region
        where.append("d.region = :region")
    if filters.field is not None:
        params["field"] = filters.field
        where.append("d.field = :field")
    if filters.year_from is not None:
        params["year_from"] = filters.year_from
        where.append("d.year >= :year_from")
    if filters.year_to is not None:
        params["year_to"] = filters.year_to
        where.append("d.year <= :year_to")

    with_sql = f"WITH {','.join(ctes)}\n" if ctes else ""
    join_sql = "\n".join(joins)
    where_sql = f"WHERE {' AND '.join(where)}" if where else ""

    select_sql = f"""
        {with_sql}SELECT {_RESULT_COLUMNS},
               {score_sql} AS score,
               :query_supplied AS query_supplied
        FROM documents d
        {join_sql}
        {where_sql}
        ORDER BY query_supplied DESC, score DESC, d.year DESC, d.pk ASC
        LIMIT :limit OFFSET :offset
    """
    count_sql = f"""
        {with_sql}SELECT COUNT(*) AS total
        FROM documents d
        {join_sql}
        {where_sql}
    """
    return select_sql, count_sql, params


class DocumentsRepository(BaseRepository):
    """Read side of the document catalog backed by SQLite FTS5."""

    def __init__(
        self,
        pool: SQLiteConnectionPool,
        weights: RankingWeights,
        policy: RankingPolicy | None = None,
    ) -> None:
        super().__init__(pool)
        self._weights = weights
        self._policy = policy or RankingPolicy()

    async def search_documents(
        self, request: RankingRequest, pagination: Pagination
    ) -> StorePage:
        select_sql, count_sql, params = compose_search_sql(
            request, self._weights, self._policy
        )
        async with self._connection("Document search") as conn:
            cursor = await conn.execute(count_sql, params)
            row = await cursor.fetchone()
            total = int(row["total"]) if row else 0
            if total == 0 or pagination.offset >= total:
                return StorePage(rows=[], total=total)

            cursor = await conn.execute(
                select_sql,
                {**params, "limit": pagination.size, "offset": pagination.offset},
            )
            rows = await cursor.fetchall()
        return StorePage(rows=list(rows), total=total)

    async def distinct_values(self, dimension: str) -> list[str]:
        if dimension not in DIMENSIONS:
            raise ValueError(f"Unknown dimension: {dimension}")
        async with self._connection(f"Distinct {dimension} lookup") as conn:
            cursor = await conn.execute(
                f"SELECT DISTINCT {dimension} AS value FROM documents "
                f"WHERE {dimension} IS NOT NULL ORDER BY {dimension}"
            )
            rows = await cursor.fetchall()
        return [row["value"] for row in rows]

    async def year_range(self) -> tuple[int | None, int | None]:
        async with self._connection("Year range lookup") as conn:
            cursor = await conn.execute(
                "SELECT MIN(year) AS min_year, MAX(year) AS max_year FROM documents"
            )
            row = await cursor.fetchone()
        if row is None:
            return None, None
        return row["min_year"], row["max_year"]

    async def autocomplete(
        self, prefix_query: str, substring: str, limit: int
    ) -> list[Mapping[str, Any]]:
        if not prefix_query or not substring:
            return []
        async with self._connection("Autocomplete lookup") as conn:
            cursor = await conn.execute(
                """
                SELECT d.title, d.slug,
                       -bm25(documents_fts, :title_weight, :keyword_weight) AS relevance
                FROM documents_fts
                JOIN documents d ON d.pk = documents_fts.rowid
                WHERE documents_fts MATCH :prefix_query
                  AND instr(d.title_key, :substring_key) > 0
                ORDER BY relevance DESC, d.pk ASC
                LIMIT :limit
                """,
                {
                    "title_weight": self._weights.title_weight,
                    "keyword_weight": self._weights.keyword_weight,
                    "prefix_query": prefix_query,
                    "substring_key": fold_title(substring),
                    "limit": limit,
                },
            )
            rows = await cursor.fetchall()
        return list(rows)

    async def count(self) -> int:
        async with self._connection("Document count") as conn:
            cursor = await conn.execute("SELECT COUNT(*) AS total FROM documents")
            row = await cursor.fetchone()
        return int(row["total"]) if row else 0

    async def insert_many(self, documents: Iterable[Mapping[str, Any]]) -> int:
        """Append catalog documents; returns the number of rows written.

        Only used by the catalog loader and tests; the HTTP surface is read-only.
        """

        records = [_document_params(doc) for doc in documents]
        if not records:
            return 0

        async with self._connection("Catalog insert") as conn:

            async def _tx() -> None:
                await conn.executemany(
                    """
                    INSERT INTO documents (
                        id, type, year, title, title_key, link, region, field,
                        keywords, slug, authors, source, citation
                    ) VALUES (
                        :id, :type, :year, :title, :title_key, :link, :region, :field,
                        :keywords, :slug, :authors, :source, :citation
                    )
                    """,
                    records,
                )

            await self._run_in_transaction(conn, _tx)
        logger.info("Inserted %d catalog documents", len(records))
        return len(records)


def _document_params(doc: Mapping[str, Any]) -> dict[str, Any]:
    keywords = doc.get("keywords") or []
    return {
        "id": str(doc.get("id") or uuid.uuid4()),
        "type": doc["type"],
        "year": int(doc["year"]),
        "title": doc["title"],
        "title_key": fold_title(doc["title"]),
        "link": doc["link"],
        "region": doc["region"],
        "field": doc["field"],
        "keywords": orjson.dumps(list(keywords)).decode("utf-8"),
        "slug": doc["slug"],
        "authors": doc.get("authors"),
        "source": doc.get("source"),
        "citation": doc.get("citation"),
    }


__all__ = ["DocumentsRepository", "compose_search_sql", "websearch_expression"]
