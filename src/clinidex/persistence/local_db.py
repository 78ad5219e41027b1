import logging
from pathlib import Path
from typing import Any, Mapping, TypeVar, cast

import aiosqlite
from aiosqlitepool import SQLiteConnectionPool
from aiosqlitepool.protocols import Connection as SQLitePoolConnection

from clinidex.settings import settings

from clinidex.app.db.base import run_in_transaction
from clinidex.app.db.documents import DocumentsRepository
from clinidex.app.db.system_stats import SystemStatsRepository
from clinidex.app.services.search_config import RankingWeights
from clinidex.app.services.search_pipeline.models import Pagination, StorePage
from clinidex.app.services.search_pipeline.ranking import RankingRequest


RepositoryT = TypeVar("RepositoryT")

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


class LocalDB:
    """Facade around SQLite repositories with shared connection pooling."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        weights: RankingWeights | None = None,
    ):
        raw_path = Path(db_path or settings.DATABASE.path)
        self.db_path = raw_path.expanduser().resolve(strict=False)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.pool: SQLiteConnectionPool | None = None
        self._weights = weights or RankingWeights(
            title_weight=float(settings.SEARCH.ranking.title_weight),
            keyword_weight=float(settings.SEARCH.ranking.keyword_weight),
        )
        self._documents: DocumentsRepository | None = None
        self._system_stats: SystemStatsRepository | None = None

    async def __aenter__(self) -> "LocalDB":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def init(self) -> None:
        if self.pool is not None:
            return

        is_new = not self.db_path.exists()
        acquisition_timeout = int(settings.DATABASE.pool_acquire_timeout)

        async def _connection_factory() -> SQLitePoolConnection:
            return cast(SQLitePoolConnection, await self._create_connection())

        pool = SQLiteConnectionPool(
            _connection_factory,
            pool_size=int(settings.DATABASE.pool_size),
            acquisition_timeout=acquisition_timeout,
        )
        self.pool = pool
        try:
            await self._ensure_schema(is_new)
            self._configure_repositories()
            await self.system_stats.ensure_row()
        except Exception:
            await pool.close()
            self.pool = None
            self._documents = None
            self._system_stats = None
            raise

    async def close(self) -> None:
        if self.pool is not None:
            try:
                await self.pool.close()
            finally:
                self.pool = None
        self._documents = None
        self._system_stats = None

    async def _create_connection(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(
            self.db_path, timeout=float(settings.DATABASE.timeout)
        )
        await conn.execute(
            f"PRAGMA busy_timeout = {int(settings.DATABASE.busy_timeout)}"
        )
        await conn.execute(f"PRAGMA mmap_size = {int(settings.DATABASE.mmap_size)}")
        await conn.execute("PRAGMA journal_mode = WAL")
        await conn.execute("PRAGMA synchronous = NORMAL")
        await conn.execute("PRAGMA temp_store = MEMORY")
        conn.row_factory = aiosqlite.Row
        return conn

    async def _ensure_schema(self, is_new: bool) -> None:
        if is_new:
            logger.info("Creating new database at %s", self.db_path)
        if not self.pool:
            raise RuntimeError("Connection pool not initialized")
        schema_sql = SCHEMA_PATH.read_text()
        async with self.pool.connection() as conn:
            await run_in_transaction(
                conn,
                conn.executescript,
                schema_sql,
            )

    def _configure_repositories(self) -> None:
        if not self.pool:
            raise RuntimeError("Connection pool not initialized")
        self._documents = DocumentsRepository(self.pool, self._weights)
        self._system_stats = SystemStatsRepository(self.pool)

    def _require_repository(
        self, repository: RepositoryT | None, name: str
    ) -> RepositoryT:
        if repository is None:
            raise RuntimeError(
                f"{name} repository is not initialised; call init() before accessing it."
            )
        return repository

    @property
    def documents(self) -> DocumentsRepository:
        """Return the documents repository.

        Raises a :class:`RuntimeError` when accessed before the database has been
        initialised so configuration errors are caught early.
        """

        return self._require_repository(self._documents, "Documents")

    @property
    def system_stats(self) -> SystemStatsRepository:
        """Return the counters repository."""

        return self._require_repository(self._system_stats, "System stats")

    # DocumentStore and Counters are served straight off the facade so services
    # can hold the LocalDB before init() has created the repositories.

    async def search_documents(
        self, request: RankingRequest, pagination: Pagination
    ) -> StorePage:
        return await self.documents.search_documents(request, pagination)

    async def distinct_values(self, dimension: str) -> list[str]:
        return await self.documents.distinct_values(dimension)

    async def year_range(self) -> tuple[int | None, int | None]:
        return await self.documents.year_range()

    async def autocomplete(
        self, prefix_query: str, substring: str, limit: int
    ) -> list[Mapping[str, Any]]:
        return await self.documents.autocomplete(prefix_query, substring, limit)

    async def increment_search_count(self) -> None:
        await self.system_stats.increment_search_count()

    async def increment_visit_count(self) -> None:
        await self.system_stats.increment_visit_count()
