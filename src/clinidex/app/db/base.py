from __future__ import annotations

import sqlite3
from contextlib import asynccontextmanager
from typing import AsyncIterator

from aiosqlitepool import (
    PoolClosedError,
    PoolConnectionAcquireTimeoutError,
    SQLiteConnectionPool,
)

from clinidex.app.services.search_pipeline.exceptions import StoreUnavailable


async def run_in_transaction(conn, func, *args, **kwargs):
    """Execute the given coroutine within a transaction."""
    try:
        result = await func(*args, **kwargs)
        await conn.commit()
        return result
    except Exception:
        if conn.in_transaction:
            await conn.rollback()
        raise


class BaseRepository:
    """Common functionality shared by repository classes."""

    def __init__(self, pool: SQLiteConnectionPool):
        self.pool = pool

    async def _run_in_transaction(self, conn, func, *args, **kwargs):
        return await run_in_transaction(conn, func, *args, **kwargs)

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator:
        """Borrow a pooled connection, reporting backend failures uniformly."""

        try:
            async with self.pool.connection() as conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"{operation} failed: {exc}") from exc
        except PoolConnectionAcquireTimeoutError as exc:
            raise StoreUnavailable(
                f"{operation} timed out waiting for a connection"
            ) from exc
        except PoolClosedError as exc:
            raise StoreUnavailable(f"{operation} failed: pool is closed") from exc
