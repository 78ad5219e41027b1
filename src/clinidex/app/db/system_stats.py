from __future__ import annotations

from dataclasses import dataclass

from .base import BaseRepository

STATS_ROW_ID = 1


@dataclass(slots=True, frozen=True)
class SystemStats:
    visit_count: int = 0
    search_count: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"visitCount": self.visit_count, "searchCount": self.search_count}


class SystemStatsRepository(BaseRepository):
    """Single-row visit and search counters."""

    async def ensure_row(self) -> None:
        """Create the singleton counters row if it is missing."""

        async with self._connection("Counter bootstrap") as conn:
            await conn.execute(
                "INSERT OR IGNORE INTO system_stats (id, visit_count, search_count) "
                "VALUES (?, 0, 0)",
                (STATS_ROW_ID,),
            )
            await conn.commit()

    async def get_stats(self) -> SystemStats:
        async with self._connection("Counter read") as conn:
            cursor = await conn.execute(
                "SELECT visit_count, search_count FROM system_stats WHERE id = ?",
                (STATS_ROW_ID,),
            )
            row = await cursor.fetchone()
        if row is None:
            return SystemStats()
        return SystemStats(
            visit_count=int(row["visit_count"]),
            search_count=int(row["search_count"]),
        )

    async def increment_visit_count(self) -> None:
        await self._increment("visit_count")

    async def increment_search_count(self) -> None:
        await self._increment("search_count")

    async def _increment(self, column: str) -> None:
        async with self._connection("Counter increment") as conn:
            await conn.execute(
                f"UPDATE system_stats SET {column} = {column} + 1 WHERE id = ?",
                (STATS_ROW_ID,),
            )
            await conn.commit()


__all__ = ["STATS_ROW_ID", "SystemStats", "SystemStatsRepository"]
