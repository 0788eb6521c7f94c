"""Read-only connection pool over the platform store."""

from typing import Any

import asyncpg
import structlog

logger = structlog.get_logger()


class Database:
    """Async PostgreSQL pool; the engine only ever reads through it."""

    def __init__(
        self,
        database_url: str,
        max_size: int = 10,
        command_timeout: float | None = None,
    ):
        self.database_url = database_url
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Create connection pool."""
        self.pool = await asyncpg.create_pool(
            self.database_url,
            min_size=min(2, self.max_size),
            max_size=self.max_size,
            command_timeout=self.command_timeout,
        )
        logger.info(
            "Database pool created",
            max_size=self.max_size,
            command_timeout=self.command_timeout,
        )

    async def close(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")

    def _connected_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise RuntimeError("Database not connected")
        return self.pool

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        return await self._connected_pool().fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        return await self._connected_pool().fetchrow(query, *args)
