"""
asyncpg pool for the PostgreSQL document store.

The pgvector store needs the ``vector`` extension, so connect() creates
the configured extensions before the pool is handed out.
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from types import TracebackType
from typing import Any

import asyncpg

from tabular_memory.config.settings import get_settings

logger = logging.getLogger(__name__)

VECTOR_EXTENSION = "vector"

GET_EXTENSION_VERSION = "SELECT extversion FROM pg_extension WHERE extname = $1"


class Database:
    """
    Connection pool shared by the document store and the CLI.

    Args:
        database_url: PostgreSQL URL (defaults to settings.database_url)
        min_size: Minimum pool size
        max_size: Maximum pool size
        command_timeout: Per-statement timeout in seconds
        extensions: Extensions created on connect

    Usage:
        async with Database() as db:
            store = PgVectorDocumentStore(db)
            await store.initialize()
    """

    def __init__(
        self,
        database_url: str | None = None,
        min_size: int | None = None,
        max_size: int | None = None,
        command_timeout: float | None = None,
        extensions: Sequence[str] = (VECTOR_EXTENSION,),
    ):
        settings = get_settings()
        self._database_url = database_url or str(settings.database_url)
        self._min_size = min_size or settings.db_pool_min_size
        self._max_size = max_size or settings.db_pool_max_size
        self._command_timeout = command_timeout or settings.db_command_timeout
        self._extensions = tuple(extensions)
        self._pool: asyncpg.Pool | None = None

    async def connect(self) -> None:
        """Open the pool and create the required extensions."""
        try:
            pool = await asyncpg.create_pool(
                self._database_url,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error("Could not open database pool: %s", e)
            raise

        try:
            async with pool.acquire() as conn:
                for extension in self._extensions:
                    await conn.execute(f'CREATE EXTENSION IF NOT EXISTS "{extension}"')
        except asyncpg.PostgresError as e:
            logger.error("Could not create extensions %s: %s", self._extensions, e)
            await pool.close()
            raise

        self._pool = pool
        logger.info("Database pool open (size %d-%d)", self._min_size, self._max_size)

    async def close(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.info("Database pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        async with self.pool.acquire() as conn:
            yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement; returns the status tag such as "DELETE 1"."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def vector_extension_version(self) -> str | None:
        """Installed pgvector version, or None if the extension is missing."""
        return await self.fetchval(GET_EXTENSION_VERSION, VECTOR_EXTENSION)

    async def health_check(self) -> bool:
        """True if the pool answers a trivial query."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            logger.warning("Database health check failed: %s", e)
            return False
