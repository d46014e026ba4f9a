"""PostgreSQL connection pool shared by the catalog source and complaint store."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg

logger = logging.getLogger(__name__)


class Database:
    """
    Thin wrapper around an asyncpg pool.

    One pool is opened at startup and handed to every Postgres-backed
    component, so catalog reads and complaint writes share connections.
    """

    def __init__(self, database_url: str, min_size: int = 1, max_size: int = 10) -> None:
        """
        Initialize the database wrapper.

        Args:
            database_url: PostgreSQL connection string.
            min_size: Minimum pool size.
            max_size: Maximum pool size.
        """
        self._database_url = database_url
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool | None = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        """Establish connection pool to the database."""
        self._pool = await asyncpg.create_pool(
            self._database_url,
            min_size=self._min_size,
            max_size=self._max_size,
            command_timeout=10,
        )
        logger.info("Database pool connected")

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    async def check(self) -> bool:
        """Check database connectivity (for readiness probes). Returns True if connected."""
        if not self._pool:
            return False
        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (asyncpg.PostgresError, OSError) as e:
            logger.warning("Database check failed: %s", e)
            return False

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection from the pool."""
        if not self._pool:
            raise RuntimeError("Database not connected. Call connect() first.")
        async with self._pool.acquire() as conn:
            yield conn
