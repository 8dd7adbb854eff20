"""Database connection and migration management."""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import asyncpg
import structlog

from taskmanager.errors import StoreUnavailableError

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# Failures that mean the store could not answer, as opposed to a query error
_UNAVAILABLE_ERRORS = (
    asyncio.TimeoutError,
    OSError,
    asyncpg.exceptions.InterfaceError,
)


class Database:
    """Owns the asyncpg connection pool for the lifetime of the application.

    Constructed once at startup, opened with ``connect()`` and closed with
    ``close()``. Services receive the instance explicitly and borrow
    connections through ``acquire()``.
    """

    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 10.0,
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> asyncpg.Pool:
        """Create the connection pool.

        Returns:
            asyncpg connection pool
        """
        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.timeout,
            )
        except Exception as e:
            logger.error("database_pool_creation_failed", error=str(e))
            raise

        logger.info(
            "database_pool_created",
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
        )
        return self._pool

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("database_pool_closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection from the pool.

        Raises:
            StoreUnavailableError: If the pool is not open, a connection
                cannot be acquired in time, or a statement times out
        """
        if self._pool is None:
            raise StoreUnavailableError("Database pool not initialized")

        try:
            async with self._pool.acquire(timeout=self.timeout) as conn:
                yield conn
        except _UNAVAILABLE_ERRORS as e:
            logger.error(
                "database_unavailable",
                error_type=type(e).__name__,
                error=str(e),
            )
            raise StoreUnavailableError() from e

    async def run_migrations(self) -> None:
        """Run all SQL migrations in order.

        Migrations are idempotent (IF NOT EXISTS) and can be re-run safely.
        """
        migration_files = sorted(MIGRATIONS_DIR.glob("*.sql"))

        if not migration_files:
            logger.info("no_migrations_found")
            return

        async with self.acquire() as conn:
            for migration_file in migration_files:
                try:
                    await conn.execute(migration_file.read_text())
                    logger.info("migration_applied", file=migration_file.name)
                except Exception as e:
                    logger.error(
                        "migration_failed",
                        file=migration_file.name,
                        error=str(e),
                    )
                    raise

    async def health_check(self) -> bool:
        """Check database connectivity.

        Returns:
            True if database is healthy, False otherwise
        """
        try:
            async with self.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            return False
