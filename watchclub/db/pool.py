# watchclub/db/pool.py
"""
PostgreSQL connection pool manager using psycopg_pool.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from watchclub.config import settings
from watchclub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabasePoolManager:
    """
    Database connection pool manager.

    Owns the pool lifecycle (initialize on startup, close on shutdown) and
    hands out dict-row autocommit connections in UTC.
    """

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized and not self._closed

    async def initialize(self) -> None:
        """Initialize the connection pool on application startup."""
        if self._initialized:
            logger.warning("Database pool already initialized")
            return

        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        try:
            logger.info("Initializing database connection pool")
            pool_config = self._get_pool_config()

            self.pool = AsyncConnectionPool(
                conninfo=settings.DATABASE_URL,
                open=False,
                **pool_config,
            )
            await self.pool.open()
            await self.pool.wait()

            # Mark as initialized before the smoke test so connection() works
            self._initialized = True
            await self._test_pool_connections()

            logger.info(
                "Database pool initialized successfully",
                min_size=pool_config["min_size"],
                max_size=pool_config["max_size"],
                timeout=pool_config["timeout"],
            )

        except Exception as e:
            logger.error("Failed to initialize database pool", error=str(e))
            self._initialized = False
            if self.pool:
                try:
                    await self.pool.close()
                except Exception as cleanup_error:
                    logger.warning("Error discarding failed pool", error=str(cleanup_error))
                self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

    def _get_pool_config(self) -> dict[str, Any]:
        config = settings.get_db_pool_config()
        config.update(
            {
                "check": AsyncConnectionPool.check_connection,
                "configure": self._configure_connection,
            }
        )
        return config

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        """Configure each new connection from the pool."""
        conn.row_factory = dict_row
        await conn.set_autocommit(True)

        app_name = f"watchclub-{settings.environment}"
        await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute("SET statement_timeout = '30s'")

    async def _test_pool_connections(self) -> None:
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1 AS ok")
                row = await cur.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError("Database connection test failed - got unexpected result")

        logger.debug("Database pool connection test passed")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if not self._initialized or self._closed:
            return

        try:
            logger.info("Closing database connection pool")
            if self.pool:
                await asyncio.wait_for(self.pool.close(), timeout=30.0)
            logger.info("Database pool closed successfully")
        except TimeoutError:
            logger.warning("Database pool close timed out, forcing shutdown")
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Get a connection from the pool.

        Usage:
            async with db_pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1")
        """
        if not self._initialized:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        if self._closed:
            raise RuntimeError("Database pool is closed")

        async with self.pool.connection() as conn:
            yield conn

    async def health_check(self) -> dict[str, Any]:
        """Report pool availability and a timed round trip."""
        if not self.is_initialized:
            return {"healthy": False, "error": "Pool not initialized", "service": "database_pool"}

        start_time = time.time()
        try:
            async with self.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT 1 AS ok")
                    await cur.fetchone()
        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        stats = self.pool.get_stats()
        return {
            "healthy": True,
            "service": "database_pool",
            "connection_time_ms": round((time.time() - start_time) * 1000, 2),
            "pool_stats": {
                "pool_size": stats.get("pool_size", 0),
                "pool_available": stats.get("pool_available", 0),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }


# Global pool instance
db_pool = DatabasePoolManager()


async def get_db_connection():
    """Get database connection from pool."""
    return db_pool.connection()


async def db_health_check() -> dict[str, Any]:
    """Get database pool health status."""
    return await db_pool.health_check()
