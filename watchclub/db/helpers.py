# watchclub/db/helpers.py
"""
Database helper functions for common patterns.
Reduces boilerplate in the repository layer.
"""

from typing import Any

import psycopg

from watchclub.db.pool import get_db_connection
from watchclub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def fetch_one(query: str, params: tuple = ()) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters

    Returns:
        Dict with row data or None if no results
    """
    try:
        async with await get_db_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchone()

    except psycopg.Error as e:
        logger.error("Database fetch_one error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_one") from e


async def fetch_all(query: str, params: tuple = ()) -> list[dict[str, Any]]:
    """
    Execute query and return all rows as list of dicts.

    Row order is whatever the query's ORDER BY says; callers that select by
    index depend on it.
    """
    try:
        async with await get_db_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    except psycopg.Error as e:
        logger.error("Database fetch_all error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e


async def execute_query(query: str, params: tuple = ()) -> int:
    """
    Execute query and return number of affected rows.
    """
    try:
        async with await get_db_connection() as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount

    except psycopg.Error as e:
        logger.error("Database execute error", query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="execute") from e
