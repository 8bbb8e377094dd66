"""
Async PostgreSQL connection pool for the reference report collaborators.

Only PostgresReportProvider and PostgresEditSink use this module; hosts that
inject their own data provider never touch it.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the connection pool
- get_db_pool(): Get the pool instance (initializes if needed)
- close_db(): Gracefully close the pool

Connection Pool Configuration (from Settings):
- db_pool_min_size: minimum idle connections kept in pool (default 2)
- db_pool_max_size: maximum connections in pool (default 10)
- db_command_timeout: query timeout in seconds (default 60)

Usage:
    await init_db()

    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch("SELECT * FROM pipeline_report_fact LIMIT 10")

    await close_db()
"""

import logging
from typing import Optional

import asyncpg
from asyncpg import Pool

from pipeline_report.core.config import get_settings


logger = logging.getLogger(__name__)


# =============================================================================
# Global Pool Singleton
# =============================================================================

# None until init_db() is called
_pool: Optional[Pool] = None


# =============================================================================
# Pool Lifecycle Functions
# =============================================================================

async def init_db() -> Pool:
    """
    Initialize the database connection pool.

    Idempotent: returns the existing pool if one was already created.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        ValueError: If DATABASE_URL is not configured.
        asyncpg.PostgresError: If connection to the database fails.
        OSError: If the database host is unreachable.
    """
    global _pool

    if _pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise ValueError("DATABASE_URL is not configured")

        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
        logger.info("Database connection pool initialized")

    return _pool


async def get_db_pool() -> Pool:
    """
    Get the database connection pool, initializing it lazily.

    Returns:
        Pool: The asyncpg connection pool instance.
    """
    global _pool

    if _pool is None:
        await init_db()

    assert _pool is not None, "Pool should be initialized after init_db()"

    return _pool


async def close_db() -> None:
    """
    Close the database connection pool gracefully.

    Idempotent; subsequent get_db_pool() calls create a new pool.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Database connection pool closed")

