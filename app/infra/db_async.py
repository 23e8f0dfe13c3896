# app/infra/db_async.py
"""
Async database connection pool (asyncpg).

Only used when ``STORAGE_BACKEND=postgres``.  The pool is created in the
FastAPI lifespan and closed on shutdown.
"""
from __future__ import annotations
from typing import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg
from app.config import settings
from app.infra.logging_config import get_logger

logger = get_logger(__name__)

# Global connection pool
_pool: asyncpg.Pool | None = None


async def init_pool(dsn: str | None = None) -> None:
    """Initialize connection pool on startup"""
    global _pool

    if _pool is not None:
        return

    dsn = dsn or settings.database_url
    if not dsn:
        raise RuntimeError("database_url is required for the postgres storage backend")

    logger.info("Initializing asyncpg connection pool")

    _pool = await asyncpg.create_pool(
        dsn=dsn,
        min_size=settings.pg_pool_min,
        max_size=settings.pg_pool_max,
        command_timeout=30,
        server_settings={
            'application_name': 'pawtrail',
        }
    )

    logger.info(f"Connection pool created: min={settings.pg_pool_min}, max={settings.pg_pool_max}")


async def close_pool() -> None:
    """Close connection pool on shutdown"""
    global _pool

    if _pool is None:
        return

    logger.info("Closing connection pool")
    await _pool.close()
    _pool = None


@asynccontextmanager
async def db_conn(transactional: bool = False) -> AsyncIterator[asyncpg.Connection]:
    """
    Get database connection from pool.

    Usage:
        async with db_conn() as conn:
            row = await conn.fetchrow("SELECT * FROM pets WHERE id = $1", pet_id)

    Args:
        transactional: wrap the block in a transaction (commit on success,
            rollback on exception).
    """
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")

    async with _pool.acquire() as conn:
        if transactional:
            async with conn.transaction():
                yield conn
        else:
            yield conn
