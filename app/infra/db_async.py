# app/infra/db_async.py
"""
Async Postgres connection pool (asyncpg).
"""
from __future__ import annotations
from typing import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg
from app.config import settings
from app.infra.logging_config import get_logger

logger = get_logger(__name__)

_pool: asyncpg.Pool | None = None


async def init_pool(dsn: str | None = None) -> None:
    """Create the global pool on startup (no-op if already created)."""
    global _pool

    if _pool is not None:
        return

    logger.info("Initializing asyncpg connection pool")
    _pool = await asyncpg.create_pool(
        dsn=dsn or settings.database_url,
        min_size=settings.pg_pool_min,
        max_size=settings.pg_pool_max,
        command_timeout=60,
        server_settings={
            "application_name": "onboarding_bot",
        },
    )
    logger.info("Connection pool created: min=%d, max=%d", settings.pg_pool_min, settings.pg_pool_max)


async def close_pool() -> None:
    """Close the pool on shutdown"""
    global _pool

    if _pool is None:
        return

    await _pool.close()
    _pool = None
    logger.info("Connection pool closed")


@asynccontextmanager
async def db_conn() -> AsyncIterator[asyncpg.Connection]:
    """
    Borrow a connection from the pool.

    Usage:
        async with db_conn() as conn:
            row = await conn.fetchrow("SELECT 1")
    """
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")

    async with _pool.acquire() as conn:
        yield conn
