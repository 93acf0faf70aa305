"""Postgres access with RLS context.

Every request gets a connection inside a transaction where
``app.current_user_id`` is set, so Row-Level Security policies on the
cycle tables see the caller's identity.

Uses ``asyncpg`` directly.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from cyclesync.config import Settings, get_settings

logger = logging.getLogger("cyclesync.db")

# Module-level connection pool — initialized once at app startup
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        s.db_pool_min_size,
        s.db_pool_max_size,
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized — call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection(
    user_id: uuid.UUID | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a connection with the RLS session variable set.

    Usage::

        async with get_connection(user_id=ctx.user_id) as conn:
            row = await conn.fetchrow("SELECT * FROM cycle_profiles WHERE user_id = $1", uid)

    ``set_config(..., true)`` is transaction-scoped, so the setting
    disappears when the connection is returned to the pool.
    """
    pool = get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            if user_id:
                await conn.execute(
                    "SELECT set_config('app.current_user_id', $1, true)", str(user_id)
                )
            yield conn


async def execute(query: str, *args: Any, user_id: uuid.UUID | None = None) -> str:
    """Execute a single statement with RLS context and return status."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.execute(query, *args)


async def fetch(
    query: str, *args: Any, user_id: uuid.UUID | None = None
) -> list[asyncpg.Record]:
    """Fetch rows with RLS context."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.fetch(query, *args)


async def fetchrow(
    query: str, *args: Any, user_id: uuid.UUID | None = None
) -> asyncpg.Record | None:
    """Fetch a single row with RLS context."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.fetchrow(query, *args)


async def fetchval(query: str, *args: Any, user_id: uuid.UUID | None = None) -> Any:
    """Fetch a single value with RLS context."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.fetchval(query, *args)
