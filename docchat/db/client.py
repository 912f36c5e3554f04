from __future__ import annotations

import asyncpg
import structlog

from docchat.core.config import get_settings
from docchat.core.exceptions import StorageError

logger = structlog.get_logger(__name__)

_pool: asyncpg.Pool | None = None

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    content TEXT NOT NULL,
    extension TEXT NOT NULL,
    chunks JSONB NOT NULL,
    summary TEXT,
    source TEXT,
    created_at TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS documents_created_at_idx ON documents (created_at);
CREATE TABLE IF NOT EXISTS app_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None or _pool._closed:
        settings = get_settings()
        if not settings.database_url:
            raise StorageError("DATABASE_URL is not configured.")
        try:
            _pool = await asyncpg.create_pool(
                dsn=settings.database_url,
                min_size=1,
                max_size=5,
                command_timeout=60,
            )
            async with _pool.acquire() as conn:
                await conn.execute(SCHEMA)
            logger.info("database_pool_created")
        except Exception as exc:
            logger.error("database_pool_creation_failed", error=str(exc))
            raise StorageError(str(exc)) from exc
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None and not _pool._closed:
        await _pool.close()
        _pool = None
        logger.info("database_pool_closed")


async def check_db_connection() -> bool:
    """Ping the database. Returns True if healthy."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        return True
    except Exception:
        return False
