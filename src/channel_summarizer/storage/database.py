"""PostgreSQL connection pool for the audit log and allowlist."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg

from channel_summarizer.logging import format_log_context, get_logger

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS user_whitelist (
    user_id BIGINT PRIMARY KEY,
    can_promote_others BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS history (
    id BIGSERIAL PRIMARY KEY,
    user_id BIGINT NOT NULL,
    target_channel_id BIGINT NOT NULL,
    token_spent INTEGER NOT NULL DEFAULT 0,
    date BIGINT NOT NULL
);

CREATE INDEX IF NOT EXISTS history_user_date_idx ON history (user_id, date DESC);
"""


class DatabaseManager:
    """Owns the asyncpg pool. Construct once at startup and pass it around."""

    def __init__(self, dsn: str, max_size: int = 5) -> None:
        self._dsn = dsn
        self._max_size = max_size
        self._pool: asyncpg.Pool | None = None

    async def initialize(self) -> None:
        """Open the pool and create tables if missing."""
        self._pool = await asyncpg.create_pool(self._dsn, min_size=1, max_size=self._max_size)
        await self.ensure_schema()
        logger.info(f'{format_log_context("initialized", component="database")}')

    async def ensure_schema(self) -> None:
        async with self.connection() as conn:
            await conn.execute(SCHEMA)

    async def close(self) -> None:
        """Close database connections."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._pool

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[asyncpg.Connection, None]:
        async with self.pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[asyncpg.Connection, None]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn
