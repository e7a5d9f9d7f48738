import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg
from asyncpg import Connection, Pool

from circle.config_secrets import DATABASE_URL, DB_POOL_MAX_SIZE, DB_POOL_MIN_SIZE
from circle.utils.create_tables import create_tables

logger = logging.getLogger(__name__)

# Database connection pool
pool: Optional[Pool] = None


async def _init_connection(conn: Connection) -> None:
    """Decode JSONB columns (embedded comments) to Python objects"""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


async def init_db() -> Pool:
    """Initialize database connection pool and make sure the schema exists"""
    global pool
    if pool is None:
        pool = await asyncpg.create_pool(
            DATABASE_URL,
            min_size=DB_POOL_MIN_SIZE,
            max_size=DB_POOL_MAX_SIZE,
            init=_init_connection,
        )
        async with pool.acquire() as conn:
            await create_tables(conn)
        logger.info("Database pool ready (%s-%s connections)", DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE)
    return pool


async def close_db() -> None:
    """Close database connection pool"""
    global pool
    if pool:
        await pool.close()
        pool = None


@asynccontextmanager
async def get_connection() -> AsyncIterator[Connection]:
    """Borrow a connection from the pool for the duration of the block"""
    if pool is None:
        await init_db()
    assert pool is not None
    async with pool.acquire() as conn:
        yield conn
