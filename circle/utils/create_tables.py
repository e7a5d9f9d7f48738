"""
Utility script to create the document tables.

Each table stores one document per row. Sets of user ids are UUID[] columns
and a post's comments live in a JSONB array on the post row.
"""

import logging
from typing import Optional

import asyncpg
from asyncpg import Connection

from circle.config_secrets import DATABASE_URL

USERS_TABLE = """
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY,
        username TEXT UNIQUE NOT NULL,
        email TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        profile_picture TEXT,
        followers UUID[] NOT NULL DEFAULT '{}',
        followings UUID[] NOT NULL DEFAULT '{}',
        is_admin BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL,
        CONSTRAINT users_no_self_follow CHECK (NOT (id = ANY(followings)))
    );
"""

POSTS_TABLE = """
    CREATE TABLE IF NOT EXISTS posts (
        id UUID PRIMARY KEY,
        user_id UUID NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        img TEXT,
        likes UUID[] NOT NULL DEFAULT '{}',
        comments JSONB NOT NULL DEFAULT '[]'::jsonb,
        edited BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_posts_user_id ON posts(user_id);
    CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at DESC);
"""

NOTIFICATIONS_TABLE = """
    CREATE TABLE IF NOT EXISTS notifications (
        id UUID PRIMARY KEY,
        user_id UUID NOT NULL,
        type TEXT NOT NULL,
        by_user_id UUID NOT NULL,
        post_id UUID NOT NULL,
        date TIMESTAMPTZ NOT NULL,
        seen BOOLEAN NOT NULL DEFAULT FALSE
    );
    CREATE INDEX IF NOT EXISTS idx_notifications_user_date ON notifications(user_id, date DESC);
"""


async def create_tables(conn: Connection) -> None:
    """Create the users, posts and notifications tables if they don't exist"""
    await conn.execute(USERS_TABLE)
    await conn.execute(POSTS_TABLE)
    await conn.execute(NOTIFICATIONS_TABLE)


async def create_database_tables(connection_string: Optional[str] = None) -> None:
    """
    Create all database tables on a one-off connection.

    Args:
        connection_string: Database connection string. If not provided,
            uses the DATABASE_URL from config_secrets.py.
    """
    conn_string = connection_string or DATABASE_URL

    logging.info("Connecting to database...")
    conn = await asyncpg.connect(conn_string)
    try:
        await create_tables(conn)
        logging.info("Created users, posts and notifications tables")
    finally:
        await conn.close()
