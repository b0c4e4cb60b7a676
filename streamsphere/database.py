# database.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import psycopg
from psycopg_pool import AsyncConnectionPool

from streamsphere.config import DATABASE_URL, DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE

logger = logging.getLogger(__name__)


class DatabaseManager:
    def __init__(self, conninfo: str = DATABASE_URL):
        self.conninfo = conninfo
        self.pool: AsyncConnectionPool | None = None

    async def create_pool(self):
        """Create a connection pool to PostgreSQL using psycopg (async)"""
        if self.pool is not None:
            return self.pool

        try:
            # open=False keeps the constructor from opening outside a running loop
            self.pool = AsyncConnectionPool(
                conninfo=self.conninfo,
                min_size=DB_POOL_MIN_SIZE,
                max_size=DB_POOL_MAX_SIZE,
                open=False,
            )
            await self.pool.open()
            logger.info("Database connection pool created (min=%s, max=%s)", DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE)
            return self.pool
        except Exception:
            logger.exception("Failed to create database pool")
            self.pool = None
            raise

    async def close_pool(self):
        """Close the connection pool"""
        if self.pool:
            await self.pool.close()
            logger.info("Database connection pool closed")
            self.pool = None

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Get a database connection from the pool"""
        if not self.pool:
            await self.create_pool()

        async with self.pool.connection() as conn:
            yield conn


# Global database manager instance
db_manager = DatabaseManager()


# Dependency function for FastAPI
async def get_db_connection():
    async with db_manager.get_connection() as conn:
        yield conn


SCHEMA_STATEMENTS = [
    '''
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        email VARCHAR(255) UNIQUE NOT NULL,
        username VARCHAR(255) UNIQUE NOT NULL,
        hashed_password VARCHAR(255) NOT NULL,
        first_name VARCHAR(255),
        last_name VARCHAR(255),
        profile_image_url VARCHAR(500),
        role VARCHAR(50) DEFAULT 'consumer' NOT NULL CHECK (role IN ('consumer', 'creator')),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS videos (
        id SERIAL PRIMARY KEY,
        title TEXT NOT NULL,
        publisher TEXT NOT NULL,
        producer TEXT NOT NULL,
        genre TEXT NOT NULL,
        age_rating TEXT NOT NULL,
        description TEXT,
        thumbnail_url VARCHAR(500),
        video_url VARCHAR(500),
        duration INTEGER CHECK (duration >= 0),
        views INTEGER DEFAULT 0 NOT NULL CHECK (views >= 0),
        creator_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS comments (
        id SERIAL PRIMARY KEY,
        content TEXT NOT NULL,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        video_id INTEGER NOT NULL REFERENCES videos(id) ON DELETE CASCADE,
        likes INTEGER DEFAULT 0 NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    ''',
    # The unique pair is the conflict target of the rating upsert.
    '''
    CREATE TABLE IF NOT EXISTS ratings (
        id SERIAL PRIMARY KEY,
        rating INTEGER NOT NULL CHECK (rating >= 1 AND rating <= 5),
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        video_id INTEGER NOT NULL REFERENCES videos(id) ON DELETE CASCADE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT ratings_user_video_key UNIQUE (user_id, video_id)
    );
    ''',
    'CREATE INDEX IF NOT EXISTS idx_videos_creator_id ON videos(creator_id);',
    'CREATE INDEX IF NOT EXISTS idx_videos_created_at ON videos(created_at DESC);',
    'CREATE INDEX IF NOT EXISTS idx_videos_genre ON videos(genre);',
    'CREATE INDEX IF NOT EXISTS idx_comments_video_id ON comments(video_id);',
    'CREATE INDEX IF NOT EXISTS idx_comments_created_at ON comments(created_at DESC);',
    'CREATE INDEX IF NOT EXISTS idx_ratings_video_id ON ratings(video_id);',
]


async def create_tables(conn: psycopg.AsyncConnection):
    """Create all necessary tables and indexes if they do not exist yet"""
    for statement in SCHEMA_STATEMENTS:
        await conn.execute(statement)
    await conn.commit()
    logger.info("Database tables created/verified successfully")


# Startup and shutdown events
async def startup_database():
    """Initialize database on startup"""
    await db_manager.create_pool()
    async with db_manager.get_connection() as conn:
        await create_tables(conn)


async def shutdown_database():
    """Cleanup database connections on shutdown"""
    await db_manager.close_pool()
