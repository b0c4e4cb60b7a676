# crud.py
import logging
from typing import Optional, List, Dict, Any, Tuple

import psycopg
from psycopg import AsyncConnection  # For type hints
from psycopg.rows import dict_row

from streamsphere.errors import Conflict

logger = logging.getLogger(__name__)

# Columns attached as the nested "creator" / "user" object on videos and comments
USER_SUMMARY_COLUMNS = ("id", "username", "first_name", "last_name", "profile_image_url", "role")


def _user_summary_select(alias: str, prefix: str) -> str:
    return ",\n            ".join(f"{alias}.{col} AS {prefix}{col}" for col in USER_SUMMARY_COLUMNS)


def _pop_user_summary(row: Dict[str, Any], prefix: str) -> Dict[str, Any]:
    return {col: row.pop(f"{prefix}{col}") for col in USER_SUMMARY_COLUMNS}


# --- User CRUD ---
async def get_user(conn: AsyncConnection, user_id: int) -> Optional[Dict[str, Any]]:
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute("SELECT * FROM users WHERE id = %s", (user_id,))
        return await cursor.fetchone()

async def get_user_by_username(conn: AsyncConnection, username: str) -> Optional[Dict[str, Any]]:
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute("SELECT * FROM users WHERE username = %s", (username,))
        return await cursor.fetchone()

async def get_user_by_email(conn: AsyncConnection, email: str) -> Optional[Dict[str, Any]]:
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute("SELECT * FROM users WHERE email = %s", (email,))
        return await cursor.fetchone()

async def create_user(conn: AsyncConnection, username: str, email: str, hashed_password: str,
                      role: str = "consumer", first_name: Optional[str] = None,
                      last_name: Optional[str] = None,
                      profile_image_url: Optional[str] = None) -> Dict[str, Any]:
    query = """
        INSERT INTO users (username, email, hashed_password, role, first_name, last_name, profile_image_url)
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING *
    """
    try:
        async with conn.cursor(row_factory=dict_row) as cursor:
            await cursor.execute(query, (username, email, hashed_password, role,
                                         first_name, last_name, profile_image_url))
            row = await cursor.fetchone()
        await conn.commit()
    except psycopg.errors.UniqueViolation as e:
        # Lost a race against a concurrent registration with the same email/username
        await conn.rollback()
        constraint = e.diag.constraint_name or ""
        if "username" in constraint:
            raise Conflict("Username already taken", field="username")
        if "email" in constraint:
            raise Conflict("User already exists with this email", field="email")
        raise Conflict("User creation failed: duplicate entry")
    logger.info("Created user %s (%s)", username, role)
    return row


# --- Video CRUD ---
def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_video_filters(search: Optional[str] = None, genre: Optional[str] = None) -> Tuple[str, List[Any]]:
    """Build the WHERE clause for the video listing.

    ``search`` is a case-insensitive substring match on title, publisher or
    genre; ``genre`` is an exact match. When both are given they are ANDed.
    Returns the clause (empty when there is nothing to filter) and its params.
    """
    conditions: List[str] = []
    params: List[Any] = []

    if search:
        pattern = f"%{escape_like(search)}%"
        conditions.append("(v.title ILIKE %s OR v.publisher ILIKE %s OR v.genre ILIKE %s)")
        params.extend([pattern, pattern, pattern])

    if genre:
        conditions.append("v.genre = %s")
        params.append(genre)

    if not conditions:
        return "", params
    return "WHERE " + " AND ".join(conditions), params


VIDEO_SELECT = f"""
    SELECT
        v.*,
        {_user_summary_select("u", "creator__")},
        COALESCE(AVG(r.rating), 0)::float8 AS average_rating,
        COUNT(r.id)::int AS total_ratings
    FROM videos v
    JOIN users u ON v.creator_id = u.id
    LEFT JOIN ratings r ON r.video_id = v.id
"""


def _map_video_row(row: Dict[str, Any]) -> Dict[str, Any]:
    creator = _pop_user_summary(row, "creator__")
    row["creator"] = creator
    return row


async def create_video(conn: AsyncConnection, creator_id: int, title: str, publisher: str,
                       producer: str, genre: str, age_rating: str,
                       description: Optional[str] = None, thumbnail_url: Optional[str] = None,
                       video_url: Optional[str] = None, duration: Optional[int] = None) -> Dict[str, Any]:
    query = """
        INSERT INTO videos (title, publisher, producer, genre, age_rating, description,
                            thumbnail_url, video_url, duration, creator_id)
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING *
    """
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, (title, publisher, producer, genre, age_rating, description,
                                     thumbnail_url, video_url, duration, creator_id))
        row = await cursor.fetchone()
    await conn.commit()
    logger.info("Created video %s (%r) for user %s", row["id"], title, creator_id)
    return row

async def get_video(conn: AsyncConnection, video_id: int) -> Optional[Dict[str, Any]]:
    query = VIDEO_SELECT + """
    WHERE v.id = %s
    GROUP BY v.id, u.id
    """
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, (video_id,))
        row = await cursor.fetchone()
    return _map_video_row(row) if row else None

async def video_exists(conn: AsyncConnection, video_id: int) -> bool:
    async with conn.cursor() as cursor:
        await cursor.execute("SELECT 1 FROM videos WHERE id = %s", (video_id,))
        return await cursor.fetchone() is not None

async def get_videos(conn: AsyncConnection, limit: int = 20, offset: int = 0,
                     search: Optional[str] = None, genre: Optional[str] = None) -> List[Dict[str, Any]]:
    where, params = build_video_filters(search, genre)
    query = VIDEO_SELECT + f"""
    {where}
    GROUP BY v.id, u.id
    ORDER BY v.created_at DESC, v.id DESC
    LIMIT %s OFFSET %s
    """
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, (*params, limit, offset))
        rows = await cursor.fetchall()
    return [_map_video_row(row) for row in rows]

async def increment_video_views(conn: AsyncConnection, video_id: int, by: int = 1) -> None:
    # Relative update: concurrent viewers never overwrite each other's increment.
    async with conn.cursor() as cursor:
        await cursor.execute("UPDATE videos SET views = views + %s WHERE id = %s", (by, video_id))
    await conn.commit()


# --- Comment CRUD ---
async def create_comment(conn: AsyncConnection, content: str, user_id: int, video_id: int) -> Dict[str, Any]:
    query = f"""
        WITH inserted AS (
            INSERT INTO comments (content, user_id, video_id)
            VALUES (%s, %s, %s)
            RETURNING *
        )
        SELECT c.*, {_user_summary_select("u", "user__")}
        FROM inserted c
        JOIN users u ON c.user_id = u.id
    """
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, (content, user_id, video_id))
        row = await cursor.fetchone()
    await conn.commit()
    row["user"] = _pop_user_summary(row, "user__")
    logger.info("Created comment %s on video %s by user %s", row["id"], video_id, user_id)
    return row

async def get_comments_for_video(conn: AsyncConnection, video_id: int,
                                 limit: Optional[int] = None, offset: int = 0) -> List[Dict[str, Any]]:
    query = f"""
        SELECT c.*, {_user_summary_select("u", "user__")}
        FROM comments c
        JOIN users u ON c.user_id = u.id
        WHERE c.video_id = %s
        ORDER BY c.created_at DESC, c.id DESC
        LIMIT %s OFFSET %s
    """
    # LIMIT NULL returns every row
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, (video_id, limit, offset))
        rows = await cursor.fetchall()
    for row in rows:
        row["user"] = _pop_user_summary(row, "user__")
    return rows


# --- Rating CRUD ---
async def upsert_rating(conn: AsyncConnection, video_id: int, user_id: int, rating: int) -> Dict[str, Any]:
    """Insert the caller's rating, or overwrite the value of the one they already gave.

    A single statement keyed on (user_id, video_id): two concurrent upserts for
    the same pair serialize on the unique index instead of both inserting.
    The row keeps its id and created_at when updated.
    """
    query = """
        INSERT INTO ratings (rating, user_id, video_id)
        VALUES (%s, %s, %s)
        ON CONFLICT (user_id, video_id)
        DO UPDATE SET rating = EXCLUDED.rating
        RETURNING *
    """
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, (rating, user_id, video_id))
        row = await cursor.fetchone()
    await conn.commit()
    logger.info("Rated video %s by user %s: %s", video_id, user_id, rating)
    return row

async def get_user_rating_for_video(conn: AsyncConnection, user_id: int, video_id: int) -> Optional[Dict[str, Any]]:
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute("SELECT * FROM ratings WHERE user_id = %s AND video_id = %s", (user_id, video_id))
        return await cursor.fetchone()

async def get_average_rating(conn: AsyncConnection, video_id: int) -> Dict[str, Any]:
    query = """
        SELECT COALESCE(AVG(rating), 0)::float8 AS average, COUNT(*)::int AS total
        FROM ratings
        WHERE video_id = %s
    """
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute(query, (video_id,))
        row = await cursor.fetchone()
    if not row:
        return {"average": 0.0, "total": 0}
    return {"average": float(row["average"]), "total": int(row["total"])}
