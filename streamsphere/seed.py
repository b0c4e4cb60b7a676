# seed.py
"""Populate an empty database with sample accounts, videos, ratings and comments.

Safe to run repeatedly: accounts are looked up by email and videos by
(title, creator) before anything is inserted.

    python -m streamsphere.seed
"""
import asyncio
import logging
import random

from psycopg import AsyncConnection
from psycopg.rows import dict_row

from streamsphere import crud
from streamsphere.auth_utils import get_password_hash
from streamsphere.database import db_manager, create_tables
from streamsphere.logging_config import configure_logging

logger = logging.getLogger(__name__)

SAMPLE_PASSWORD = "password123"

SAMPLE_USERS = [
    {"email": "john.creator@example.com", "username": "johncreator",
     "first_name": "John", "last_name": "Creator", "role": "creator"},
    {"email": "jane.smith@example.com", "username": "janesmith",
     "first_name": "Jane", "last_name": "Smith", "role": "creator"},
    {"email": "mike.gamer@example.com", "username": "mikegamer",
     "first_name": "Mike", "last_name": "Johnson", "role": "creator"},
    {"email": "sarah.consumer@example.com", "username": "sarahconsumer",
     "first_name": "Sarah", "last_name": "Wilson", "role": "consumer"},
]

# creator is an index into SAMPLE_USERS
SAMPLE_VIDEOS = [
    {"title": "Amazing Dance Performance", "publisher": "Dance Studio Pro", "producer": "John Creator",
     "genre": "music", "age_rating": "G", "duration": 180, "creator": 0,
     "description": "An incredible dance performance showcasing contemporary moves with upbeat music.",
     "video_url": "/uploads/videos/dance-performance.mp4"},
    {"title": "Cooking Made Easy: Pasta Recipe", "publisher": "Kitchen Masters", "producer": "Jane Smith",
     "genre": "education", "age_rating": "G", "duration": 240, "creator": 1,
     "description": "Learn how to make delicious pasta from scratch with simple ingredients.",
     "video_url": "/uploads/videos/pasta-recipe.mp4"},
    {"title": "Epic Gaming Moments Compilation", "publisher": "GameStream", "producer": "Mike Johnson",
     "genre": "gaming", "age_rating": "PG-13", "duration": 320, "creator": 2,
     "description": "The most epic gaming moments from this month, featuring incredible plays and funny fails.",
     "video_url": "/uploads/videos/gaming-compilation.mp4"},
    {"title": "Morning Yoga Routine", "publisher": "Wellness Studio", "producer": "John Creator",
     "genre": "education", "age_rating": "G", "duration": 300, "creator": 0,
     "description": "Start your day right with this energizing 5-minute morning yoga routine.",
     "video_url": "/uploads/videos/morning-yoga.mp4"},
    {"title": "Stand-up Comedy Special", "publisher": "Comedy Central", "producer": "Jane Smith",
     "genre": "comedy", "age_rating": "PG-13", "duration": 420, "creator": 1,
     "description": "Hilarious stand-up comedy routine that will have you laughing out loud.",
     "video_url": "/uploads/videos/comedy-special.mp4"},
    {"title": "Football Highlights 2024", "publisher": "Sports Network", "producer": "Mike Johnson",
     "genre": "sports", "age_rating": "G", "duration": 360, "creator": 2,
     "description": "Best football moments and goals from the 2024 season.",
     "video_url": "/uploads/videos/football-highlights.mp4"},
    {"title": "Guitar Tutorial: Beginner Chords", "publisher": "Music Academy", "producer": "John Creator",
     "genre": "music", "age_rating": "G", "duration": 480, "creator": 0,
     "description": "Learn essential guitar chords that every beginner should know.",
     "video_url": "/uploads/videos/guitar-tutorial.mp4"},
    {"title": "Science Experiment: Volcano", "publisher": "Science Fun", "producer": "Jane Smith",
     "genre": "education", "age_rating": "G", "duration": 200, "creator": 1,
     "description": "Create an amazing volcano eruption using household items.",
     "video_url": "/uploads/videos/volcano-experiment.mp4"},
]

SAMPLE_COMMENTS = [
    "Amazing content! Keep it up!",
    "This is so helpful, thanks for sharing!",
    "Love this! Can you make more?",
]


async def _find_video(conn: AsyncConnection, title: str, creator_id: int):
    async with conn.cursor(row_factory=dict_row) as cursor:
        await cursor.execute("SELECT * FROM videos WHERE title = %s AND creator_id = %s", (title, creator_id))
        return await cursor.fetchone()


async def seed_database(conn: AsyncConnection, rng: random.Random | None = None) -> None:
    rng = rng or random.Random()
    logger.info("Starting database seeding...")

    users = []
    for sample in SAMPLE_USERS:
        user = await crud.get_user_by_email(conn, sample["email"])
        if user:
            logger.info("User already exists: %s", sample["email"])
        else:
            user = await crud.create_user(conn, hashed_password=get_password_hash(SAMPLE_PASSWORD), **sample)
        users.append(user)

    for sample in SAMPLE_VIDEOS:
        fields = dict(sample)
        creator = users[fields.pop("creator")]
        if await _find_video(conn, fields["title"], creator["id"]):
            logger.info("Video already exists: %s", fields["title"])
            continue

        video = await crud.create_video(conn, creator_id=creator["id"], **fields)

        for user in users[:3]:
            await crud.upsert_rating(conn, video_id=video["id"], user_id=user["id"], rating=rng.randint(1, 5))

        for i, content in enumerate(SAMPLE_COMMENTS):
            await crud.create_comment(conn, content=content, user_id=users[i % len(users)]["id"], video_id=video["id"])

        await crud.increment_video_views(conn, video["id"], by=rng.randint(100, 1099))

    logger.info("Database seeding completed; sample accounts use password %r", SAMPLE_PASSWORD)


async def main() -> None:
    configure_logging()
    try:
        async with db_manager.get_connection() as conn:
            await create_tables(conn)
            await seed_database(conn)
    finally:
        await db_manager.close_pool()


if __name__ == "__main__":
    asyncio.run(main())
