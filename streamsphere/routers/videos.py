# routers/videos.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from psycopg import AsyncConnection

from streamsphere import crud, schemas, auth_utils
from streamsphere.database import get_db_connection
from streamsphere.errors import NotFound

router = APIRouter()


async def ensure_video_exists(conn: AsyncConnection, video_id: int) -> None:
    if not await crud.video_exists(conn, video_id):
        raise NotFound("Video not found")


@router.get("", response_model=List[schemas.VideoWithCreator])
async def list_videos(
    conn: AsyncConnection = Depends(get_db_connection),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    search: Optional[str] = None,
    genre: Optional[str] = None,
):
    """Newest videos first, optionally filtered by a search term and/or an exact genre."""
    return await crud.get_videos(conn, limit=limit, offset=offset, search=search, genre=genre)


@router.get("/{video_id}", response_model=schemas.VideoWithCreator)
async def get_video(
    video_id: int,
    conn: AsyncConnection = Depends(get_db_connection),
):
    """Fetch one video and count the view.

    The returned ``views`` is the count before this request.
    """
    db_video = await crud.get_video(conn, video_id=video_id)
    if db_video is None:
        raise NotFound("Video not found")

    await crud.increment_video_views(conn, video_id)
    return db_video


@router.post("", response_model=schemas.Video, status_code=status.HTTP_201_CREATED)
async def create_video(
    video: schemas.VideoCreate,
    current_user: dict = Depends(auth_utils.require_creator),
    conn: AsyncConnection = Depends(get_db_connection),
):
    """Publish video metadata. Requires the 'creator' role."""
    return await crud.create_video(conn, creator_id=current_user["id"], **video.model_dump())


@router.get("/{video_id}/comments", response_model=List[schemas.Comment])
async def list_comments(
    video_id: int,
    conn: AsyncConnection = Depends(get_db_connection),
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
):
    """Newest first. Every comment unless the caller pages with limit/offset."""
    await ensure_video_exists(conn, video_id)
    return await crud.get_comments_for_video(conn, video_id=video_id, limit=limit, offset=offset)


@router.post("/{video_id}/comments", response_model=schemas.Comment, status_code=status.HTTP_201_CREATED)
async def add_comment(
    video_id: int,
    comment: schemas.CommentCreate,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: AsyncConnection = Depends(get_db_connection),
):
    await ensure_video_exists(conn, video_id)
    return await crud.create_comment(conn, content=comment.content, user_id=current_user["id"], video_id=video_id)


@router.get("/{video_id}/rating", response_model=schemas.RatingSummary)
async def get_rating(
    video_id: int,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: AsyncConnection = Depends(get_db_connection),
):
    """The caller's own rating (null if unrated) plus the video's aggregate."""
    await ensure_video_exists(conn, video_id)
    own = await crud.get_user_rating_for_video(conn, user_id=current_user["id"], video_id=video_id)
    aggregate = await crud.get_average_rating(conn, video_id)
    return {
        "user_rating": own["rating"] if own else None,
        "average_rating": aggregate["average"],
        "total_ratings": aggregate["total"],
    }


@router.post("/{video_id}/rating", response_model=schemas.RatingSummary)
async def rate_video(
    video_id: int,
    rating: schemas.RatingCreate,
    current_user: dict = Depends(auth_utils.get_current_user),
    conn: AsyncConnection = Depends(get_db_connection),
):
    """Add or replace the caller's rating, then report the new aggregate."""
    await ensure_video_exists(conn, video_id)
    db_rating = await crud.upsert_rating(conn, video_id=video_id, user_id=current_user["id"], rating=rating.rating)
    aggregate = await crud.get_average_rating(conn, video_id)
    return {
        "user_rating": db_rating["rating"],
        "average_rating": aggregate["average"],
        "total_ratings": aggregate["total"],
    }
