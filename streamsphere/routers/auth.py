# routers/auth.py
import logging

from fastapi import APIRouter, Depends, status
from psycopg import AsyncConnection

from streamsphere import crud, schemas, auth_utils
from streamsphere.database import get_db_connection
from streamsphere.errors import Conflict, Unauthenticated

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user: schemas.UserCreate,
    conn: AsyncConnection = Depends(get_db_connection)
):
    """Create an account and return it with a fresh access token."""
    if await crud.get_user_by_email(conn, email=user.email):
        raise Conflict("User already exists with this email", field="email")

    if await crud.get_user_by_username(conn, username=user.username):
        raise Conflict("Username already taken", field="username")

    # crud.create_user still raises Conflict if a concurrent signup wins the race
    db_user = await crud.create_user(
        conn,
        username=user.username,
        email=user.email,
        hashed_password=auth_utils.get_password_hash(user.password),
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_image_url=user.profile_image_url,
    )
    token = auth_utils.create_access_token(db_user)
    return {"user": auth_utils.public_user(db_user), "token": token}


@router.post("/login", response_model=schemas.AuthResponse)
async def login_user(
    credentials: schemas.LoginRequest,
    conn: AsyncConnection = Depends(get_db_connection)
):
    user = await crud.get_user_by_email(conn, email=credentials.email)
    if not user or not auth_utils.verify_password(credentials.password, user["hashed_password"]):
        logger.info("Failed login for %s", credentials.email)
        raise Unauthenticated("Invalid email or password")

    token = auth_utils.create_access_token(user)
    return {"user": auth_utils.public_user(user), "token": token}


@router.post("/logout", response_model=schemas.Message)
async def logout_user():
    # Tokens are stateless; the client discards its copy.
    return {"message": "Logged out successfully"}


@router.get("/user", response_model=schemas.User)
async def read_current_user(
    current_user: dict = Depends(auth_utils.get_current_user)
):
    return auth_utils.public_user(current_user)
