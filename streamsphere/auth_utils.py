# auth_utils.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg import AsyncConnection

from streamsphere import crud
from streamsphere.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from streamsphere.database import get_db_connection
from streamsphere.errors import PermissionDenied, Unauthenticated

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
# auto_error=False so a missing header surfaces as our 401, not Starlette's 403
bearer_scheme = HTTPBearer(auto_error=False)

CREATOR_ROLE = "creator"


def verify_password(plain_password, hashed_password):
    """Verify a plain password against a hashed password"""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    """Hash a password"""
    return pwd_context.hash(password)

def create_access_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token identifying ``user``"""
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(user["id"]),
        "email": user["email"],
        "role": user["role"],
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str) -> int:
    """Return the user id carried by ``token``.

    Stateless: the signature and expiry are the only checks made here.
    Raises Unauthenticated for anything that does not verify.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return int(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise Unauthenticated("Invalid token")


# --- Policy checks ---
def authorize_write(user: Optional[dict]) -> dict:
    """Comments and ratings need a resolved user."""
    if not user:
        raise Unauthenticated("User not authenticated")
    return user

def authorize_video_create(user: Optional[dict]) -> dict:
    """Only creator accounts may publish videos."""
    user = authorize_write(user)
    if user.get("role") != CREATOR_ROLE:
        raise PermissionDenied("Only creators can upload videos")
    return user


# --- FastAPI dependencies ---
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    conn: AsyncConnection = Depends(get_db_connection),
) -> dict:
    """Resolve the bearer credential to a user row"""
    if credentials is None:
        raise Unauthenticated("Access token required")

    user_id = decode_access_token(credentials.credentials)
    user = await crud.get_user(conn, user_id)
    return authorize_write(user)

async def require_creator(current_user: dict = Depends(get_current_user)) -> dict:
    return authorize_video_create(current_user)


def public_user(user: dict) -> dict:
    """Copy of a user row without the password hash"""
    return {key: value for key, value in user.items() if key != "hashed_password"}
