# schemas.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["consumer", "creator"]


class CamelModel(BaseModel):
    """Serializes as camelCase, accepts both camelCase and snake_case input."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# --- User Schemas ---
class UserBase(CamelModel):
    username: str = Field(min_length=1, max_length=255)
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class UserCreate(UserBase):
    password: str = Field(min_length=6)
    confirm_password: Optional[str] = None
    role: Role = "consumer"

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: Optional[str], info: ValidationInfo):
        # password is absent from info.data when it failed its own checks
        if value is not None and "password" in info.data and value != info.data["password"]:
            raise ValueError("Passwords don't match")
        return value


class User(UserBase):
    id: int
    role: Role
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserSummary(CamelModel):
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    role: Role


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthResponse(CamelModel):
    user: User
    token: str


class Message(CamelModel):
    message: str


# --- Video Schemas ---
class VideoBase(CamelModel):
    title: str = Field(min_length=1)
    publisher: str = Field(min_length=1)
    producer: str = Field(min_length=1)
    genre: str = Field(min_length=1)
    age_rating: str = Field(min_length=1)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)  # seconds


class VideoCreate(VideoBase):
    pass


class Video(VideoBase):
    id: int
    views: int
    creator_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class VideoWithCreator(Video):
    creator: UserSummary
    average_rating: float = 0.0
    total_ratings: int = 0


# --- Comment Schemas ---
class CommentCreate(CamelModel):
    content: str = Field(min_length=1)


class Comment(CamelModel):
    id: int
    content: str
    user_id: int
    video_id: int
    likes: int = 0
    created_at: datetime
    user: UserSummary


# --- Rating Schemas ---
class RatingCreate(CamelModel):
    # strict: rejects booleans and numeric strings
    rating: int = Field(ge=1, le=5, strict=True)


class RatingSummary(CamelModel):
    user_rating: Optional[int] = None
    average_rating: float
    total_ratings: int
