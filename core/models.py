"""
Core data models for the Slacker API

SQLModel tables for the social graph: users, posts, likes, comments and
notifications. Relationships are plain foreign keys; services query them
explicitly instead of relying on lazy loading, which does not work under
asyncio sessions.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive value; SQLite returns stored timestamps without an offset"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """Current time, bumped past `previous` so write stamps strictly increase"""
    now = utcnow()
    if previous is None:
        return now
    previous = as_utc(previous)
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class AccountType(str, Enum):
    NORMAL = "normal"
    BURNER = "burner"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_address: str = Field(
        sa_column=Column(String(42), unique=True, index=True, nullable=False)
    )
    username: str = Field(max_length=50)
    bio: str = Field(default="New to Slacker", sa_type=Text)
    profile_picture: Optional[str] = Field(default=None, max_length=1024)
    banner_picture: Optional[str] = Field(default=None, max_length=1024)
    account_type: AccountType = Field(default=AccountType.NORMAL, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    last_active: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True), index=True
    )


class Post(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    content: str = Field(sa_type=Text)
    media_url: Optional[str] = Field(default=None, max_length=1024)
    media_type: Optional[MediaType] = Field(default=None)
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True), index=True
    )
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Like(SQLModel, table=True):
    """At most one row per (user, post); the constraint is what makes toggles safe"""

    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_like_user_post"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    post_id: int = Field(foreign_key="post.id", index=True, ondelete="CASCADE")
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Comment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    post_id: int = Field(foreign_key="post.id", index=True, ondelete="CASCADE")
    content: str = Field(sa_type=Text)
    media_url: Optional[str] = Field(default=None, max_length=1024)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    recipient_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    sender_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    type: NotificationType
    post_id: Optional[int] = Field(
        default=None, foreign_key="post.id", ondelete="CASCADE"
    )
    read: bool = Field(default=False, index=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True), index=True
    )
