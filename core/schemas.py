"""
Response schemas for the Slacker API.

Services return these pydantic views rather than table rows so responses
always carry derived data (like/comment counts, author summaries) and never
leak internal columns. Field names are snake_case in Python and camelCase on
the wire, matching what the web client already sends and reads.
"""

from datetime import datetime
from typing import Annotated, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from core.models import AccountType, MediaType, NotificationType, as_utc

# SQLite hands timestamps back without an offset; views always carry UTC.
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class UserSummary(APIModel):
    id: int
    wallet_address: str
    username: str
    profile_picture: Optional[str] = None


class UserProfileView(APIModel):
    id: int
    wallet_address: str
    username: str
    bio: str
    profile_picture: Optional[str] = None
    banner_picture: Optional[str] = None
    account_type: AccountType
    created_at: UTCDateTime
    updated_at: UTCDateTime
    last_active: UTCDateTime


class CommentView(APIModel):
    id: int
    post_id: int
    author: UserSummary
    content: str
    media_url: Optional[str] = None
    created_at: UTCDateTime


class PostView(APIModel):
    id: int
    author: UserSummary
    content: str
    media_url: Optional[str] = None
    media_type: Optional[MediaType] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime
    like_count: int = 0
    comment_count: int = 0
    likes: List[str] = []
    comments: List[CommentView] = []


class PostSummary(APIModel):
    id: int
    content: str


class NotificationView(APIModel):
    id: int
    type: NotificationType
    read: bool
    created_at: UTCDateTime
    sender: UserSummary
    post: Optional[PostSummary] = None


class NotificationList(APIModel):
    notifications: List[NotificationView]
    unread_count: int


class MessageResponse(APIModel):
    message: str


class BulkUpdateResponse(APIModel):
    message: str
    updated: int


class ChatReply(APIModel):
    message: str
    timestamp: UTCDateTime
    model: Optional[str] = None
    wallet_address: Optional[str] = None
    token_usage: Dict[str, int] = {}
