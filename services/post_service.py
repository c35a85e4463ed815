"""
Post Service.

Applies every mutation of the social graph around posts: creating and deleting
posts, toggling likes, adding and deleting comments, plus the read paths that
return posts with their counts.

Like toggling:
Each (user, post) pair has at most one `Like` row, guaranteed by the
`uq_like_user_post` constraint. A toggle first deletes the pair. If a row was
removed the post is now unliked. Otherwise the like is written with an
`INSERT ... ON CONFLICT DO NOTHING`, so two requests racing to like the same
post both end with exactly one row; only the request whose insert landed
notifies the author.

Notifications:
Creating a like or a comment notifies the post author in the same transaction,
unless the actor is the author.

Authorization:
Posts and comments can only be deleted by their author. Addresses are compared
in canonical lower-case form.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from core.database import async_session
from core.exceptions import AuthorizationError, NotFoundError
from core.models import Comment, Like, Notification, NotificationType, Post, User, utcnow
from core.schemas import MessageResponse, PostView
from core.validation import (
    COMMENT_CONTENT_MAX_LENGTH,
    DEFAULT_PAGE_LIMIT,
    POST_CONTENT_MAX_LENGTH,
    InputValidator,
)
from services.queries import (
    build_post_view,
    build_post_views,
    dialect_insert,
    get_post_or_404,
    get_user_by_wallet,
    paginate,
    purge_posts,
    touch_last_active,
)

logger = logging.getLogger(__name__)


async def insert_like_if_absent(session: AsyncSession, user_id: int, post_id: int) -> bool:
    """Insert the like unless the pair already exists; True when a row was written"""
    insert = dialect_insert(session)
    statement = (
        insert(Like.__table__)
        .values(user_id=user_id, post_id=post_id, created_at=utcnow())
        .on_conflict_do_nothing(index_elements=["user_id", "post_id"])
    )
    result = await session.execute(statement)
    return result.rowcount == 1


def notify(
    session: AsyncSession,
    sender: User,
    recipient_id: int,
    kind: NotificationType,
    post_id: Optional[int] = None,
) -> Optional[Notification]:
    """Queue a notification unless the sender is notifying themselves"""
    if sender.id == recipient_id:
        return None
    notification = Notification(
        sender_id=sender.id,
        recipient_id=recipient_id,
        type=kind,
        post_id=post_id,
    )
    session.add(notification)
    return notification


class PostService:
    """Service for posts, likes and comments"""

    def __init__(self, session_factory: async_sessionmaker = None):
        self.session_factory = session_factory or async_session

    async def create_post(
        self,
        wallet_address: str,
        content: str,
        media_url: Optional[str] = None,
        media_type: Optional[str] = None,
    ) -> PostView:
        wallet_address = InputValidator.validate_wallet_address(wallet_address)
        content = InputValidator.require_text(content, "content", POST_CONTENT_MAX_LENGTH)
        media_url, kind = InputValidator.validate_media(media_url, media_type)

        async with self.session_factory() as session:
            async with session.begin():
                author = await get_user_by_wallet(session, wallet_address)
                post = Post(
                    user_id=author.id,
                    content=content,
                    media_url=media_url,
                    media_type=kind,
                )
                session.add(post)
                await touch_last_active(session, author)
                await session.flush()
                logger.info(f"Post {post.id} created by {wallet_address}")
                return await build_post_view(session, post)

    async def get_post(self, post_id: int) -> PostView:
        async with self.session_factory() as session:
            post = await get_post_or_404(session, post_id)
            return await build_post_view(session, post)

    async def list_posts(self, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT) -> List[PostView]:
        """Newest posts first"""
        offset, limit = InputValidator.validate_pagination(page, limit)
        async with self.session_factory() as session:
            result = await session.execute(
                paginate(
                    select(Post).order_by(Post.created_at.desc(), Post.id.desc()),
                    offset,
                    limit,
                )
            )
            return await build_post_views(session, list(result.scalars().all()))

    async def list_user_posts(
        self, wallet_address: str, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT
    ) -> List[PostView]:
        wallet_address = InputValidator.validate_wallet_address(wallet_address)
        offset, limit = InputValidator.validate_pagination(page, limit)
        async with self.session_factory() as session:
            author = await get_user_by_wallet(session, wallet_address)
            result = await session.execute(
                paginate(
                    select(Post)
                    .where(Post.user_id == author.id)
                    .order_by(Post.created_at.desc(), Post.id.desc()),
                    offset,
                    limit,
                )
            )
            return await build_post_views(session, list(result.scalars().all()))

    async def toggle_like(self, wallet_address: str, post_id: int) -> PostView:
        """Like the post if the user has not, otherwise remove the like"""
        wallet_address = InputValidator.validate_wallet_address(wallet_address)

        async with self.session_factory() as session:
            async with session.begin():
                user = await get_user_by_wallet(session, wallet_address)
                post = await get_post_or_404(session, post_id)

                removed = await session.execute(
                    delete(Like).where(Like.user_id == user.id, Like.post_id == post.id)
                )
                if removed.rowcount:
                    logger.info(f"{wallet_address} unliked post {post.id}")
                elif await insert_like_if_absent(session, user.id, post.id):
                    notify(session, user, post.user_id, NotificationType.LIKE, post.id)
                    logger.info(f"{wallet_address} liked post {post.id}")
                else:
                    # A concurrent toggle inserted the pair first.
                    logger.info(
                        f"Like for post {post.id} by {wallet_address} already present"
                    )

                await touch_last_active(session, user)
                await session.flush()
                return await build_post_view(session, post)

    async def add_comment(
        self,
        wallet_address: str,
        post_id: int,
        content: str,
        media_url: Optional[str] = None,
    ) -> PostView:
        wallet_address = InputValidator.validate_wallet_address(wallet_address)
        content = InputValidator.require_text(
            content, "content", COMMENT_CONTENT_MAX_LENGTH
        )
        media_url = InputValidator.validate_media_url(media_url)

        async with self.session_factory() as session:
            async with session.begin():
                user = await get_user_by_wallet(session, wallet_address)
                post = await get_post_or_404(session, post_id)

                session.add(
                    Comment(
                        user_id=user.id,
                        post_id=post.id,
                        content=content,
                        media_url=media_url,
                    )
                )
                notify(session, user, post.user_id, NotificationType.COMMENT, post.id)
                await touch_last_active(session, user)
                await session.flush()
                logger.info(f"{wallet_address} commented on post {post.id}")
                return await build_post_view(session, post)

    async def delete_post(self, wallet_address: str, post_id: int) -> MessageResponse:
        wallet_address = InputValidator.validate_wallet_address(wallet_address)

        async with self.session_factory() as session:
            async with session.begin():
                post = await get_post_or_404(session, post_id)
                author = await session.get(User, post.user_id)
                if author.wallet_address.lower() != wallet_address:
                    logger.warning(
                        f"{wallet_address} attempted to delete post {post_id} "
                        f"owned by {author.wallet_address}"
                    )
                    raise AuthorizationError("delete", "post")

                await purge_posts(session, [post.id])
                await touch_last_active(session, author)

        logger.info(f"Post {post_id} deleted by {wallet_address}")
        return MessageResponse(message="Post deleted successfully")

    async def delete_comment(self, wallet_address: str, comment_id: int) -> MessageResponse:
        wallet_address = InputValidator.validate_wallet_address(wallet_address)

        async with self.session_factory() as session:
            async with session.begin():
                comment = await session.get(Comment, comment_id)
                if comment is None:
                    raise NotFoundError("Comment", comment_id)
                author = await session.get(User, comment.user_id)
                if author.wallet_address.lower() != wallet_address:
                    logger.warning(
                        f"{wallet_address} attempted to delete comment {comment_id} "
                        f"owned by {author.wallet_address}"
                    )
                    raise AuthorizationError("delete", "comment")

                await session.delete(comment)
                await touch_last_active(session, author)

        logger.info(f"Comment {comment_id} deleted by {wallet_address}")
        return MessageResponse(message="Comment deleted successfully")
