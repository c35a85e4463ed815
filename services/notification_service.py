"""
Notification Service.

Reads and acknowledges the like/comment notifications that `PostService`
writes. A user only ever sees or changes notifications addressed to them; a
notification id that belongs to someone else is reported as not found.
"""

import logging

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select

from core.database import async_session
from core.exceptions import NotFoundError
from core.models import Notification, Post
from core.schemas import (
    BulkUpdateResponse,
    NotificationList,
    NotificationView,
    PostSummary,
)
from core.validation import DEFAULT_PAGE_LIMIT, InputValidator
from services.queries import get_user_by_wallet, load_users, paginate, summarize

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for a user's notification inbox"""

    def __init__(self, session_factory: async_sessionmaker = None):
        self.session_factory = session_factory or async_session

    async def list_notifications(
        self, wallet_address: str, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT
    ) -> NotificationList:
        """Newest notifications first, with sender and post summaries"""
        wallet_address = InputValidator.validate_wallet_address(wallet_address)
        offset, limit = InputValidator.validate_pagination(page, limit)

        async with self.session_factory() as session:
            user = await get_user_by_wallet(session, wallet_address)
            result = await session.execute(
                paginate(
                    select(Notification)
                    .where(Notification.recipient_id == user.id)
                    .order_by(Notification.created_at.desc(), Notification.id.desc()),
                    offset,
                    limit,
                )
            )
            notifications = list(result.scalars().all())

            senders = await load_users(session, {n.sender_id for n in notifications})
            post_ids = {n.post_id for n in notifications if n.post_id is not None}
            posts = {}
            if post_ids:
                post_rows = await session.execute(select(Post).where(Post.id.in_(post_ids)))
                posts = {post.id: post for post in post_rows.scalars().all()}

            unread = await session.execute(
                select(func.count(Notification.id)).where(
                    Notification.recipient_id == user.id,
                    Notification.read == False,  # noqa: E712
                )
            )

            views = []
            for notification in notifications:
                post = posts.get(notification.post_id)
                views.append(
                    NotificationView(
                        id=notification.id,
                        type=notification.type,
                        read=notification.read,
                        created_at=notification.created_at,
                        sender=summarize(senders[notification.sender_id]),
                        post=PostSummary.model_validate(post) if post else None,
                    )
                )
            return NotificationList(notifications=views, unread_count=unread.scalar_one())

    async def mark_notification_read(
        self, wallet_address: str, notification_id: int
    ) -> NotificationView:
        wallet_address = InputValidator.validate_wallet_address(wallet_address)

        async with self.session_factory() as session:
            async with session.begin():
                user = await get_user_by_wallet(session, wallet_address)
                notification = await session.get(Notification, notification_id)
                if notification is None or notification.recipient_id != user.id:
                    raise NotFoundError("Notification", notification_id)

                notification.read = True
                session.add(notification)
                await session.flush()

                senders = await load_users(session, [notification.sender_id])
                post = None
                if notification.post_id is not None:
                    post = await session.get(Post, notification.post_id)
                return NotificationView(
                    id=notification.id,
                    type=notification.type,
                    read=notification.read,
                    created_at=notification.created_at,
                    sender=summarize(senders[notification.sender_id]),
                    post=PostSummary.model_validate(post) if post else None,
                )

    async def mark_all_read(self, wallet_address: str) -> BulkUpdateResponse:
        """Mark every unread notification of the user as read in one statement"""
        wallet_address = InputValidator.validate_wallet_address(wallet_address)

        async with self.session_factory() as session:
            async with session.begin():
                user = await get_user_by_wallet(session, wallet_address)
                result = await session.execute(
                    update(Notification)
                    .where(
                        Notification.recipient_id == user.id,
                        Notification.read == False,  # noqa: E712
                    )
                    .values(read=True)
                )
                updated = result.rowcount or 0

        logger.info(f"Marked {updated} notifications read for {wallet_address}")
        return BulkUpdateResponse(message="All notifications marked as read", updated=updated)
