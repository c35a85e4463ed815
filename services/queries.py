"""
Shared lookups and view builders for the social services.

Everything here runs inside a session the caller already opened, so a service
operation can combine lookups, writes and the final view in one transaction.
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, or_
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from core.exceptions import NotFoundError
from core.models import Comment, Like, Notification, Post, User, utcnow
from core.schemas import CommentView, PostView, UserSummary


def dialect_insert(session: AsyncSession):
    """`insert` construct of the bound dialect, for `ON CONFLICT` clauses"""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql_insert
    return sqlite_insert


async def find_user_by_wallet(
    session: AsyncSession, wallet_address: str
) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.wallet_address == wallet_address)
    )
    return result.scalars().first()


async def get_user_by_wallet(session: AsyncSession, wallet_address: str) -> User:
    user = await find_user_by_wallet(session, wallet_address)
    if user is None:
        raise NotFoundError("User", wallet_address)
    return user


async def get_post_or_404(session: AsyncSession, post_id: int) -> Post:
    post = await session.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post", post_id)
    return post


async def touch_last_active(session: AsyncSession, user: User) -> None:
    user.last_active = utcnow()
    session.add(user)


async def load_users(session: AsyncSession, user_ids: Iterable[int]) -> Dict[int, User]:
    ids = set(user_ids)
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}


def summarize(user: User) -> UserSummary:
    return UserSummary.model_validate(user)


async def build_post_views(
    session: AsyncSession, posts: List[Post], include_comments: bool = True
) -> List[PostView]:
    """Post views with counts, liker addresses and comments, in input order"""
    if not posts:
        return []
    post_ids = [post.id for post in posts]

    like_rows = await session.execute(
        select(Like.post_id, User.wallet_address)
        .join(User, User.id == Like.user_id)
        .where(Like.post_id.in_(post_ids))
        .order_by(Like.created_at, Like.id)
    )
    likes: Dict[int, List[str]] = {post_id: [] for post_id in post_ids}
    for post_id, wallet_address in like_rows.all():
        likes[post_id].append(wallet_address)

    comment_counts: Dict[int, int] = {post_id: 0 for post_id in post_ids}
    count_rows = await session.execute(
        select(Comment.post_id, func.count(Comment.id))
        .where(Comment.post_id.in_(post_ids))
        .group_by(Comment.post_id)
    )
    for post_id, count in count_rows.all():
        comment_counts[post_id] = count

    comments: Dict[int, List[Comment]] = {post_id: [] for post_id in post_ids}
    if include_comments:
        comment_rows = await session.execute(
            select(Comment)
            .where(Comment.post_id.in_(post_ids))
            .order_by(Comment.created_at, Comment.id)
        )
        for comment in comment_rows.scalars().all():
            comments[comment.post_id].append(comment)

    author_ids = {post.user_id for post in posts}
    author_ids.update(c.user_id for group in comments.values() for c in group)
    users = await load_users(session, author_ids)

    views = []
    for post in posts:
        views.append(
            PostView(
                id=post.id,
                author=summarize(users[post.user_id]),
                content=post.content,
                media_url=post.media_url,
                media_type=post.media_type,
                created_at=post.created_at,
                updated_at=post.updated_at,
                like_count=len(likes[post.id]),
                comment_count=comment_counts[post.id],
                likes=likes[post.id],
                comments=[
                    CommentView(
                        id=comment.id,
                        post_id=comment.post_id,
                        author=summarize(users[comment.user_id]),
                        content=comment.content,
                        media_url=comment.media_url,
                        created_at=comment.created_at,
                    )
                    for comment in comments[post.id]
                ],
            )
        )
    return views


async def build_post_view(session: AsyncSession, post: Post) -> PostView:
    views = await build_post_views(session, [post])
    return views[0]


async def purge_posts(session: AsyncSession, post_ids: List[int]) -> None:
    """Delete posts and every row that references them"""
    if not post_ids:
        return
    await session.execute(delete(Notification).where(Notification.post_id.in_(post_ids)))
    await session.execute(delete(Like).where(Like.post_id.in_(post_ids)))
    await session.execute(delete(Comment).where(Comment.post_id.in_(post_ids)))
    await session.execute(delete(Post).where(Post.id.in_(post_ids)))


async def purge_users(session: AsyncSession, user_ids: List[int]) -> int:
    """Delete users with their posts, likes, comments and notifications"""
    if not user_ids:
        return 0
    owned_posts = await session.execute(select(Post.id).where(Post.user_id.in_(user_ids)))
    await purge_posts(session, list(owned_posts.scalars().all()))

    await session.execute(
        delete(Notification).where(
            or_(
                Notification.sender_id.in_(user_ids),
                Notification.recipient_id.in_(user_ids),
            )
        )
    )
    await session.execute(delete(Like).where(Like.user_id.in_(user_ids)))
    await session.execute(delete(Comment).where(Comment.user_id.in_(user_ids)))
    result = await session.execute(delete(User).where(User.id.in_(user_ids)))
    return result.rowcount or 0


def paginate(statement, offset: int, limit: Optional[int]):
    statement = statement.offset(offset)
    if limit is not None:
        statement = statement.limit(limit)
    return statement
