"""
Profile Service.

Owns everything about `User` rows: creating or updating a profile from its
wallet address, reading profiles, attaching uploaded profile/banner images,
and sweeping expired burner accounts.

A wallet address is the only identity the service knows. It is validated and
lower-cased before any lookup, so `0xABC...` and `0xabc...` are the same user.
Writes stamp `updated_at` with a strictly increasing timestamp and refresh
`last_active`. A first-time profile is written with `INSERT ... ON CONFLICT DO
NOTHING` on the wallet address; a request that loses that race updates the
row the winner created.

The burner sweep deletes burner accounts whose `last_active` is older than
the retention window, together with everything they posted, liked, commented
or were notified about. It is run by the cleanup scheduler, never by a
request.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from core.database import async_session
from core.models import AccountType, User, next_timestamp, utcnow
from core.schemas import UserProfileView
from core.validation import DEFAULT_PAGE_LIMIT, InputValidator
from services.queries import (
    dialect_insert,
    find_user_by_wallet,
    get_user_by_wallet,
    paginate,
    purge_users,
)

logger = logging.getLogger(__name__)

BURNER_RETENTION = timedelta(hours=24)


async def insert_user_if_absent(session: AsyncSession, **values) -> bool:
    """Insert the user unless the wallet is taken; True when a row was written"""
    insert = dialect_insert(session)
    statement = (
        insert(User.__table__)
        .values(**values)
        .on_conflict_do_nothing(index_elements=["wallet_address"])
    )
    result = await session.execute(statement)
    return result.rowcount == 1


class ProfileService:
    """Service that manages user profiles"""

    def __init__(
        self,
        session_factory: async_sessionmaker = None,
        burner_retention: timedelta = BURNER_RETENTION,
    ):
        self.session_factory = session_factory or async_session
        self.burner_retention = burner_retention

    async def get_profile(self, wallet_address: str) -> UserProfileView:
        wallet_address = InputValidator.validate_wallet_address(wallet_address)
        async with self.session_factory() as session:
            user = await get_user_by_wallet(session, wallet_address)
            return UserProfileView.model_validate(user)

    async def list_users(
        self, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT
    ) -> List[UserProfileView]:
        offset, limit = InputValidator.validate_pagination(page, limit)
        async with self.session_factory() as session:
            result = await session.execute(
                paginate(select(User).order_by(User.created_at, User.id), offset, limit)
            )
            return [UserProfileView.model_validate(u) for u in result.scalars().all()]

    async def upsert_profile(
        self,
        wallet_address: str,
        username: str,
        bio: Optional[str] = None,
        account_type: Optional[str] = None,
    ) -> UserProfileView:
        """Create the profile for a wallet or update the existing one"""
        wallet_address = InputValidator.validate_wallet_address(wallet_address)
        username = InputValidator.validate_username(username)
        bio = InputValidator.validate_bio(bio)
        kind = InputValidator.validate_account_type(account_type)

        async with self.session_factory() as session:
            async with session.begin():
                user = await find_user_by_wallet(session, wallet_address)
                now = utcnow()
                if user is None and await insert_user_if_absent(
                    session,
                    wallet_address=wallet_address,
                    username=username,
                    bio=bio,
                    account_type=kind or AccountType.NORMAL,
                    created_at=now,
                    updated_at=now,
                    last_active=now,
                ):
                    logger.info(f"Created profile for {wallet_address}")
                    user = await get_user_by_wallet(session, wallet_address)
                    return UserProfileView.model_validate(user)

                if user is None:
                    # A concurrent upsert created the row first.
                    user = await get_user_by_wallet(session, wallet_address)
                user.username = username
                user.bio = bio
                if kind is not None:
                    user.account_type = kind
                user.updated_at = next_timestamp(user.updated_at)
                user.last_active = now
                logger.info(f"Updating profile for {wallet_address}")
                session.add(user)
                await session.flush()
                return UserProfileView.model_validate(user)

    async def set_profile_image(
        self, wallet_address: str, image_type: str, image_url: str
    ) -> UserProfileView:
        """Store an uploaded image URL as the profile picture or banner"""
        wallet_address = InputValidator.validate_wallet_address(wallet_address)
        image_type = InputValidator.validate_image_type(image_type)
        image_url = InputValidator.validate_media_url(image_url)

        async with self.session_factory() as session:
            async with session.begin():
                user = await get_user_by_wallet(session, wallet_address)
                if image_type == "profile":
                    user.profile_picture = image_url
                else:
                    user.banner_picture = image_url
                user.updated_at = next_timestamp(user.updated_at)
                user.last_active = utcnow()
                session.add(user)
                await session.flush()
                return UserProfileView.model_validate(user)

    async def cleanup_ephemeral_accounts(self) -> int:
        """Delete burner accounts inactive for longer than the retention window"""
        cutoff = utcnow() - self.burner_retention
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(User.id).where(
                        User.account_type == AccountType.BURNER,
                        User.last_active < cutoff,
                    )
                )
                user_ids = list(result.scalars().all())
                deleted = await purge_users(session, user_ids)

        logger.info(f"Cleaned up {deleted} inactive burner accounts")
        return deleted
