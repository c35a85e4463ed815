"""
User profile endpoints.

Endpoints Provided:
- `GET /api/users/profile/{wallet_address}`: profile for a wallet address.
- `POST /api/users/profile`: create or update the caller's profile.
- `POST /api/users/profile/picture`: store an already-uploaded image URL as
  the profile picture or banner.
- `GET /api/users`: all users, paginated.

The wallet address in the body or path is the caller's identity; it is
validated and lower-cased by `ProfileService`.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from core.logging_config import log_function_call
from core.schemas import APIModel, UserProfileView
from core.validation import DEFAULT_PAGE_LIMIT
from services.profile_service import ProfileService

from .dependencies import get_profile_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


class ProfileRequest(APIModel):
    wallet_address: str
    username: str
    bio: Optional[str] = None
    account_type: Optional[str] = None


class ProfileImageRequest(APIModel):
    wallet_address: str
    image_type: str
    image_url: str


@router.get("/profile/{wallet_address}", response_model=UserProfileView)
@log_function_call(logger)
async def get_profile(
    wallet_address: str,
    profiles: ProfileService = Depends(get_profile_service),
):
    return await profiles.get_profile(wallet_address)


@router.post("/profile", response_model=UserProfileView)
@log_function_call(logger)
async def upsert_profile(
    request: ProfileRequest,
    profiles: ProfileService = Depends(get_profile_service),
):
    """Create the profile for a wallet, or update it if it exists"""
    return await profiles.upsert_profile(
        request.wallet_address,
        request.username,
        bio=request.bio,
        account_type=request.account_type,
    )


@router.post("/profile/picture", response_model=UserProfileView)
@log_function_call(logger)
async def set_profile_picture(
    request: ProfileImageRequest,
    profiles: ProfileService = Depends(get_profile_service),
):
    return await profiles.set_profile_image(
        request.wallet_address, request.image_type, request.image_url
    )


@router.get("", response_model=List[UserProfileView])
@log_function_call(logger)
async def list_users(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_LIMIT),
    profiles: ProfileService = Depends(get_profile_service),
):
    return await profiles.list_users(page, limit)
