"""
Media upload endpoints.

Endpoints Provided:
- `POST /api/upload`: multipart `file`; returns `{url, type}`.
- `POST /api/upload/{image_type}`: multipart `file` plus `walletAddress`
  form field; `image_type` is `profile` or `banner`. The uploaded URL is also
  stored on the user's profile.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from core.logging_config import log_function_call
from core.models import MediaType
from core.schemas import APIModel, UserProfileView
from core.validation import MAX_UPLOAD_BYTES
from services.media_service import MediaService

from .dependencies import get_media_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["Uploads"])


class UploadResponse(APIModel):
    url: str
    type: MediaType
    user: Optional[UserProfileView] = None


async def _read_limited(file: UploadFile) -> bytes:
    # One byte past the cap is enough to reject the upload.
    return await file.read(MAX_UPLOAD_BYTES + 1)


@router.post("", response_model=UploadResponse)
@log_function_call(logger)
async def upload_media(
    file: UploadFile = File(...),
    media: MediaService = Depends(get_media_service),
):
    data = await _read_limited(file)
    uploaded = await media.upload_media(data, file.filename, file.content_type)
    return UploadResponse(url=uploaded.url, type=uploaded.media_type)


@router.post("/{image_type}", response_model=UploadResponse)
@log_function_call(logger)
async def upload_profile_image(
    image_type: str,
    file: UploadFile = File(...),
    wallet_address: str = Form(..., alias="walletAddress"),
    media: MediaService = Depends(get_media_service),
):
    """Upload a profile or banner picture for the wallet"""
    data = await _read_limited(file)
    uploaded, profile = await media.upload_profile_image(
        wallet_address, image_type, data, file.filename, file.content_type
    )
    return UploadResponse(url=uploaded.url, type=uploaded.media_type, user=profile)
