"""
Media upload service.

Checks an upload against the size and type limits before it leaves the
process, hands it to the storage provider, and for profile/banner uploads
records the resulting URL on the user's profile.
"""

import logging
from typing import Optional

from core.validation import InputValidator
from providers.media_provider import MediaStorageProvider, UploadedMedia
from services.profile_service import ProfileService

logger = logging.getLogger(__name__)


class MediaService:
    def __init__(self, provider: MediaStorageProvider, profiles: ProfileService):
        self.provider = provider
        self.profiles = profiles

    async def upload_media(
        self, data: bytes, filename: str, content_type: Optional[str]
    ) -> UploadedMedia:
        InputValidator.validate_upload(len(data or b""), content_type)
        return await self.provider.upload(data, filename, content_type)

    async def upload_profile_image(
        self,
        wallet_address: str,
        image_type: str,
        data: bytes,
        filename: str,
        content_type: Optional[str],
    ):
        """Upload a profile or banner picture and store it on the profile"""
        InputValidator.validate_wallet_address(wallet_address)
        InputValidator.validate_image_type(image_type)
        uploaded = await self.upload_media(data, filename, content_type)
        profile = await self.profiles.set_profile_image(
            wallet_address, image_type, uploaded.url
        )
        logger.info(f"Stored {image_type} image for {profile.wallet_address}")
        return uploaded, profile
