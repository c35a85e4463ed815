"""
Media Storage Provider Classes

Uploads user media to a storage service and hands back an opaque URL plus the
media kind. Nothing else in the application looks inside the storage service.
"""

import asyncio
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader

from core.exceptions import UpstreamError, UpstreamUnavailableError
from core.models import MediaType

logger = logging.getLogger(__name__)

PUBLIC_UPLOAD_ERROR = "Error uploading file"
ALLOWED_FORMATS = ["jpg", "jpeg", "png", "gif", "mp4", "mov"]


@dataclass
class UploadedMedia:
    url: str
    media_type: MediaType


def media_type_for(content_type: Optional[str]) -> MediaType:
    if content_type and content_type.startswith("video/"):
        return MediaType.VIDEO
    return MediaType.IMAGE


class MediaStorageProvider(ABC):
    """Abstract base class for media storage backends"""

    @property
    @abstractmethod
    def source_name(self) -> str:
        pass

    @abstractmethod
    async def upload(
        self, data: bytes, filename: str, content_type: Optional[str]
    ) -> UploadedMedia:
        pass


class CloudinaryMediaProvider(MediaStorageProvider):
    """Uploads to Cloudinary with automatic resource type detection"""

    def __init__(
        self,
        cloud_name: Optional[str],
        api_key: Optional[str],
        api_secret: Optional[str],
        folder: str = "slacker",
        timeout_seconds: float = 30.0,
    ):
        self.folder = folder
        self.timeout_seconds = timeout_seconds
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )

    @property
    def source_name(self) -> str:
        return "cloudinary"

    def _upload_sync(self, data: bytes, filename: str) -> dict:
        return cloudinary.uploader.upload(
            io.BytesIO(data),
            folder=self.folder,
            resource_type="auto",
            allowed_formats=ALLOWED_FORMATS,
            transformation=[{"quality": "auto"}],
            filename_override=filename,
            use_filename=False,
        )

    async def upload(
        self, data: bytes, filename: str, content_type: Optional[str]
    ) -> UploadedMedia:
        # The SDK is blocking; run it off the event loop.
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self._upload_sync, data, filename),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise UpstreamUnavailableError(
                self.source_name,
                f"upload timed out after {self.timeout_seconds}s",
                PUBLIC_UPLOAD_ERROR,
            )
        except cloudinary.exceptions.Error as e:
            raise UpstreamError(self.source_name, str(e), PUBLIC_UPLOAD_ERROR)
        except OSError as e:
            raise UpstreamUnavailableError(self.source_name, str(e), PUBLIC_UPLOAD_ERROR)

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise UpstreamError(
                self.source_name, "upload response had no URL", PUBLIC_UPLOAD_ERROR
            )

        if result.get("resource_type") == "video":
            kind = MediaType.VIDEO
        else:
            kind = media_type_for(content_type)

        logger.info(f"Uploaded {filename} to {self.source_name} as {kind.value}")
        return UploadedMedia(url=url, media_type=kind)
