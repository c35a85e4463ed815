"""
Unit tests for media upload: the Cloudinary provider and MediaService.
"""
from unittest.mock import patch

import cloudinary.exceptions
import pytest

from core.exceptions import UpstreamError, ValidationError
from core.models import MediaType
from core.validation import MAX_UPLOAD_BYTES
from providers.media_provider import CloudinaryMediaProvider, media_type_for

ALICE = "0x" + "a" * 40


@pytest.fixture
def cloudinary_provider():
    return CloudinaryMediaProvider("demo", "key", "secret", folder="slacker")


@pytest.mark.unit
class TestCloudinaryMediaProvider:
    async def test_upload_image(self, cloudinary_provider):
        with patch("cloudinary.uploader.upload") as upload:
            upload.return_value = {
                "secure_url": "https://res.cloudinary.com/demo/image/upload/a.png",
                "resource_type": "image",
            }
            media = await cloudinary_provider.upload(b"\x89PNG", "a.png", "image/png")

        assert media.url == "https://res.cloudinary.com/demo/image/upload/a.png"
        assert media.media_type == MediaType.IMAGE
        assert upload.call_args.kwargs["folder"] == "slacker"
        assert upload.call_args.kwargs["resource_type"] == "auto"

    async def test_upload_video(self, cloudinary_provider):
        with patch("cloudinary.uploader.upload") as upload:
            upload.return_value = {
                "secure_url": "https://res.cloudinary.com/demo/video/upload/v.mp4",
                "resource_type": "video",
            }
            media = await cloudinary_provider.upload(b"data", "v.mp4", "video/mp4")
        assert media.media_type == MediaType.VIDEO

    async def test_sdk_error_is_upstream_error(self, cloudinary_provider):
        with patch("cloudinary.uploader.upload") as upload:
            upload.side_effect = cloudinary.exceptions.Error("Invalid image file")
            with pytest.raises(UpstreamError) as exc_info:
                await cloudinary_provider.upload(b"data", "a.png", "image/png")
        assert exc_info.value.message == "Error uploading file"

    async def test_missing_url_is_upstream_error(self, cloudinary_provider):
        with patch("cloudinary.uploader.upload") as upload:
            upload.return_value = {"resource_type": "image"}
            with pytest.raises(UpstreamError):
                await cloudinary_provider.upload(b"data", "a.png", "image/png")

    def test_media_type_for(self):
        assert media_type_for("video/quicktime") == MediaType.VIDEO
        assert media_type_for("image/gif") == MediaType.IMAGE
        assert media_type_for(None) == MediaType.IMAGE


@pytest.mark.unit
class TestMediaService:
    async def test_upload_media(self, media_service, mock_media_provider):
        media = await media_service.upload_media(b"png-bytes", "a.png", "image/png")
        assert media.url == "https://media.example.com/slacker/picture.png"
        mock_media_provider.upload.assert_awaited_once_with(b"png-bytes", "a.png", "image/png")

    async def test_rejects_before_upload(self, media_service, mock_media_provider):
        with pytest.raises(ValidationError):
            await media_service.upload_media(b"", "a.png", "image/png")
        with pytest.raises(ValidationError):
            await media_service.upload_media(b"x" * (MAX_UPLOAD_BYTES + 1), "a.png", "image/png")
        with pytest.raises(ValidationError):
            await media_service.upload_media(b"%PDF", "a.pdf", "application/pdf")
        mock_media_provider.upload.assert_not_awaited()

    async def test_profile_image_stored_on_user(self, media_service, create_user):
        await create_user(ALICE, "alice")
        media, profile = await media_service.upload_profile_image(
            ALICE, "banner", b"png-bytes", "b.png", "image/png"
        )
        assert profile.banner_picture == media.url

    async def test_profile_image_invalid_type(self, media_service, mock_media_provider, create_user):
        await create_user(ALICE, "alice")
        with pytest.raises(ValidationError):
            await media_service.upload_profile_image(
                ALICE, "avatar", b"png-bytes", "b.png", "image/png"
            )
        mock_media_provider.upload.assert_not_awaited()
