"""
Input Validation and Sanitization Utilities.

Every value that reaches a service from a client passes through
`InputValidator` first, so services only ever see canonical data:

- wallet addresses are checked against `^0x[a-fA-F0-9]{40}$` and lower-cased;
- usernames are 3-50 characters of letters, digits and underscores;
- free text (bios, post and comment bodies, chat messages) is truncated to its
  cap, trimmed and HTML-escaped before storage. Caps count input characters;
  escaping can grow the stored text, so those columns are `Text`;
- media URLs must be absolute http(s) URLs and media kinds must be one of the
  known `MediaType` values;
- uploads are checked for size and mime type;
- page/limit pairs are bounded.

Failures raise `core.exceptions.ValidationError`, which the API renders as a
400 response.
"""

import html
import re
from typing import Iterable, Optional, Tuple
from urllib.parse import urlparse

from core.exceptions import ValidationError
from core.logging_config import get_logger
from core.models import AccountType, MediaType

logger = get_logger(__name__)

POST_CONTENT_MAX_LENGTH = 1000
COMMENT_CONTENT_MAX_LENGTH = 500
BIO_MAX_LENGTH = 500
CHAT_MESSAGE_MAX_LENGTH = 2000
DEFAULT_BIO = "New to Slacker"

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
ALLOWED_UPLOAD_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "video/mp4",
    "video/quicktime",
)

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 100


class InputValidator:
    """Validation and sanitization of client-supplied values"""

    WALLET_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
    USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
    USERNAME_MIN_LENGTH = 3
    USERNAME_MAX_LENGTH = 50

    @staticmethod
    def sanitize_text(value: Optional[str], max_length: int) -> str:
        """Truncate to `max_length`, trim and HTML-escape; None becomes ''"""
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValidationError("input", value, "Must be a string")
        return html.escape(value[:max_length].strip())

    @staticmethod
    def require_text(value: Optional[str], field: str, max_length: int) -> str:
        """Like `sanitize_text` but rejects content that is empty once trimmed"""
        sanitized = InputValidator.sanitize_text(value, max_length)
        if not sanitized:
            raise ValidationError(field, value, f"{field.capitalize()} is required")
        return sanitized

    @staticmethod
    def validate_wallet_address(address: Optional[str]) -> str:
        """Return the canonical (lower-case) form of an Ethereum-style address"""
        if not isinstance(address, str) or not InputValidator.WALLET_ADDRESS_PATTERN.match(
            address
        ):
            raise ValidationError(
                "walletAddress", address, "Invalid Ethereum wallet address"
            )
        return address.lower()

    @staticmethod
    def validate_username(username: Optional[str]) -> str:
        if not username:
            raise ValidationError("username", username, "Username is required")
        if len(username) < InputValidator.USERNAME_MIN_LENGTH:
            raise ValidationError(
                "username", username, "Username must be at least 3 characters"
            )
        if len(username) > InputValidator.USERNAME_MAX_LENGTH:
            raise ValidationError(
                "username", username, "Username cannot exceed 50 characters"
            )
        if not InputValidator.USERNAME_PATTERN.match(username):
            raise ValidationError(
                "username",
                username,
                "Username can only contain letters, numbers, and underscores",
            )
        return username

    @staticmethod
    def validate_bio(bio: Optional[str]) -> str:
        return InputValidator.sanitize_text(bio, BIO_MAX_LENGTH) or DEFAULT_BIO

    @staticmethod
    def validate_media_url(url: Optional[str]) -> Optional[str]:
        if url is None or url == "":
            return None
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError("mediaUrl", url, "Media URL must be an http(s) URL")
        if len(url) > 1024:
            raise ValidationError("mediaUrl", url, "Media URL is too long")
        return url

    @staticmethod
    def validate_media_type(media_type: Optional[str]) -> Optional[MediaType]:
        if media_type is None or media_type == "":
            return None
        try:
            return MediaType(media_type)
        except ValueError:
            raise ValidationError(
                "mediaType", media_type, "Media type must be 'image' or 'video'"
            )

    @staticmethod
    def validate_media(
        media_url: Optional[str], media_type: Optional[str]
    ) -> Tuple[Optional[str], Optional[MediaType]]:
        url = InputValidator.validate_media_url(media_url)
        kind = InputValidator.validate_media_type(media_type)
        if url is None:
            return None, None
        return url, kind or MediaType.IMAGE

    @staticmethod
    def validate_account_type(account_type: Optional[str]) -> Optional[AccountType]:
        if account_type is None:
            return None
        try:
            return AccountType(account_type)
        except ValueError:
            raise ValidationError(
                "accountType", account_type, "Account type must be 'normal' or 'burner'"
            )

    @staticmethod
    def validate_image_type(image_type: Optional[str]) -> str:
        if image_type not in ("profile", "banner"):
            raise ValidationError("imageType", image_type, "Invalid image type")
        return image_type

    @staticmethod
    def validate_upload(
        size: int,
        content_type: Optional[str],
        max_bytes: int = MAX_UPLOAD_BYTES,
        allowed_types: Iterable[str] = ALLOWED_UPLOAD_TYPES,
    ) -> str:
        if size <= 0:
            raise ValidationError("file", size, "No file uploaded")
        if size > max_bytes:
            raise ValidationError(
                "file",
                size,
                f"File size must not exceed {max_bytes // (1024 * 1024)}MB",
            )
        if content_type not in tuple(allowed_types):
            logger.warning(f"Rejected upload with content type {content_type}")
            raise ValidationError("file", content_type, "Unsupported file type")
        return content_type

    @staticmethod
    def validate_pagination(page: int = 1, limit: int = DEFAULT_PAGE_LIMIT) -> Tuple[int, int]:
        """Return (offset, limit) for a 1-based page"""
        if page < 1:
            raise ValidationError("page", page, "Page must be at least 1")
        if limit < 1 or limit > MAX_PAGE_LIMIT:
            raise ValidationError(
                "limit", limit, f"Limit must be between 1 and {MAX_PAGE_LIMIT}"
            )
        return (page - 1) * limit, limit
