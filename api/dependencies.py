from datetime import timedelta

from core.config import get_settings
from providers.chat_provider import OpenAIChatProvider
from providers.media_provider import CloudinaryMediaProvider
from providers.price_provider import build_price_provider
from services.chat_service import ChatService
from services.cleanup_scheduler import CleanupScheduler
from services.media_service import MediaService
from services.notification_service import NotificationService
from services.post_service import PostService
from services.price_service import PriceService
from services.profile_service import ProfileService


settings = get_settings()

profile_service = ProfileService(
    burner_retention=timedelta(hours=settings.burner_retention_hours)
)
post_service = PostService()
notification_service = NotificationService()
price_service = PriceService(
    build_price_provider(
        settings.price_provider,
        settings.coingecko_api_key,
        settings.coinmarketcap_api_key,
        settings.upstream_timeout_seconds,
    ),
    ttl_seconds=settings.price_cache_ttl_seconds,
)
chat_service = ChatService(
    OpenAIChatProvider(
        settings.chat_api_key,
        model=settings.chat_model,
        base_url=settings.chat_base_url,
        timeout_seconds=settings.upstream_timeout_seconds,
    )
)
media_service = MediaService(
    CloudinaryMediaProvider(
        settings.cloudinary_cloud_name,
        settings.cloudinary_api_key,
        settings.cloudinary_api_secret,
        folder=settings.cloudinary_folder,
    ),
    profile_service,
)
cleanup_scheduler = CleanupScheduler(
    profile_service, interval_hours=settings.cleanup_interval_hours
)


def get_profile_service() -> ProfileService:
    return profile_service


def get_post_service() -> PostService:
    return post_service


def get_notification_service() -> NotificationService:
    return notification_service


def get_price_service() -> PriceService:
    return price_service


def get_chat_service() -> ChatService:
    return chat_service


def get_media_service() -> MediaService:
    return media_service


def get_cleanup_scheduler() -> CleanupScheduler:
    return cleanup_scheduler
