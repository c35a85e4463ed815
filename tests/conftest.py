import os
import sys
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

# Settings are read at import time; point them at throwaway resources first.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CLEANUP_SCHEDULER_ENABLED"] = "false"

# Add the parent directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import app  # noqa: E402
from api import dependencies  # noqa: E402
from core.database import (  # noqa: E402
    build_engine,
    build_session_factory,
    create_db_and_tables,
)
from providers.chat_provider import ChatCompletion, ChatProvider  # noqa: E402
from providers.media_provider import MediaStorageProvider, UploadedMedia  # noqa: E402
from providers.price_provider import CryptoQuote, PriceProvider  # noqa: E402
from core.models import MediaType  # noqa: E402
from services.chat_service import ChatService  # noqa: E402
from services.cleanup_scheduler import CleanupScheduler  # noqa: E402
from services.media_service import MediaService  # noqa: E402
from services.notification_service import NotificationService  # noqa: E402
from services.post_service import PostService  # noqa: E402
from services.price_service import PriceService  # noqa: E402
from services.profile_service import ProfileService  # noqa: E402

ALICE = "0x" + "a" * 40
BOB = "0x" + "b" * 40
CAROL = "0x" + "c" * 40


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await create_db_and_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def file_session_factory(tmp_path):
    """Session factory over a database file, one connection per session.

    The in-memory engine shares a single connection, so concurrent operations
    would run inside one transaction; these need separate connections.
    """
    file_engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'slacker.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    await create_db_and_tables(file_engine)
    yield build_session_factory(file_engine)
    await file_engine.dispose()


@pytest.fixture
def profile_service(session_factory) -> ProfileService:
    return ProfileService(session_factory)


@pytest.fixture
def post_service(session_factory) -> PostService:
    return PostService(session_factory)


@pytest.fixture
def notification_service(session_factory) -> NotificationService:
    return NotificationService(session_factory)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_price_provider():
    """Price provider double returning a fixed listing."""
    provider = Mock(spec=PriceProvider)
    provider.source_name = "fake"
    provider.fetch_quotes = AsyncMock(
        return_value=[
            CryptoQuote(symbol="BTC", name="Bitcoin", price=65000.0, percent_change_24h=1.5),
            CryptoQuote(symbol="ETH", name="Ethereum", price=3200.0, percent_change_24h=-0.4),
        ]
    )
    return provider


@pytest.fixture
def price_service(mock_price_provider, fake_clock) -> PriceService:
    return PriceService(mock_price_provider, ttl_seconds=300, clock=fake_clock)


@pytest.fixture
def mock_chat_provider():
    provider = Mock(spec=ChatProvider)
    provider.source_name = "fake"
    provider.complete = AsyncMock(
        return_value=ChatCompletion(
            content="Hello from the model",
            model="fake-model",
            usage={"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
        )
    )

    async def fake_stream(messages):
        for piece in ("Hel", "lo"):
            yield piece

    provider.stream = Mock(side_effect=fake_stream)
    return provider


@pytest.fixture
def chat_service(mock_chat_provider) -> ChatService:
    return ChatService(mock_chat_provider)


@pytest.fixture
def mock_media_provider():
    provider = Mock(spec=MediaStorageProvider)
    provider.source_name = "fake"
    provider.upload = AsyncMock(
        return_value=UploadedMedia(
            url="https://media.example.com/slacker/picture.png",
            media_type=MediaType.IMAGE,
        )
    )
    return provider


@pytest.fixture
def media_service(mock_media_provider, profile_service) -> MediaService:
    return MediaService(mock_media_provider, profile_service)


@pytest.fixture
def cleanup_scheduler(profile_service) -> CleanupScheduler:
    return CleanupScheduler(profile_service, interval_hours=6)


@pytest.fixture
def create_user(profile_service):
    """Factory creating a profile for a wallet address."""

    async def _create(wallet_address: str, username: str = None, account_type: str = None):
        return await profile_service.upsert_profile(
            wallet_address,
            username or f"user_{wallet_address[2:8]}",
            account_type=account_type,
        )

    return _create


@pytest.fixture
async def async_client(
    profile_service,
    post_service,
    notification_service,
    price_service,
    chat_service,
    media_service,
    cleanup_scheduler,
) -> AsyncGenerator[AsyncClient, None]:
    """Async client for the app with services bound to the test database."""
    app.dependency_overrides[dependencies.get_profile_service] = lambda: profile_service
    app.dependency_overrides[dependencies.get_post_service] = lambda: post_service
    app.dependency_overrides[dependencies.get_notification_service] = (
        lambda: notification_service
    )
    app.dependency_overrides[dependencies.get_price_service] = lambda: price_service
    app.dependency_overrides[dependencies.get_chat_service] = lambda: chat_service
    app.dependency_overrides[dependencies.get_media_service] = lambda: media_service
    app.dependency_overrides[dependencies.get_cleanup_scheduler] = (
        lambda: cleanup_scheduler
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    logger = Mock()
    logger.info = Mock()
    logger.error = Mock()
    logger.warning = Mock()
    logger.debug = Mock()
    return logger
