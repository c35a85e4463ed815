"""
Runtime configuration for the Slacker API.

All settings come from environment variables and are read once into a
`Settings` instance. Call `get_settings()` anywhere a value is needed;
`reload_settings()` re-reads the environment (used by tests).
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    environment: str = "development"
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./slacker.db"
    cors_origins: List[str] = field(
        default_factory=lambda: ["https://fe-slacker.vercel.app", "http://localhost:3000"]
    )

    # Crypto prices
    price_provider: str = "coingecko"
    coingecko_api_key: Optional[str] = None
    coinmarketcap_api_key: Optional[str] = None
    price_cache_ttl_seconds: int = 300
    upstream_timeout_seconds: float = 10.0

    # AI chat
    openai_api_key: Optional[str] = None
    reploy_api_key: Optional[str] = None
    chat_base_url: Optional[str] = None
    chat_model: str = "gpt-3.5-turbo"

    # Media storage
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_folder: str = "slacker"

    # Burner account sweep
    cleanup_scheduler_enabled: bool = True
    cleanup_interval_hours: int = 6
    burner_retention_hours: int = 24

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            environment=os.getenv("ENVIRONMENT", defaults.environment).lower(),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            cors_origins=_env_list("CORS_ORIGINS", defaults.cors_origins),
            price_provider=os.getenv("PRICE_PROVIDER", defaults.price_provider).lower(),
            coingecko_api_key=os.getenv("COINGECKO_API_KEY"),
            coinmarketcap_api_key=os.getenv("COINMARKETCAP_API_KEY"),
            price_cache_ttl_seconds=int(
                os.getenv("PRICE_CACHE_TTL_SECONDS", defaults.price_cache_ttl_seconds)
            ),
            upstream_timeout_seconds=float(
                os.getenv("UPSTREAM_TIMEOUT_SECONDS", defaults.upstream_timeout_seconds)
            ),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            reploy_api_key=os.getenv("REPLOY_API_KEY"),
            chat_base_url=os.getenv("CHAT_BASE_URL"),
            chat_model=os.getenv("CHAT_MODEL", defaults.chat_model),
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY"),
            cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET"),
            cloudinary_folder=os.getenv("CLOUDINARY_FOLDER", defaults.cloudinary_folder),
            cleanup_scheduler_enabled=_env_bool(
                "CLEANUP_SCHEDULER_ENABLED", defaults.cleanup_scheduler_enabled
            ),
            cleanup_interval_hours=int(
                os.getenv("CLEANUP_INTERVAL_HOURS", defaults.cleanup_interval_hours)
            ),
            burner_retention_hours=int(
                os.getenv("BURNER_RETENTION_HOURS", defaults.burner_retention_hours)
            ),
        )

    @property
    def chat_api_key(self) -> Optional[str]:
        """Reploy key wins when the chat base URL points at Reploy."""
        if self.chat_base_url and "reploy" in self.chat_base_url:
            return self.reploy_api_key or self.openai_api_key
        return self.openai_api_key


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reload_settings() -> Settings:
    global _settings
    _settings = Settings.from_env()
    return _settings
