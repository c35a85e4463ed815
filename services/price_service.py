"""
Crypto price service.

Puts the configured `PriceProvider` behind a `ReadThroughCache` so that
repeated listing requests within the TTL cost one upstream call, and
concurrent requests for the same listing share one call.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from core.cache import DEFAULT_TTL_SECONDS, ReadThroughCache
from core.exceptions import ValidationError
from providers.price_provider import CryptoQuote, PriceProvider

logger = logging.getLogger(__name__)

TOP_LISTING_LIMIT = 100
MAX_SYMBOLS = 50


class PriceService:
    def __init__(
        self,
        provider: PriceProvider,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        serve_stale_on_error: bool = False,
    ):
        self.provider = provider
        self.cache = ReadThroughCache(
            self._load,
            ttl_seconds=ttl_seconds,
            clock=clock,
            serve_stale_on_error=serve_stale_on_error,
            name=f"prices:{provider.source_name}",
        )

    async def _load(self, limit: int, symbols: Optional[Tuple[str, ...]] = None) -> List[CryptoQuote]:
        logger.info(
            f"Fetching crypto prices from {self.provider.source_name} "
            f"(limit={limit}, symbols={symbols})"
        )
        return await self.provider.fetch_quotes(limit=limit, symbols=symbols)

    async def get_top(self, limit: int = TOP_LISTING_LIMIT) -> List[CryptoQuote]:
        """Top coins by market cap"""
        if limit < 1 or limit > TOP_LISTING_LIMIT:
            raise ValidationError(
                "limit", limit, f"Limit must be between 1 and {TOP_LISTING_LIMIT}"
            )
        return await self.cache.get(limit=limit)

    async def get_quotes(self, symbols: Iterable[str]) -> List[CryptoQuote]:
        """Quotes for specific symbols; order and case of the input do not matter"""
        normalized = tuple(sorted({s.strip().upper() for s in symbols if s and s.strip()}))
        if not normalized:
            raise ValidationError("symbols", symbols, "At least one symbol is required")
        if len(normalized) > MAX_SYMBOLS:
            raise ValidationError(
                "symbols", symbols, f"At most {MAX_SYMBOLS} symbols per request"
            )
        return await self.cache.get(limit=TOP_LISTING_LIMIT, symbols=normalized)

    async def stats(self) -> Dict[str, Any]:
        return await self.cache.stats()
