"""
Crypto Price Provider Classes

Each provider fetches a listing of cryptocurrencies from one upstream API and
turns it into `CryptoQuote` records (symbol, name, USD price, 24h percent
change). Providers never retry; a timeout or unreachable host raises
`UpstreamUnavailableError`, a non-2xx status or unexpected body raises
`UpstreamError`.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import aiohttp
from pydantic import BaseModel

from core.exceptions import UpstreamError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

PUBLIC_PRICE_ERROR = "Error fetching cryptocurrency data"


class CryptoQuote(BaseModel):
    symbol: str
    name: str
    price: Optional[float] = None
    percent_change_24h: Optional[float] = None


class PriceProvider(ABC):
    """Abstract base class for upstream price sources"""

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds

    @property
    @abstractmethod
    def source_name(self) -> str:
        pass

    @abstractmethod
    async def fetch_quotes(
        self, limit: int = 100, symbols: Optional[Sequence[str]] = None
    ) -> List[CryptoQuote]:
        """Top `limit` coins by market cap, or the given symbols"""
        pass

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(
                timeout=timeout, headers=self._headers()
            ) as session:
                async with session.get(url, params=params) as response:
                    if response.status < 200 or response.status >= 300:
                        body = await response.text()
                        raise UpstreamError(
                            self.source_name,
                            f"HTTP {response.status}: {body[:200]}",
                            PUBLIC_PRICE_ERROR,
                        )
                    return await response.json(content_type=None)
        except UpstreamError:
            raise
        except asyncio.TimeoutError:
            raise UpstreamUnavailableError(
                self.source_name,
                f"timed out after {self.timeout_seconds}s",
                PUBLIC_PRICE_ERROR,
            )
        except aiohttp.ClientConnectionError as e:
            raise UpstreamUnavailableError(self.source_name, str(e), PUBLIC_PRICE_ERROR)
        except (aiohttp.ClientError, ValueError) as e:
            raise UpstreamError(self.source_name, str(e), PUBLIC_PRICE_ERROR)

    def _malformed(self, reason: str) -> UpstreamError:
        return UpstreamError(self.source_name, f"malformed body: {reason}", PUBLIC_PRICE_ERROR)


class CoinGeckoPriceProvider(PriceProvider):
    """Markets listing from the CoinGecko public API"""

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(self, api_key: Optional[str] = None, timeout_seconds: float = 10.0):
        super().__init__(timeout_seconds)
        self.api_key = api_key

    @property
    def source_name(self) -> str:
        return "coingecko"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        return headers

    async def fetch_quotes(
        self, limit: int = 100, symbols: Optional[Sequence[str]] = None
    ) -> List[CryptoQuote]:
        params = {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": limit,
            "page": 1,
            "sparkline": "false",
            "price_change_percentage": "24h",
        }
        if symbols:
            params["symbols"] = ",".join(symbol.lower() for symbol in symbols)

        payload = await self._get_json(f"{self.BASE_URL}/coins/markets", params)
        return self.parse_markets(payload)

    def parse_markets(self, payload: Any) -> List[CryptoQuote]:
        if not isinstance(payload, list):
            raise self._malformed("expected a list of markets")
        try:
            return [
                CryptoQuote(
                    symbol=coin["symbol"].upper(),
                    name=coin["name"],
                    price=coin.get("current_price"),
                    percent_change_24h=coin.get("price_change_percentage_24h"),
                )
                for coin in payload
            ]
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise self._malformed(repr(e))


class CoinMarketCapPriceProvider(PriceProvider):
    """Listings and quotes from the CoinMarketCap Pro API"""

    BASE_URL = "https://pro-api.coinmarketcap.com"

    def __init__(self, api_key: Optional[str] = None, timeout_seconds: float = 10.0):
        super().__init__(timeout_seconds)
        self.api_key = api_key

    @property
    def source_name(self) -> str:
        return "coinmarketcap"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.api_key:
            headers["X-CMC_PRO_API_KEY"] = self.api_key
        return headers

    async def fetch_quotes(
        self, limit: int = 100, symbols: Optional[Sequence[str]] = None
    ) -> List[CryptoQuote]:
        if symbols:
            payload = await self._get_json(
                f"{self.BASE_URL}/v2/cryptocurrency/quotes/latest",
                {"symbol": ",".join(symbol.upper() for symbol in symbols), "convert": "USD"},
            )
            return self.parse_quotes(payload)[:limit]

        payload = await self._get_json(
            f"{self.BASE_URL}/v1/cryptocurrency/listings/latest",
            {"start": 1, "limit": limit, "convert": "USD"},
        )
        return self.parse_listings(payload)

    def _to_quote(self, coin: Dict[str, Any]) -> CryptoQuote:
        usd = coin["quote"]["USD"]
        return CryptoQuote(
            symbol=coin["symbol"].upper(),
            name=coin["name"],
            price=usd.get("price"),
            percent_change_24h=usd.get("percent_change_24h"),
        )

    def parse_listings(self, payload: Any) -> List[CryptoQuote]:
        try:
            return [self._to_quote(coin) for coin in payload["data"]]
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise self._malformed(repr(e))

    def parse_quotes(self, payload: Any) -> List[CryptoQuote]:
        # quotes/latest maps each symbol to a list of matching coins
        try:
            quotes = []
            for matches in payload["data"].values():
                if isinstance(matches, dict):
                    matches = [matches]
                if matches:
                    quotes.append(self._to_quote(matches[0]))
            return quotes
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise self._malformed(repr(e))


def build_price_provider(
    name: str,
    coingecko_api_key: Optional[str] = None,
    coinmarketcap_api_key: Optional[str] = None,
    timeout_seconds: float = 10.0,
) -> PriceProvider:
    if name == "coinmarketcap":
        return CoinMarketCapPriceProvider(coinmarketcap_api_key, timeout_seconds)
    if name == "coingecko":
        return CoinGeckoPriceProvider(coingecko_api_key, timeout_seconds)
    raise ValueError(f"Unknown price provider: {name}")
