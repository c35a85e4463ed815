"""
Unit tests for PriceService caching behaviour.
"""
import asyncio

import pytest

from core.exceptions import UpstreamUnavailableError, ValidationError


@pytest.mark.unit
class TestPriceService:
    async def test_top_listing_cached_within_ttl(
        self, price_service, mock_price_provider, fake_clock
    ):
        first = await price_service.get_top()
        fake_clock.advance(120)
        second = await price_service.get_top()

        assert first == second
        assert [q.symbol for q in first] == ["BTC", "ETH"]
        mock_price_provider.fetch_quotes.assert_awaited_once_with(limit=100, symbols=None)

    async def test_refetch_after_ttl(self, price_service, mock_price_provider, fake_clock):
        await price_service.get_top()
        fake_clock.advance(299)
        await price_service.get_top()
        fake_clock.advance(2)
        await price_service.get_top()
        assert mock_price_provider.fetch_quotes.await_count == 2

    async def test_concurrent_requests_share_one_fetch(
        self, price_service, mock_price_provider
    ):
        results = await asyncio.gather(*(price_service.get_top() for _ in range(10)))
        assert all(r == results[0] for r in results)
        assert mock_price_provider.fetch_quotes.await_count == 1

    async def test_quotes_keyed_by_normalized_symbols(
        self, price_service, mock_price_provider
    ):
        await price_service.get_quotes(["eth", "BTC "])
        await price_service.get_quotes(["btc", "ETH", "eth"])

        mock_price_provider.fetch_quotes.assert_awaited_once_with(
            limit=100, symbols=("BTC", "ETH")
        )

    async def test_invalid_requests(self, price_service, mock_price_provider):
        with pytest.raises(ValidationError):
            await price_service.get_top(0)
        with pytest.raises(ValidationError):
            await price_service.get_top(101)
        with pytest.raises(ValidationError):
            await price_service.get_quotes([" ", ""])
        mock_price_provider.fetch_quotes.assert_not_awaited()

    async def test_upstream_failure_propagates(self, price_service, mock_price_provider):
        mock_price_provider.fetch_quotes.side_effect = UpstreamUnavailableError(
            "fake", "timed out"
        )
        with pytest.raises(UpstreamUnavailableError):
            await price_service.get_top()
        stats = await price_service.stats()
        assert stats["errors"] == 1
        assert stats["keys"] == []
