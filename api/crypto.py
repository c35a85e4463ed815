"""
Crypto price endpoints.

Endpoints Provided:
- `GET /api/crypto/top`: top coins by market cap (`limit`, default 100).
- `GET /api/crypto/quotes`: quotes for a comma-separated `symbols` list.

Both are answered from the price cache; an upstream call happens at most once
per listing per TTL.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from core.logging_config import log_function_call
from providers.price_provider import CryptoQuote
from services.price_service import TOP_LISTING_LIMIT, PriceService

from .dependencies import get_price_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/crypto", tags=["Crypto"])


@router.get("/top", response_model=List[CryptoQuote])
@log_function_call(logger)
async def get_top_cryptos(
    limit: int = Query(TOP_LISTING_LIMIT),
    prices: PriceService = Depends(get_price_service),
):
    return await prices.get_top(limit)


@router.get("/quotes", response_model=List[CryptoQuote])
@log_function_call(logger)
async def get_quotes(
    symbols: str = Query(..., description="Comma-separated symbols, e.g. BTC,ETH"),
    prices: PriceService = Depends(get_price_service),
):
    return await prices.get_quotes(symbols.split(","))
