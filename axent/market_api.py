"""
Read-only market data proxies
"""

from fastapi import APIRouter, Depends
from typing import Optional

from axent.errors import AxentError, UpstreamError
from axent.schemas import (
    SymbolsRequest, StockSearchRequest,
    ExchangeRateResponse, CryptoPricesResponse, StockPricesResponse,
)
from axent.services.market_data import MarketDataService, get_market_data
from axent.utils.logger import get_logger

logger = get_logger(__name__)

market_router = APIRouter(tags=["market_data"])


@market_router.post("/exchange-rate", response_model=ExchangeRateResponse)
async def exchange_rate(market: MarketDataService = Depends(get_market_data)):
    """USD to IDR rate; falls back to a fixed rate instead of failing"""
    logger.info("Fetching real-time USD to IDR exchange rate...")
    fx = await market.fx.get_rate()
    return fx.to_dict()


@market_router.post("/crypto-prices", response_model=CryptoPricesResponse)
async def crypto_prices(
    request: Optional[SymbolsRequest] = None,
    market: MarketDataService = Depends(get_market_data),
):
    symbols = (request.symbols if request else None) or []
    try:
        prices = await market.crypto.get_prices(symbols)
    except AxentError:
        raise
    except Exception as e:
        logger.error(f"Error in crypto-prices function: {e}", exc_info=True)
        raise UpstreamError(str(e))
    return {"prices": prices}


@market_router.post("/crypto-list")
async def crypto_list(market: MarketDataService = Depends(get_market_data)):
    try:
        coins = await market.crypto.list_top()
    except AxentError:
        raise
    except Exception as e:
        logger.error(f"Error in crypto-list function: {e}", exc_info=True)
        raise UpstreamError(str(e))
    return {"cryptoList": coins}


@market_router.post("/stock-prices", response_model=StockPricesResponse)
async def stock_prices(
    request: Optional[SymbolsRequest] = None,
    market: MarketDataService = Depends(get_market_data),
):
    symbols = (request.symbols if request else None) or []
    try:
        return await market.stocks.quote(symbols)
    except AxentError:
        raise
    except Exception as e:
        logger.error(f"Error in stock-prices function: {e}", exc_info=True)
        raise UpstreamError(str(e), "Check if the stock ticker is correct and try again")


@market_router.post("/stock-list")
async def stock_list(
    request: Optional[StockSearchRequest] = None,
    market: MarketDataService = Depends(get_market_data),
):
    try:
        return await market.stocks.search(request.query if request else None)
    except AxentError:
        raise
    except Exception as e:
        logger.error(f"Error in stock-list function: {e}", exc_info=True)
        raise UpstreamError(str(e) or "Failed to search stocks")
