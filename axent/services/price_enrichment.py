import asyncio
from dataclasses import dataclass, field
from typing import Dict

from axent.config import settings
from axent.services.financial_data import FinancialSnapshot
from axent.services.market_data import MarketDataService, EQUITY_TYPES
from axent.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MarketPrices:
    stock_prices: Dict[str, float] = field(default_factory=dict)
    crypto_prices: Dict[str, float] = field(default_factory=dict)
    exchange_rate: float = settings.CONTEXT_FALLBACK_EXCHANGE_RATE


class PriceEnricher:
    """Looks up live prices for a snapshot; each lookup degrades on its own"""

    def __init__(self, market: MarketDataService):
        self.market = market

    async def _stock_prices(self, snapshot: FinancialSnapshot) -> Dict[str, float]:
        tickers = sorted({
            inv["name"] for inv in snapshot.investments
            if inv.get("type") in EQUITY_TYPES and inv.get("name")
        })
        if not tickers:
            return {}
        logger.info(f"Fetching stock prices for: {tickers}")
        try:
            return await self.market.stocks.get_prices(tickers)
        except Exception as e:
            logger.error(f"Error fetching stock prices: {e}")
            return {}

    async def _crypto_prices(self, snapshot: FinancialSnapshot) -> Dict[str, float]:
        symbols = sorted({h["symbol"] for h in snapshot.crypto_holdings if h.get("symbol")})
        if not symbols:
            return {}
        logger.info(f"Fetching crypto prices for: {symbols}")
        try:
            return await self.market.crypto.get_prices(symbols)
        except Exception as e:
            logger.error(f"Error fetching crypto prices: {e}")
            return {}

    async def _exchange_rate(self) -> float:
        try:
            fx = await self.market.fx.get_rate()
            return fx.rate
        except Exception as e:
            logger.error(f"Error fetching exchange rate: {e}")
            return settings.CONTEXT_FALLBACK_EXCHANGE_RATE

    async def enrich(self, snapshot: FinancialSnapshot) -> MarketPrices:
        stock_prices, crypto_prices, rate = await asyncio.gather(
            self._stock_prices(snapshot),
            self._crypto_prices(snapshot),
            self._exchange_rate(),
        )
        return MarketPrices(stock_prices=stock_prices, crypto_prices=crypto_prices, exchange_rate=rate)
