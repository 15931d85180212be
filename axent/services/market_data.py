"""
Market data proxies: equity quotes (Yahoo Finance), ticker search (Finnhub),
crypto quotes and listings (CoinMarketCap) and the USD/IDR rate (Frankfurter)
"""

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import httpx
import yfinance as yf

from axent.config import settings
from axent.errors import UpstreamError, ValidationError
from axent.utils.logger import get_logger

logger = get_logger(__name__)

IDX_SUFFIX = ".JK"
EQUITY_TYPES = {"stock", "stocks"}
_IDX_TICKER = re.compile(r"^[A-Z]{4}$")
_SEARCH_QUERY = re.compile(r"^[a-zA-Z0-9\s.\-]+$")


def normalize_ticker(symbol: str) -> str:
    """Four-letter IDX codes get the Yahoo Finance ``.JK`` suffix"""
    if "." not in symbol and _IDX_TICKER.match(symbol):
        return f"{symbol}{IDX_SUFFIX}"
    return symbol


def base_symbol(symbol: str) -> str:
    return symbol.replace(IDX_SUFFIX, "")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class _HttpService:
    """Shared httpx plumbing; tests inject a client built on ``httpx.MockTransport``"""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self.http_client = http_client

    async def _get(self, url: str, **kwargs) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.get(url, **kwargs)
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
            return await client.get(url, **kwargs)


class StockQuoteService(_HttpService):

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.api_key = api_key if api_key is not None else settings.FINNHUB_API_KEY

    @staticmethod
    def _fetch_price(symbol: str) -> Optional[float]:
        ticker = yf.Ticker(symbol)
        data = ticker.history(period="1d")
        if data is None or data.empty:
            return None
        return float(data['Close'].iloc[-1])

    async def get_prices(self, symbols: Iterable[str]) -> Dict[str, float]:
        """Current prices keyed by base symbol; unresolved tickers are skipped"""
        formatted = [normalize_ticker(s) for s in symbols]
        logger.info(f"Formatted symbols for Yahoo Finance: {formatted}")

        results = await asyncio.gather(
            *(asyncio.to_thread(self._fetch_price, symbol) for symbol in formatted),
            return_exceptions=True,
        )

        prices: Dict[str, float] = {}
        for symbol, result in zip(formatted, results):
            if isinstance(result, Exception):
                logger.error(f"Error fetching price for {symbol}: {result}")
                continue
            if result and result > 0:
                prices[base_symbol(symbol)] = result
            else:
                logger.warning(f"No valid price found for {symbol}")
        return prices

    async def quote(self, symbols: List[str]) -> Dict[str, Any]:
        """Payload of the ``stock-prices`` function"""
        if not symbols:
            raise ValidationError("Symbols array is required")

        logger.info(f"Fetching stock prices for symbols: {symbols}")
        prices = await self.get_prices(symbols)

        missing = [base_symbol(s) for s in symbols if base_symbol(s) not in prices]
        if missing:
            logger.warning(f"Missing prices for symbols: {missing}")
        if not prices:
            raise UpstreamError(
                "No valid prices found for any symbols",
                "Check if the stock ticker is correct and try again",
            )

        return {
            "prices": prices,
            "timestamp": utc_timestamp(),
            "source": "yahoo-finance",
            "symbols_found": len(prices),
            "symbols_requested": len(symbols),
        }

    @staticmethod
    def validate_query(query: Any) -> str:
        if not query or not isinstance(query, str):
            raise ValidationError("Query parameter must be a string")
        trimmed = query.strip()
        if len(trimmed) < 1 or len(trimmed) > 100:
            raise ValidationError("Query must be between 1 and 100 characters")
        if not _SEARCH_QUERY.match(trimmed):
            raise ValidationError("Query contains invalid characters")
        return trimmed

    async def search(self, query: Any) -> Dict[str, Any]:
        """Ticker search restricted to Jakarta Stock Exchange listings"""
        trimmed = self.validate_query(query)
        if not self.api_key:
            raise UpstreamError("FINNHUB_API_KEY not configured")

        logger.info(f"Searching stocks for query: {trimmed}")
        response = await self._get(
            f"{settings.FINNHUB_URL}/search",
            params={"q": trimmed, "token": self.api_key},
        )
        if response.status_code != 200:
            logger.error(f"Finnhub API error: {response.status_code}")
            raise UpstreamError(f"Finnhub API error: {response.status_code}")

        data = response.json()
        stocks = [
            {
                "symbol": base_symbol(item["symbol"]),
                "description": item.get("description") or item["symbol"],
                "type": item.get("type") or "Common Stock",
            }
            for item in data.get("result") or []
            if item.get("symbol", "").endswith(IDX_SUFFIX)
        ][:100]

        logger.info(f"Found {len(stocks)} Indonesian stocks")
        return {"stocks": stocks, "count": len(stocks), "query": trimmed}


class CryptoQuoteService(_HttpService):

    def __init__(self, api_key: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.api_key = api_key if api_key is not None else settings.COINMARKETCAP_API_KEY

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise UpstreamError("COINMARKETCAP_API_KEY is not configured")
        return {"X-CMC_PRO_API_KEY": self.api_key, "Accept": "application/json"}

    async def get_prices(self, symbols: List[str]) -> Dict[str, float]:
        """USD unit prices; symbols unknown to the provider are omitted"""
        if not symbols:
            return {}

        logger.info(f"Fetching prices for symbols: {symbols}")
        response = await self._get(
            f"{settings.COINMARKETCAP_URL}/cryptocurrency/quotes/latest",
            params={"symbol": ",".join(symbols)},
            headers=self._headers(),
        )
        if response.status_code != 200:
            logger.error(f"CoinMarketCap API error: {response.status_code} {response.text[:200]}")
            raise UpstreamError(f"CoinMarketCap API error: {response.status_code}")

        data = response.json().get("data") or {}
        prices: Dict[str, float] = {}
        for symbol in symbols:
            entry = data.get(symbol)
            # quotes/latest may return a list per symbol when tickers collide
            if isinstance(entry, list):
                entry = entry[0] if entry else None
            try:
                prices[symbol] = float(entry["quote"]["USD"]["price"])
            except (TypeError, KeyError, ValueError):
                logger.warning(f"No price for crypto symbol {symbol}")
        return prices

    async def list_top(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Top coins by market cap, first occurrence of each symbol kept"""
        logger.info("Fetching cryptocurrency list from CoinMarketCap...")
        response = await self._get(
            f"{settings.COINMARKETCAP_URL}/cryptocurrency/listings/latest",
            params={"limit": limit, "convert": "USD"},
            headers=self._headers(),
        )
        if response.status_code != 200:
            logger.error(f"CoinMarketCap API error: {response.status_code} {response.text[:200]}")
            raise UpstreamError(f"CoinMarketCap API error: {response.status_code}")

        coins: Dict[str, Dict[str, Any]] = {}
        for crypto in response.json().get("data") or []:
            if crypto["symbol"] in coins:
                continue
            coins[crypto["symbol"]] = {
                "symbol": crypto["symbol"],
                "name": crypto["name"],
                "id": crypto["id"],
                "slug": crypto.get("slug"),
                "logo": f"https://s2.coinmarketcap.com/static/img/coins/64x64/{crypto['id']}.png",
            }

        logger.info(f"After deduplication: {len(coins)} unique symbols")
        return list(coins.values())


@dataclass
class ExchangeRate:
    rate: float
    source: str
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {"rate": self.rate, "source": self.source, "timestamp": self.timestamp}


class ExchangeRateService(_HttpService):

    def __init__(self, fallback_rate: Optional[float] = None, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.fallback_rate = fallback_rate or settings.FALLBACK_EXCHANGE_RATE

    async def get_rate(self) -> ExchangeRate:
        """USD to IDR; any failure yields the fallback rate instead of an error"""
        try:
            response = await self._get(settings.FX_API_URL, params={"from": "USD", "to": "IDR"})
            if response.status_code != 200:
                logger.error(f"Exchange rate API error: {response.status_code}")
                return ExchangeRate(rate=self.fallback_rate, source="fallback")

            rate = (response.json().get("rates") or {}).get("IDR")
            if not rate:
                logger.warning("Exchange rate response had no IDR rate, using fallback")
                return ExchangeRate(rate=self.fallback_rate, source="fallback")

            logger.info(f"Exchange rate fetched successfully: {rate}")
            return ExchangeRate(rate=float(rate), source="frankfurter")
        except Exception as e:
            logger.error(f"Error fetching exchange rate: {e}")
            return ExchangeRate(rate=self.fallback_rate, source="fallback")


class MarketDataService:
    """Bundle of the three quote sources, built once per process"""

    def __init__(
        self,
        stocks: Optional[StockQuoteService] = None,
        crypto: Optional[CryptoQuoteService] = None,
        fx: Optional[ExchangeRateService] = None,
    ):
        self.stocks = stocks or StockQuoteService()
        self.crypto = crypto or CryptoQuoteService()
        self.fx = fx or ExchangeRateService()


market_data = MarketDataService()


def get_market_data() -> MarketDataService:
    return market_data
