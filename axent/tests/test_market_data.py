import httpx
import pytest

from axent.errors import UpstreamError
from axent.services.market_data import (
    CryptoQuoteService, ExchangeRateService, StockQuoteService, normalize_ticker, base_symbol,
)


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _cmc_quote(price):
    return {"quote": {"USD": {"price": price}}}


@pytest.mark.parametrize("symbol, expected", [
    ("BBCA", "BBCA.JK"),
    ("BBCA.JK", "BBCA.JK"),
    ("AAPL", "AAPL.JK"),
    ("GOOGL", "GOOGL"),
    ("bbca", "bbca"),
    ("BRK.B", "BRK.B"),
])
def test_normalize_ticker(symbol, expected):
    assert normalize_ticker(symbol) == expected


def test_base_symbol():
    assert base_symbol("TLKM.JK") == "TLKM"
    assert base_symbol("GOOGL") == "GOOGL"


async def test_crypto_prices_omit_unknown_symbols():
    seen = {}

    def handler(request):
        seen["symbol"] = request.url.params["symbol"]
        seen["key"] = request.headers["x-cmc_pro_api_key"]
        return httpx.Response(200, json={"data": {
            "BTC": _cmc_quote(65000.5),
            "ETH": [_cmc_quote(3200)],
        }})

    service = CryptoQuoteService(api_key="cmc-key", http_client=_client(handler))
    prices = await service.get_prices(["BTC", "ETH", "NOPE"])

    assert prices == {"BTC": 65000.5, "ETH": 3200.0}
    assert seen == {"symbol": "BTC,ETH,NOPE", "key": "cmc-key"}


async def test_crypto_prices_empty_request_skips_provider():
    def handler(request):
        raise AssertionError("provider should not be called")

    service = CryptoQuoteService(api_key="cmc-key", http_client=_client(handler))
    assert await service.get_prices([]) == {}


async def test_crypto_prices_provider_error():
    service = CryptoQuoteService(
        api_key="cmc-key",
        http_client=_client(lambda request: httpx.Response(503, text="unavailable")),
    )
    with pytest.raises(UpstreamError) as exc:
        await service.get_prices(["BTC"])
    assert exc.value.status_code == 500


async def test_crypto_prices_require_api_key():
    service = CryptoQuoteService(api_key="", http_client=_client(lambda request: httpx.Response(200)))
    with pytest.raises(UpstreamError, match="COINMARKETCAP_API_KEY"):
        await service.get_prices(["BTC"])


async def test_crypto_list_dedupes_symbols():
    listing = [
        {"id": 1, "symbol": "BTC", "name": "Bitcoin", "slug": "bitcoin"},
        {"id": 1027, "symbol": "ETH", "name": "Ethereum", "slug": "ethereum"},
        {"id": 9999, "symbol": "BTC", "name": "Bitcoin Clone", "slug": "bitcoin-clone"},
    ]
    service = CryptoQuoteService(
        api_key="cmc-key",
        http_client=_client(lambda request: httpx.Response(200, json={"data": listing})),
    )

    coins = await service.list_top()

    assert [c["symbol"] for c in coins] == ["BTC", "ETH"]
    assert coins[0]["name"] == "Bitcoin"
    assert coins[0]["logo"].endswith("/64x64/1.png")


async def test_exchange_rate_from_provider():
    def handler(request):
        assert request.url.params["from"] == "USD"
        assert request.url.params["to"] == "IDR"
        return httpx.Response(200, json={"amount": 1.0, "base": "USD", "rates": {"IDR": 16250.5}})

    rate = await ExchangeRateService(http_client=_client(handler)).get_rate()
    assert rate.rate == 16250.5
    assert rate.source == "frankfurter"


def _raise_connect_error(request):
    raise httpx.ConnectError("unreachable", request=request)


@pytest.mark.parametrize("handler", [
    lambda request: httpx.Response(500, text="boom"),
    lambda request: httpx.Response(200, json={"rates": {}}),
    lambda request: httpx.Response(200, text="not json"),
    _raise_connect_error,
], ids=["http-error", "missing-idr", "bad-body", "unreachable"])
async def test_exchange_rate_never_fails(handler):
    rate = await ExchangeRateService(fallback_rate=15700, http_client=_client(handler)).get_rate()
    assert rate.rate == 15700
    assert rate.source == "fallback"
    assert rate.timestamp


async def test_stock_prices_skip_failed_lookups(monkeypatch):
    def fake_fetch(symbol):
        if symbol == "BBRI.JK":
            raise RuntimeError("yahoo down")
        return {"BBCA.JK": 9875.0, "GOOGL": 171.2}.get(symbol)

    monkeypatch.setattr(StockQuoteService, "_fetch_price", staticmethod(fake_fetch))

    prices = await StockQuoteService(api_key="").get_prices(["BBCA", "BBRI", "GOTO", "GOOGL"])

    assert prices == {"BBCA": 9875.0, "GOOGL": 171.2}


async def test_stock_search_keeps_jakarta_listings():
    seen = {}

    def handler(request):
        seen["q"] = request.url.params["q"]
        seen["token"] = request.url.params["token"]
        return httpx.Response(200, json={"count": 3, "result": [
            {"symbol": "BBCA.JK", "description": "BANK CENTRAL ASIA TBK PT", "type": "Common Stock"},
            {"symbol": "BAC", "description": "BANK OF AMERICA CORP", "type": "Common Stock"},
            {"symbol": "BBRI.JK", "description": "", "type": ""},
        ]})

    service = StockQuoteService(api_key="finnhub-key", http_client=_client(handler))
    result = await service.search("  bank ")

    assert seen == {"q": "bank", "token": "finnhub-key"}
    assert result["query"] == "bank"
    assert result["count"] == 2
    assert result["stocks"] == [
        {"symbol": "BBCA", "description": "BANK CENTRAL ASIA TBK PT", "type": "Common Stock"},
        {"symbol": "BBRI", "description": "BBRI.JK", "type": "Common Stock"},
    ]


async def test_stock_search_requires_api_key():
    service = StockQuoteService(api_key="")
    with pytest.raises(UpstreamError, match="FINNHUB_API_KEY"):
        await service.search("bank")
