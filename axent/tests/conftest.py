import json

import httpx
import pytest
from fastapi.testclient import TestClient

from axent.ai.gateway import AIGateway, get_ai_gateway
from axent.auth.supabase_auth import get_auth_client
from axent.database import create_session_factory, init_db
from axent.main import app
from axent.services.financial_data import FinancialRepository, get_repository
from axent.services.market_data import MarketDataService, ExchangeRate, get_market_data

TEST_USER_ID = "user-1"
VALID_TOKEN = "valid-token"
AUTH_HEADERS = {"Authorization": f"Bearer {VALID_TOKEN}"}


def chat_completion(content=None, tool_calls=None):
    message = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": f"call_{i}",
                "type": "function",
                "function": {"name": name, "arguments": json.dumps(arguments)},
            }
            for i, (name, arguments) in enumerate(tool_calls)
        ]
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "test-model",
        "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
    }


class GatewayRecorder:
    """Mock transport for the AI gateway that remembers request bodies"""

    def __init__(self, status_code=200, content="OK", tool_calls=None):
        self.status_code = status_code
        self.content = content
        self.tool_calls = tool_calls
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "gateway error"}})
        return httpx.Response(200, json=chat_completion(self.content, self.tool_calls))

    def gateway(self) -> AIGateway:
        return AIGateway(
            api_key="test-key",
            base_url="https://gateway.test/v1",
            model="test-model",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self)),
        )


class FakeAuthClient:
    async def get_user(self, token):
        if token == VALID_TOKEN:
            return {"id": TEST_USER_ID, "email": "user@example.com"}
        return None


class FakeStocks:
    def __init__(self, prices=None):
        self.prices = prices or {}
        self.calls = []

    async def get_prices(self, symbols):
        self.calls.append(list(symbols))
        return {s: p for s, p in self.prices.items() if s in symbols}


class FakeCrypto:
    def __init__(self, prices=None):
        self.prices = prices or {}

    async def get_prices(self, symbols):
        return {s: p for s, p in self.prices.items() if s in symbols}


class FakeFx:
    def __init__(self, rate=15000.0):
        self.rate = rate

    async def get_rate(self):
        return ExchangeRate(rate=self.rate, source="frankfurter")


@pytest.fixture
def session_factory(tmp_path):
    engine, factory = create_session_factory(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def repository(session_factory):
    return FinancialRepository(session_factory)


@pytest.fixture
def market():
    return MarketDataService(stocks=FakeStocks(), crypto=FakeCrypto(), fx=FakeFx())


@pytest.fixture
def gateway_recorder():
    return GatewayRecorder()


@pytest.fixture
def client(repository, market, gateway_recorder):
    app.dependency_overrides[get_auth_client] = FakeAuthClient
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_market_data] = lambda: market
    app.dependency_overrides[get_ai_gateway] = gateway_recorder.gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
