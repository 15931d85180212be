import httpx
import pytest

from axent.auth.supabase_auth import (
    SupabaseAuthClient, extract_bearer_token, get_auth_client,
    INVALID_TOKEN_MESSAGE, INVALID_SESSION_MESSAGE,
)
from axent.errors import UnauthorizedError
from axent.services.financial_data import get_repository
from axent.main import app
from axent.tests.conftest import AUTH_HEADERS


class SpyRepository:
    def __init__(self):
        self.calls = 0

    async def fetch_snapshot(self, user_id):
        self.calls += 1
        raise AssertionError("data fetched before authentication")


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc.def") == "abc.def"


@pytest.mark.parametrize("header", [None, "", "Token abc", "bearer abc", "Bearer "])
def test_extract_bearer_token_rejects(header):
    with pytest.raises(UnauthorizedError):
        extract_bearer_token(header)


@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": "Basic dXNlcjpwYXNz"},
    {"Authorization": "Bearer unknown-token"},
])
def test_advisor_chat_rejects_before_fetching(client, headers):
    spy = SpyRepository()
    app.dependency_overrides[get_repository] = lambda: spy

    response = client.post(
        "/functions/v1/financial-advisor-chat",
        json={"messages": [{"role": "user", "content": "Halo"}]},
        headers=headers,
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"
    assert response.json()["response"]
    assert spy.calls == 0


@pytest.mark.parametrize("path", [
    "/functions/v1/analyze-receipt",
    "/functions/v1/analyze-crypto-transaction",
    "/functions/v1/ai-command-executor",
])
def test_user_functions_require_bearer(client, path):
    response = client.post(path, json={})
    assert response.status_code == 401


def test_valid_token_passes(client, gateway_recorder):
    gateway_recorder.content = "Baik."
    response = client.post(
        "/functions/v1/financial-advisor-chat",
        json={"messages": [{"role": "user", "content": "Halo"}]},
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 200


def _auth_client(handler):
    return SupabaseAuthClient(
        base_url="https://project.supabase.test",
        api_key="anon-key",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


async def test_supabase_get_user():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["apikey"] = request.headers["apikey"]
        seen["authorization"] = request.headers["authorization"]
        return httpx.Response(200, json={"id": "abc-123", "email": "a@b.c"})

    user = await _auth_client(handler).get_user("jwt-token")

    assert user["id"] == "abc-123"
    assert seen == {
        "path": "/auth/v1/user",
        "apikey": "anon-key",
        "authorization": "Bearer jwt-token",
    }


async def test_supabase_rejected_token_is_invalid_token():
    client = _auth_client(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))
    with pytest.raises(UnauthorizedError) as exc:
        await client.get_user("expired")
    assert exc.value.response == INVALID_TOKEN_MESSAGE


async def test_supabase_non_json_body_is_unauthorized():
    client = _auth_client(lambda request: httpx.Response(200, text="<html>proxy</html>"))
    with pytest.raises(UnauthorizedError) as exc:
        await client.get_user("jwt-token")
    assert exc.value.status_code == 401
    assert exc.value.response == INVALID_TOKEN_MESSAGE


@pytest.mark.parametrize("payload", [{}, {"email": "a@b.c"}, ["abc-123"]])
async def test_supabase_payload_without_user_returns_none(payload):
    client = _auth_client(lambda request: httpx.Response(200, json=payload))
    assert await client.get_user("jwt-token") is None


async def test_supabase_unreachable_is_unauthorized():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(UnauthorizedError):
        await _auth_client(handler).get_user("jwt-token")


def test_unknown_user_gets_session_message(client):
    response = client.post(
        "/functions/v1/financial-advisor-chat",
        json={"messages": []},
        headers={"Authorization": "Bearer unknown-token"},
    )
    assert response.status_code == 401
    assert response.json()["response"] == INVALID_SESSION_MESSAGE


@pytest.mark.parametrize("auth_response", [
    httpx.Response(401, json={"msg": "invalid JWT"}),
    httpx.Response(200, text="<html>proxy</html>"),
])
def test_auth_service_failures_get_token_message(client, auth_response):
    auth = _auth_client(lambda request: auth_response)
    app.dependency_overrides[get_auth_client] = lambda: auth

    response = client.post(
        "/functions/v1/financial-advisor-chat",
        json={"messages": []},
        headers={"Authorization": "Bearer some-token"},
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized", "response": INVALID_TOKEN_MESSAGE}
