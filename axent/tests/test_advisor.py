from datetime import datetime

import pytest

from axent.ai.advisor import FinancialAdvisor, build_system_prompt
from axent.ai.gateway import AIGateway, strip_emphasis
from axent.config import settings
from axent.errors import UpstreamError
from axent.models import BudgetTransaction, Investment, CryptoHolding
from axent.services.financial_data import FinancialSnapshot
from axent.services.price_enrichment import PriceEnricher
from axent.tests.conftest import AUTH_HEADERS, TEST_USER_ID, FakeStocks, FakeCrypto

CHAT_URL = "/functions/v1/financial-advisor-chat"


def _seed(session_factory, *rows):
    db = session_factory()
    try:
        db.add_all(rows)
        db.commit()
    finally:
        db.close()


@pytest.fixture
def seeded(session_factory):
    _seed(
        session_factory,
        BudgetTransaction(user_id=TEST_USER_ID, date=datetime(2024, 3, 1), transaction_type="income",
                          category="Gaji", amount=10_000_000, description="Gaji Maret"),
        BudgetTransaction(user_id=TEST_USER_ID, date=datetime(2024, 3, 5), transaction_type="expense",
                          category="Makanan", amount=400_000, description="Belanja"),
        BudgetTransaction(user_id="someone-else", date=datetime(2024, 3, 6), transaction_type="income",
                          category="Bonus", amount=99_000_000, description="Bukan milik user"),
        Investment(user_id=TEST_USER_ID, name="BBCA", type="stocks", amount=900_000,
                   current_value=900_000, purchase_date=datetime(2024, 1, 10)),
        CryptoHolding(user_id=TEST_USER_ID, coin_id="bitcoin", coin_name="Bitcoin", symbol="BTC",
                      amount=0.01, purchase_price=900_000_000, purchase_date=datetime(2024, 2, 1)),
    )


def test_repository_scopes_and_orders_by_date(repository, seeded):
    rows = repository.budget_transactions(TEST_USER_ID)
    assert [r["description"] for r in rows] == ["Belanja", "Gaji Maret"]
    assert all(r["user_id"] == TEST_USER_ID for r in rows)
    assert repository.budget_transactions("nobody") == []


async def test_snapshot_reads_all_four_tables(repository, seeded):
    snapshot = await repository.fetch_snapshot(TEST_USER_ID)
    assert len(snapshot.budget_transactions) == 2
    assert len(snapshot.investments) == 1
    assert len(snapshot.crypto_holdings) == 1
    assert snapshot.business_finances == []
    assert not snapshot.is_empty()


async def test_enricher_only_quotes_equities(market):
    market.stocks = FakeStocks({"BBCA": 9_500})
    snapshot = FinancialSnapshot(investments=[
        {"name": "BBCA", "type": "stocks"},
        {"name": "Emas Antam", "type": "gold"},
    ])
    prices = await PriceEnricher(market).enrich(snapshot)

    assert market.stocks.calls == [["BBCA"]]
    assert prices.stock_prices == {"BBCA": 9_500}
    assert prices.crypto_prices == {}
    assert prices.exchange_rate == 15000.0


async def test_enricher_degrades_per_source(market):
    class Broken:
        async def get_prices(self, symbols):
            raise RuntimeError("provider down")

        async def get_rate(self):
            raise RuntimeError("provider down")

    market.stocks = Broken()
    market.fx = Broken()
    market.crypto = FakeCrypto({"ETH": 3200})
    snapshot = FinancialSnapshot(
        investments=[{"name": "TLKM", "type": "stock"}],
        crypto_holdings=[{"symbol": "ETH"}],
    )
    prices = await PriceEnricher(market).enrich(snapshot)

    assert prices.stock_prices == {}
    assert prices.crypto_prices == {"ETH": 3200}
    assert prices.exchange_rate == settings.CONTEXT_FALLBACK_EXCHANGE_RATE


def test_chat_grounds_reply_on_user_data(client, gateway_recorder, market, seeded):
    market.stocks = FakeStocks({"BBCA": 10_000})
    market.crypto = FakeCrypto({"BTC": 65_000})
    gateway_recorder.content = "**Saldo** Anda *sehat*."

    response = client.post(
        CHAT_URL,
        json={"messages": [{"role": "user", "content": "Bagaimana keuangan saya?"}]},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 200
    assert response.json() == {"response": "Saldo Anda sehat."}

    sent = gateway_recorder.requests[0]
    assert sent["temperature"] == 0.7
    assert sent["max_tokens"] == 2048
    system, user = sent["messages"]
    assert system["role"] == "system"
    assert user == {"role": "user", "content": "Bagaimana keuangan saya?"}

    prompt = system["content"]
    assert "=== DATA KEUANGAN USER ===" in prompt
    assert "Total Pendapatan: Rp 10.000.000" in prompt
    assert "Saldo: Rp 9.600.000" in prompt
    assert "Harga Pasar Saat Ini: Rp 10.000 per saham (REAL-TIME)" in prompt
    assert "Harga Pasar Saat Ini: Rp 975.000.000 per unit (REAL-TIME)" in prompt
    assert "Bukan milik user" not in prompt


def test_chat_without_data(client, gateway_recorder):
    gateway_recorder.content = "Silakan tambahkan data."
    response = client.post(CHAT_URL, json={"messages": [{"role": "user", "content": "Halo"}]}, headers=AUTH_HEADERS)

    assert response.status_code == 200
    prompt = gateway_recorder.requests[0]["messages"][0]["content"]
    assert "Belum ada data keuangan tersimpan untuk user ini." in prompt


def test_chat_empty_model_reply_uses_default(client, gateway_recorder):
    gateway_recorder.content = None
    response = client.post(CHAT_URL, json={"messages": [{"role": "user", "content": "Halo"}]}, headers=AUTH_HEADERS)
    assert response.status_code == 200
    assert response.json()["response"] == "Maaf, terjadi kesalahan dalam memproses permintaan Anda."


@pytest.mark.parametrize("status, error, phrase", [
    (429, "Rate limit exceeded", "terlalu banyak permintaan"),
    (402, "Payment required", "kredit AI habis"),
])
def test_chat_maps_gateway_limits(client, gateway_recorder, status, error, phrase):
    gateway_recorder.status_code = status
    response = client.post(CHAT_URL, json={"messages": [{"role": "user", "content": "Halo"}]}, headers=AUTH_HEADERS)
    assert response.status_code == status
    assert response.json()["error"] == error
    assert phrase in response.json()["response"]


def test_chat_gateway_failure_is_500(client, gateway_recorder):
    gateway_recorder.status_code = 503
    response = client.post(CHAT_URL, json={"messages": [{"role": "user", "content": "Halo"}]}, headers=AUTH_HEADERS)
    assert response.status_code == 500
    assert response.json()["response"] == "Maaf, terjadi kesalahan. Silakan coba lagi."


def test_build_system_prompt_embeds_context():
    prompt = build_system_prompt("\n=== DATA KEUANGAN USER ===\nSaldo: Rp 1\n")
    assert "Saldo: Rp 1" in prompt
    assert prompt.startswith("Anda adalah Axent AI")


def test_strip_emphasis():
    assert strip_emphasis("**a** *b* c") == "a b c"


async def test_unconfigured_gateway(monkeypatch, repository, market):
    monkeypatch.setattr(settings, "AI_GATEWAY_API_KEY", "")
    advisor = FinancialAdvisor(repository, PriceEnricher(market), AIGateway())
    with pytest.raises(UpstreamError, match="AI service not configured"):
        await advisor.reply(TEST_USER_ID, [{"role": "user", "content": "Halo"}])
