"""
Aggregates over a user's rows: cash flow totals, live investment and crypto
valuation, and net worth. Pure functions, shared by the advisor context and
the command executor's summary.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from axent.services.market_data import EQUITY_TYPES, base_symbol
from axent.utils.formatting import to_float, percent_change

INCOME_TYPES = {"income", "pemasukan"}
LOT_SIZE = 100


@dataclass
class CashFlowSummary:
    income: float = 0.0
    expense: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expense


@dataclass
class HoldingValuation:
    invested: float
    current_value: float
    unit_price: Optional[float]
    priced: bool

    @property
    def gain(self) -> float:
        return self.current_value - self.invested

    @property
    def gain_percent(self) -> float:
        return percent_change(self.current_value, self.invested)


@dataclass
class PortfolioTotals:
    invested: float = 0.0
    current_value: float = 0.0

    @property
    def gain(self) -> float:
        return self.current_value - self.invested

    @property
    def gain_percent(self) -> float:
        return percent_change(self.current_value, self.invested)

    def add(self, valuation: HoldingValuation):
        self.invested += valuation.invested
        self.current_value += valuation.current_value


def is_income(row: Mapping[str, Any]) -> bool:
    return str(row.get("transaction_type", "")).lower() in INCOME_TYPES


def summarize_transactions(rows: Iterable[Mapping[str, Any]]) -> CashFlowSummary:
    summary = CashFlowSummary()
    for row in rows:
        amount = to_float(row.get("amount"))
        if is_income(row):
            summary.income += amount
        else:
            summary.expense += amount
    return summary


def is_equity(investment: Mapping[str, Any]) -> bool:
    return investment.get("type") in EQUITY_TYPES


def live_stock_price(investment: Mapping[str, Any], stock_prices: Mapping[str, float]) -> Optional[float]:
    if not is_equity(investment):
        return None
    name = investment.get("name") or ""
    return stock_prices.get(base_symbol(name)) or stock_prices.get(name) or None


def investment_units(investment: Mapping[str, Any]) -> float:
    """Share count: the stored one, else the one-lot-at-entry derivation"""
    shares = to_float(investment.get("shares"))
    if shares > 0:
        return shares
    amount = to_float(investment.get("amount"))
    entry_value = to_float(investment.get("current_value"))
    if entry_value <= 0:
        return 0.0
    return amount / entry_value * LOT_SIZE


def value_investment(investment: Mapping[str, Any], stock_prices: Mapping[str, float]) -> HoldingValuation:
    invested = to_float(investment.get("amount"))
    price = live_stock_price(investment, stock_prices)
    if price:
        return HoldingValuation(
            invested=invested,
            current_value=investment_units(investment) * price,
            unit_price=price,
            priced=True,
        )
    return HoldingValuation(
        invested=invested,
        current_value=to_float(investment.get("current_value")),
        unit_price=None,
        priced=False,
    )


def value_crypto_holding(
    holding: Mapping[str, Any],
    crypto_prices: Mapping[str, float],
    exchange_rate: float,
) -> HoldingValuation:
    """IDR valuation; a coin without a quote is carried at its purchase price"""
    amount = to_float(holding.get("amount"))
    purchase_price = to_float(holding.get("purchase_price"))
    invested = amount * purchase_price

    usd_price = crypto_prices.get(holding.get("symbol") or "")
    if usd_price:
        unit_price = to_float(usd_price) * exchange_rate
        return HoldingValuation(invested=invested, current_value=amount * unit_price,
                                unit_price=unit_price, priced=True)
    return HoldingValuation(invested=invested, current_value=invested,
                            unit_price=purchase_price, priced=False)


def total_investments(investments: Iterable[Mapping[str, Any]], stock_prices: Mapping[str, float]) -> PortfolioTotals:
    totals = PortfolioTotals()
    for investment in investments:
        totals.add(value_investment(investment, stock_prices))
    return totals


def total_crypto(
    holdings: Iterable[Mapping[str, Any]],
    crypto_prices: Mapping[str, float],
    exchange_rate: float,
) -> PortfolioTotals:
    totals = PortfolioTotals()
    for holding in holdings:
        totals.add(value_crypto_holding(holding, crypto_prices, exchange_rate))
    return totals


def compute_net_worth(
    budget_transactions: List[Dict[str, Any]],
    investments: List[Dict[str, Any]],
    crypto_holdings: List[Dict[str, Any]],
    debts: List[Dict[str, Any]],
    stock_prices: Optional[Mapping[str, float]] = None,
    crypto_prices: Optional[Mapping[str, float]] = None,
    exchange_rate: float = 1.0,
) -> Dict[str, float]:
    cash = summarize_transactions(budget_transactions)
    invest = total_investments(investments, stock_prices or {})
    crypto = total_crypto(crypto_holdings, crypto_prices or {}, exchange_rate)
    debt = sum(to_float(d.get("remaining_amount")) for d in debts)

    return {
        "total_income": cash.income,
        "total_expense": cash.expense,
        "balance": cash.net,
        "investments": invest.current_value,
        "crypto": crypto.current_value,
        "debt": debt,
        "net_worth": cash.net + invest.current_value + crypto.current_value - debt,
    }
