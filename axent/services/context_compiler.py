"""
Builds the plain-text financial context block given to the advisor model.
Deterministic given its inputs; no I/O.
"""

from typing import Any, Dict, List, Mapping

from axent.services.financial_data import FinancialSnapshot
from axent.services.portfolio import (
    PortfolioTotals, summarize_transactions, value_investment, value_crypto_holding,
)
from axent.utils.formatting import format_rupiah, format_percent, format_number, to_float

HEADER = "\n\n=== DATA KEUANGAN USER ===\n"
NO_DATA = "\nBelum ada data keuangan tersimpan untuk user ini.\n"


def _budget_section(rows: List[Dict[str, Any]]) -> List[str]:
    lines = ["\n--- TRANSAKSI BUDGET ---"]
    for tx in rows:
        lines.append(
            f"{tx.get('date')}: {tx.get('transaction_type')} - {tx.get('category')} - "
            f"{format_rupiah(tx.get('amount'))} - {tx.get('description') or ''}"
        )
    summary = summarize_transactions(rows)
    lines.append(f"Total Pendapatan: {format_rupiah(summary.income)}")
    lines.append(f"Total Pengeluaran: {format_rupiah(summary.expense)}")
    lines.append(f"Saldo: {format_rupiah(summary.net)}")
    return lines


def _investment_section(rows: List[Dict[str, Any]], stock_prices: Mapping[str, float]) -> List[str]:
    lines = ["\n--- PORTFOLIO INVESTASI ---"]
    totals = PortfolioTotals()
    for inv in rows:
        valuation = value_investment(inv, stock_prices)
        totals.add(valuation)
        lines.append(
            f"{inv.get('name')} ({inv.get('type')}): Investasi {format_rupiah(valuation.invested)} -> "
            f"Nilai Sekarang {format_rupiah(valuation.current_value)} "
            f"({format_percent(valuation.gain_percent)}) - dibeli {inv.get('purchase_date')}"
        )
        if valuation.priced:
            lines.append(
                f"   Harga Pasar Saat Ini: {format_rupiah(valuation.unit_price)} per saham (REAL-TIME)"
            )
    lines.append(f"Total Investasi: {format_rupiah(totals.invested)}")
    lines.append(f"Total Nilai Sekarang: {format_rupiah(totals.current_value)}")
    lines.append(
        f"Total Keuntungan/Kerugian: {format_rupiah(totals.gain)} ({format_percent(totals.gain_percent)})"
    )
    return lines


def _business_section(rows: List[Dict[str, Any]]) -> List[str]:
    lines = ["\n--- TRANSAKSI BISNIS ---"]
    for tx in rows:
        description = f" ({tx['description']})" if tx.get("description") else ""
        lines.append(
            f"{tx.get('transaction_date')}: {tx.get('transaction_type')} - {tx.get('business_name')} - "
            f"{tx.get('category')} - {format_rupiah(tx.get('amount'))}{description}"
        )
    summary = summarize_transactions(rows)
    lines.append(f"Total Pendapatan Bisnis: {format_rupiah(summary.income)}")
    lines.append(f"Total Pengeluaran Bisnis: {format_rupiah(summary.expense)}")
    lines.append(f"Laba Bersih Bisnis: {format_rupiah(summary.net)}")
    return lines


def _crypto_section(
    rows: List[Dict[str, Any]],
    crypto_prices: Mapping[str, float],
    exchange_rate: float,
) -> List[str]:
    lines = ["\n--- KEPEMILIKAN CRYPTO ---"]
    totals = PortfolioTotals()
    for holding in rows:
        valuation = value_crypto_holding(holding, crypto_prices, exchange_rate)
        totals.add(valuation)
        label = f"{holding.get('coin_name')} ({holding.get('symbol')}): {format_number(holding.get('amount'))} unit"
        purchase_price = format_rupiah(to_float(holding.get("purchase_price")))

        if valuation.priced:
            lines.extend([
                label,
                f"   Harga Beli: {purchase_price} per unit",
                f"   Harga Pasar Saat Ini: {format_rupiah(valuation.unit_price)} per unit (REAL-TIME)",
                f"   Total Investasi: {format_rupiah(valuation.invested)}",
                f"   Nilai Sekarang: {format_rupiah(valuation.current_value)}",
                f"   Keuntungan/Kerugian: {format_rupiah(valuation.gain)} ({format_percent(valuation.gain_percent)})",
                f"   Tanggal Beli: {holding.get('purchase_date')}",
                "",
            ])
        else:
            lines.extend([
                f"{label} @ {purchase_price} (dibeli {holding.get('purchase_date')})",
                "   Harga pasar saat ini tidak tersedia, dinilai dengan harga beli",
                "",
            ])

    lines.append(f"Total Investasi Crypto: {format_rupiah(totals.invested)}")
    lines.append(f"Total Nilai Sekarang Crypto: {format_rupiah(totals.current_value)}")
    lines.append(
        f"Total Keuntungan/Kerugian Crypto: {format_rupiah(totals.gain)} ({format_percent(totals.gain_percent)})"
    )
    return lines


def compile_financial_context(
    snapshot: FinancialSnapshot,
    stock_prices: Mapping[str, float],
    crypto_prices: Mapping[str, float],
    exchange_rate: float,
) -> str:
    lines: List[str] = []
    if snapshot.budget_transactions:
        lines.extend(_budget_section(snapshot.budget_transactions))
    if snapshot.investments:
        lines.extend(_investment_section(snapshot.investments, stock_prices))
    if snapshot.business_finances:
        lines.extend(_business_section(snapshot.business_finances))
    if snapshot.crypto_holdings:
        lines.extend(_crypto_section(snapshot.crypto_holdings, crypto_prices, exchange_rate))

    context = HEADER + "\n".join(lines)
    if lines:
        context += "\n"
    if snapshot.is_empty():
        context += NO_DATA
    return context
