"""
Natural-language commands ("catat pengeluaran makan 50 ribu") turned into
tool calls by the model and executed against the user's tables
"""

import asyncio
import json
from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError

from axent.ai.gateway import AIGateway
from axent.errors import UpstreamError
from axent.services.financial_data import FinancialRepository
from axent.services.portfolio import compute_net_worth
from axent.utils.formatting import format_rupiah, format_number
from axent.utils.logger import get_logger

logger = get_logger(__name__)

NOT_UNDERSTOOD = "Maaf, saya tidak memahami perintah Anda. Silakan coba dengan format yang berbeda."


class BudgetTransactionArgs(BaseModel):
    transaction_type: Literal["income", "expense"]
    amount: float
    category: str
    description: str


class InvestmentArgs(BaseModel):
    name: str
    type: Literal["stocks", "bonds", "mutual_funds", "real_estate", "gold", "other"]
    amount: float
    current_value: Optional[float] = None


class CryptoHoldingArgs(BaseModel):
    coin_id: str
    coin_name: str
    symbol: str
    amount: float
    purchase_price: float


class FinancialGoalArgs(BaseModel):
    name: str
    target_amount: float
    current_amount: Optional[float] = None
    category: Literal["savings", "investment", "emergency", "vacation", "education", "retirement", "property", "other"]
    deadline: Optional[date] = None
    priority: Literal["low", "medium", "high"]


class BusinessTransactionArgs(BaseModel):
    business_name: str
    transaction_type: Literal["income", "expense"]
    category: str
    amount: float
    description: Optional[str] = None


class DebtArgs(BaseModel):
    name: str
    creditor: str
    total_amount: float
    remaining_amount: float
    interest_rate: Optional[float] = None
    minimum_payment: Optional[float] = None
    due_date: Optional[date] = None


class RecurringTransactionArgs(BaseModel):
    name: str
    transaction_type: Literal["income", "expense"]
    amount: float
    category: str
    frequency: Literal["daily", "weekly", "monthly", "yearly"]
    next_due_date: Optional[date] = None


TOOL_ARGUMENTS = {
    "add_budget_transaction": BudgetTransactionArgs,
    "add_investment": InvestmentArgs,
    "add_crypto_holding": CryptoHoldingArgs,
    "add_financial_goal": FinancialGoalArgs,
    "add_business_transaction": BusinessTransactionArgs,
    "add_debt": DebtArgs,
    "add_recurring_transaction": RecurringTransactionArgs,
}

TOOL_DESCRIPTIONS = {
    "add_budget_transaction": "Add a new income (pemasukan) or expense (pengeluaran) transaction to the budget tracker.",
    "add_investment": "Add a new investment (stocks, bonds, mutual funds, or other) to the portfolio. Amounts in IDR.",
    "add_crypto_holding": "Add a new cryptocurrency holding. purchase_price is per unit in IDR.",
    "add_financial_goal": "Add a new financial goal such as a savings target. Deadline in YYYY-MM-DD.",
    "add_business_transaction": "Add a business income or expense transaction.",
    "add_debt": "Add a new debt record to track loans or debts. Amounts in IDR.",
    "add_recurring_transaction": "Add a recurring income or expense such as a subscription or bill.",
    "get_financial_summary": "Get a summary of the user's income, expenses, investments, crypto, debts and net worth.",
}


def build_tools() -> List[Dict[str, Any]]:
    """OpenAI function-tool definitions generated from the argument models"""
    tools = []
    for name, description in TOOL_DESCRIPTIONS.items():
        model = TOOL_ARGUMENTS.get(name)
        parameters = model.model_json_schema() if model else {"type": "object", "properties": {}, "required": []}
        tools.append({
            "type": "function",
            "function": {"name": name, "description": description, "parameters": parameters},
        })
    return tools


def build_system_prompt(today: date) -> str:
    return f"""Anda adalah Axent AI, asisten keuangan yang dapat mengeksekusi perintah pengguna untuk mengelola keuangan mereka.

Tanggal hari ini: {today.isoformat()}

Tugas Anda:
1. Pahami perintah pengguna dalam bahasa Indonesia
2. Tentukan tool yang tepat untuk digunakan
3. Ekstrak parameter yang diperlukan dari perintah
4. Jika perintah tidak jelas, minta klarifikasi

Contoh perintah:
- "Tambah pemasukan gaji 10 juta" -> add_budget_transaction (income, 10000000, Gaji, Gaji bulanan)
- "Catat pengeluaran makan 50 ribu" -> add_budget_transaction (expense, 50000, Makanan, Makan)
- "Beli 0.1 Bitcoin di harga 800 juta" -> add_crypto_holding
- "Investasi saham BBCA 5 juta" -> add_investment
- "Set target nabung 50 juta untuk liburan" -> add_financial_goal
- "Tambah hutang ke Bank BCA 100 juta" -> add_debt
- "Langganan Netflix 150 ribu per bulan" -> add_recurring_transaction
- "Berapa total keuangan saya?" -> get_financial_summary

Selalu gunakan Rupiah (IDR) untuk semua nilai uang. Konversi format seperti:
- "10 juta" = 10000000
- "500 ribu" = 500000
- "1,5 juta" = 1500000

Untuk next_due_date, gunakan tanggal hari ini jika tidak disebutkan."""


class CommandExecutor:

    def __init__(self, repository: FinancialRepository, gateway: AIGateway):
        self.repository = repository
        self.gateway = gateway

    async def execute(self, user_id: str, message: str) -> Dict[str, Any]:
        logger.info(f"Processing command for user {user_id}: {message}")
        ai_message = await self.gateway.chat(
            [
                {"role": "system", "content": build_system_prompt(date.today())},
                {"role": "user", "content": message},
            ],
            tools=build_tools(),
            tool_choice="auto",
        )

        tool_calls = getattr(ai_message, "tool_calls", None) or []
        if not tool_calls:
            text = getattr(ai_message, "content", None) or NOT_UNDERSTOOD
            return {"response": text, "executed": False}

        call = tool_calls[0].function
        try:
            arguments = json.loads(call.arguments or "{}")
        except json.JSONDecodeError:
            logger.error(f"Tool call arguments are not JSON: {call.arguments}")
            raise UpstreamError("Invalid tool arguments from AI")

        logger.info(f"Executing tool: {call.name} {arguments}")
        response, action = await self.run_tool(user_id, call.name, arguments)
        return {"response": response, "action": action, "executed": True}

    async def run_tool(self, user_id: str, name: str, arguments: Dict[str, Any]):
        if name == "get_financial_summary":
            return await self._financial_summary(user_id), {"action": name, "success": True}

        model = TOOL_ARGUMENTS.get(name)
        if model is None:
            return "Perintah tidak dikenali.", {"action": "unknown", "success": False}

        try:
            args = model.model_validate(arguments)
        except PydanticValidationError as e:
            logger.warning(f"Rejected arguments for {name}: {e}")
            return (
                "Maaf, data perintah tidak lengkap atau tidak valid. Silakan ulangi dengan detail yang jelas.",
                {"action": name, "success": False},
            )

        insert = getattr(self.repository, name)
        row = await asyncio.to_thread(insert, user_id, **args.model_dump())
        return self._confirmation(name, args), {"action": name, "success": True, "data": row}

    @staticmethod
    def _confirmation(name: str, args: BaseModel) -> str:
        today = date.today().strftime("%d/%m/%Y")
        if name == "add_budget_transaction":
            label = "Pemasukan" if args.transaction_type == "income" else "Pengeluaran"
            return (f"✅ {label} sebesar {format_rupiah(args.amount)} untuk kategori \"{args.category}\" "
                    f"berhasil disimpan ke database dengan tanggal {today}.")
        if name == "add_investment":
            return (f"✅ Investasi {args.name} ({args.type}) sebesar {format_rupiah(args.amount)} "
                    f"berhasil disimpan ke portfolio dengan tanggal {today}.")
        if name == "add_crypto_holding":
            return (f"✅ Kepemilikan {format_number(args.amount)} {args.symbol.upper()} ({args.coin_name}) berhasil "
                    f"disimpan dengan harga beli {format_rupiah(args.purchase_price)} per unit (tanggal {today}).")
        if name == "add_financial_goal":
            return f"✅ Target keuangan \"{args.name}\" dengan goal {format_rupiah(args.target_amount)} berhasil disimpan."
        if name == "add_business_transaction":
            label = "Pemasukan bisnis" if args.transaction_type == "income" else "Pengeluaran bisnis"
            return (f"✅ {label} untuk {args.business_name} sebesar {format_rupiah(args.amount)} "
                    f"berhasil disimpan (tanggal {today}).")
        if name == "add_debt":
            return (f"✅ Hutang \"{args.name}\" kepada {args.creditor} sebesar "
                    f"{format_rupiah(args.total_amount)} berhasil disimpan.")
        return (f"✅ Transaksi berulang \"{args.name}\" sebesar {format_rupiah(args.amount)} "
                f"({args.frequency}) berhasil disimpan.")

    async def _financial_summary(self, user_id: str) -> str:
        budget, investments, crypto, debts = await asyncio.gather(
            asyncio.to_thread(self.repository.budget_transactions, user_id),
            asyncio.to_thread(self.repository.investments, user_id),
            asyncio.to_thread(self.repository.crypto_holdings, user_id),
            asyncio.to_thread(self.repository.debts, user_id),
        )
        totals = compute_net_worth(budget, investments, crypto, debts)
        return f"""Ringkasan Keuangan Anda:

Total Pemasukan: {format_rupiah(totals['total_income'])}
Total Pengeluaran: {format_rupiah(totals['total_expense'])}
Saldo: {format_rupiah(totals['balance'])}

Portfolio Investasi: {format_rupiah(totals['investments'])}
Portfolio Crypto: {format_rupiah(totals['crypto'])}
Total Hutang: {format_rupiah(totals['debt'])}

Estimasi Net Worth: {format_rupiah(totals['net_worth'])}"""
