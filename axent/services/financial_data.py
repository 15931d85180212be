"""
User-scoped reads and writes against the finance tables
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from axent.database import SessionLocal
from axent.models import (
    BudgetTransaction, Investment, CryptoHolding, BusinessFinance,
    FinancialGoal, RecurringTransaction, Debt,
)
from axent.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class FinancialSnapshot:
    """Everything the advisor knows about one user at request time"""
    budget_transactions: List[Dict[str, Any]] = field(default_factory=list)
    investments: List[Dict[str, Any]] = field(default_factory=list)
    business_finances: List[Dict[str, Any]] = field(default_factory=list)
    crypto_holdings: List[Dict[str, Any]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.budget_transactions or self.investments
            or self.business_finances or self.crypto_holdings
        )


class FinancialRepository:
    """Reads filter on the verified user id; each read opens its own session"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _select(self, model, user_id: str, order_column=None) -> List[Dict[str, Any]]:
        db = self.session_factory()
        try:
            query = db.query(model).filter(model.user_id == user_id)
            if order_column is not None:
                query = query.order_by(order_column.desc())
            return [row.to_dict() for row in query.all()]
        finally:
            db.close()

    def _insert(self, row):
        db = self.session_factory()
        try:
            db.add(row)
            db.commit()
            db.refresh(row)
            return row.to_dict()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # Reads

    def budget_transactions(self, user_id: str) -> List[Dict[str, Any]]:
        return self._select(BudgetTransaction, user_id, BudgetTransaction.date)

    def investments(self, user_id: str) -> List[Dict[str, Any]]:
        return self._select(Investment, user_id, Investment.purchase_date)

    def business_finances(self, user_id: str) -> List[Dict[str, Any]]:
        return self._select(BusinessFinance, user_id, BusinessFinance.transaction_date)

    def crypto_holdings(self, user_id: str) -> List[Dict[str, Any]]:
        return self._select(CryptoHolding, user_id, CryptoHolding.purchase_date)

    def debts(self, user_id: str) -> List[Dict[str, Any]]:
        return self._select(Debt, user_id)

    async def fetch_snapshot(self, user_id: str) -> FinancialSnapshot:
        """Run the four independent reads concurrently"""
        logger.info(f"Fetching latest financial data for verified user: {user_id}")
        budget, investments, business, crypto = await asyncio.gather(
            asyncio.to_thread(self.budget_transactions, user_id),
            asyncio.to_thread(self.investments, user_id),
            asyncio.to_thread(self.business_finances, user_id),
            asyncio.to_thread(self.crypto_holdings, user_id),
        )
        logger.info(
            f"Financial data loaded: budget={len(budget)} investments={len(investments)} "
            f"business={len(business)} crypto={len(crypto)}"
        )
        return FinancialSnapshot(
            budget_transactions=budget,
            investments=investments,
            business_finances=business,
            crypto_holdings=crypto,
        )

    # Writes used by the AI command executor

    def add_budget_transaction(self, user_id: str, transaction_type: str, amount: float,
                               category: str, description: Optional[str] = None) -> Dict[str, Any]:
        return self._insert(BudgetTransaction(
            user_id=user_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
            description=description,
            date=datetime.utcnow(),
        ))

    def add_investment(self, user_id: str, name: str, type: str, amount: float,
                       current_value: Optional[float] = None) -> Dict[str, Any]:
        return self._insert(Investment(
            user_id=user_id,
            name=name,
            type=type,
            amount=amount,
            current_value=current_value or amount,
            purchase_date=datetime.utcnow(),
        ))

    def add_crypto_holding(self, user_id: str, coin_id: str, coin_name: str, symbol: str,
                           amount: float, purchase_price: float) -> Dict[str, Any]:
        return self._insert(CryptoHolding(
            user_id=user_id,
            coin_id=coin_id,
            coin_name=coin_name,
            symbol=symbol.upper(),
            amount=amount,
            purchase_price=purchase_price,
            purchase_date=datetime.utcnow(),
        ))

    def add_financial_goal(self, user_id: str, name: str, target_amount: float, category: str,
                           priority: str, current_amount: Optional[float] = None,
                           deadline: Optional[date] = None) -> Dict[str, Any]:
        return self._insert(FinancialGoal(
            user_id=user_id,
            name=name,
            target_amount=target_amount,
            current_amount=current_amount or 0,
            category=category,
            priority=priority,
            deadline=deadline,
        ))

    def add_business_transaction(self, user_id: str, business_name: str, transaction_type: str,
                                 category: str, amount: float,
                                 description: Optional[str] = None) -> Dict[str, Any]:
        return self._insert(BusinessFinance(
            user_id=user_id,
            business_name=business_name,
            transaction_type=transaction_type,
            category=category,
            amount=amount,
            description=description,
            transaction_date=datetime.utcnow(),
        ))

    def add_debt(self, user_id: str, name: str, creditor: str, total_amount: float,
                 remaining_amount: float, interest_rate: Optional[float] = None,
                 minimum_payment: Optional[float] = None,
                 due_date: Optional[date] = None) -> Dict[str, Any]:
        return self._insert(Debt(
            user_id=user_id,
            name=name,
            creditor=creditor,
            total_amount=total_amount,
            remaining_amount=remaining_amount,
            interest_rate=interest_rate or 0,
            minimum_payment=minimum_payment or 0,
            due_date=due_date,
        ))

    def add_recurring_transaction(self, user_id: str, name: str, transaction_type: str,
                                  amount: float, category: str, frequency: str,
                                  next_due_date: Optional[date] = None) -> Dict[str, Any]:
        return self._insert(RecurringTransaction(
            user_id=user_id,
            name=name,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
            frequency=frequency,
            next_due_date=next_due_date or date.today(),
        ))


def get_repository() -> FinancialRepository:
    return FinancialRepository(SessionLocal)
