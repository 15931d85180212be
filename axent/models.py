from sqlalchemy import Column, Integer, String, Text, DateTime, Date, Float, Boolean, Index
from sqlalchemy.orm import declarative_base
from datetime import datetime
import uuid

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class SerializableMixin:
    """Plain dict view of a row, used for JSON responses and the AI context"""

    def to_dict(self):
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if hasattr(value, "isoformat"):
                value = value.isoformat()
            result[column.name] = value
        return result


class BudgetTransaction(SerializableMixin, Base):
    __tablename__ = "budget_transactions"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    date = Column(DateTime, default=datetime.utcnow, index=True)
    transaction_type = Column(String, nullable=False)  # income / expense
    category = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_budget_user_date', 'user_id', 'date'),
    )

    def __repr__(self):
        return f"<BudgetTransaction(type='{self.transaction_type}', amount={self.amount})>"


class Investment(SerializableMixin, Base):
    __tablename__ = "investments"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)  # ticker or label
    type = Column(String, nullable=False)  # stock(s), bonds, mutual_funds, gold, other...
    amount = Column(Float, nullable=False)  # cost basis
    current_value = Column(Float, nullable=False)  # value at time of entry
    shares = Column(Float, nullable=True)
    purchase_date = Column(DateTime, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_investment_user_date', 'user_id', 'purchase_date'),
    )

    def __repr__(self):
        return f"<Investment(name='{self.name}', type='{self.type}')>"


class CryptoHolding(SerializableMixin, Base):
    __tablename__ = "crypto_holdings"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    coin_id = Column(String, nullable=True)
    coin_name = Column(String, nullable=False)
    symbol = Column(String, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    purchase_price = Column(Float, nullable=False)  # unit cost in IDR
    purchase_date = Column(DateTime, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_crypto_user_date', 'user_id', 'purchase_date'),
    )

    def __repr__(self):
        return f"<CryptoHolding(symbol='{self.symbol}', amount={self.amount})>"


class BusinessFinance(SerializableMixin, Base):
    __tablename__ = "business_finances"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    business_name = Column(String, nullable=False)
    transaction_type = Column(String, nullable=False)
    category = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    transaction_date = Column(DateTime, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_business_user_date', 'user_id', 'transaction_date'),
    )


class Invoice(SerializableMixin, Base):
    __tablename__ = "invoices"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    invoice_number = Column(String, nullable=False)
    client_name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    status = Column(String, default="draft")  # draft -> sent -> paid
    issue_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class FinancialGoal(SerializableMixin, Base):
    __tablename__ = "financial_goals"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, default=0)
    category = Column(String, nullable=False)
    priority = Column(String, default="medium")
    status = Column(String, default="active")  # active -> completed
    deadline = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class RecurringTransaction(SerializableMixin, Base):
    __tablename__ = "recurring_transactions"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    transaction_type = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    category = Column(String, nullable=False)
    frequency = Column(String, nullable=False)  # daily, weekly, monthly, yearly
    next_due_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Dividend(SerializableMixin, Base):
    __tablename__ = "dividends"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    investment_id = Column(String, nullable=True)
    ticker = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    payment_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class Debt(SerializableMixin, Base):
    __tablename__ = "debts"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    creditor = Column(String, nullable=False)
    total_amount = Column(Float, nullable=False)
    remaining_amount = Column(Float, nullable=False)
    interest_rate = Column(Float, default=0)
    minimum_payment = Column(Float, default=0)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
