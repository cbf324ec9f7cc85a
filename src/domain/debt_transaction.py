"""Debt Transaction Domain Entity

Immutable append-only record of every accepted tab mutation.
Corrections are made with new ADJUSTMENT rows, never by editing.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from src.domain.base import BaseModel, IdType
from src.domain.ledger_entry import Adjustment, Charge, Payment


class TransactionType(str, Enum):
    """Debt transaction types"""
    CHARGE = "CHARGE"          # Containers taken on credit
    PAYMENT = "PAYMENT"        # Money received against the tab
    ADJUSTMENT = "ADJUSTMENT"  # Manual correction (positive or negative)


class DebtTransaction(BaseModel, table=True):
    """
    Debt Transaction - Immutable ledger entry

    Domain Rules:
    - Transactions are immutable (append-only)
    - balance_after = balance_before + signed contribution
    - Ordered within a tab by transaction_date, then id
    - idempotency_key is unique when present (prevents double application)

    Transaction Types:
    - CHARGE: amount = containers * unit_price, adds to the balance
    - PAYMENT: amount > 0, subtracts from the balance
    - ADJUSTMENT: signed amount with a mandatory reason
    """

    __tablename__ = "debt_transactions"
    __table_args__ = (
        Index('ix_debt_transactions_tab_order', 'debt_tab_id', 'transaction_date', 'id'),
        Index('ix_debt_transactions_transaction_date', 'transaction_date'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique transaction identifier (auto-increment)"
    )

    debt_tab_id: int = Field(
        sa_column=Column(IdType, ForeignKey("debt_tabs.id", ondelete="RESTRICT"), nullable=False),
        description="Foreign key to DebtTab"
    )

    customer_id: str = Field(
        index=True,
        description="Customer ID for query optimization"
    )

    transaction_type: TransactionType = Field(
        description="Type of transaction (CHARGE, PAYMENT, ADJUSTMENT)"
    )

    transaction_date: datetime = Field(
        description="Business date of the transaction"
    )

    containers: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, nullable=True),
        description="Containers charged (CHARGE only)"
    )

    unit_price: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(18, 2), nullable=True),
        description="Price per container (CHARGE only)"
    )

    amount: Decimal = Field(
        sa_column=Column(Numeric(18, 2), nullable=False),
        description="Charge total, payment amount, or signed adjustment"
    )

    reason: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Adjustment reason (ADJUSTMENT only)"
    )

    balance_before: Decimal = Field(
        sa_column=Column(Numeric(18, 2), nullable=False),
        description="Tab balance before this transaction"
    )

    balance_after: Decimal = Field(
        sa_column=Column(Numeric(18, 2), nullable=False),
        description="Tab balance immediately after this transaction"
    )

    notes: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Free-form notes"
    )

    entered_by_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Staff member who entered the transaction"
    )

    idempotency_key: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True, unique=True, index=True),
        description="Client supplied key for retry-safe submission"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Insertion timestamp (immutable)"
    )

    def to_entry(self):
        """Rebuild the ledger entry variant this row was recorded from"""
        transaction_type = TransactionType(self.transaction_type)
        if transaction_type is TransactionType.CHARGE:
            return Charge(
                transaction_date=self.transaction_date,
                notes=self.notes,
                containers=self.containers,
                unit_price=self.unit_price,
            )
        if transaction_type is TransactionType.PAYMENT:
            return Payment(
                transaction_date=self.transaction_date,
                notes=self.notes,
                amount=self.amount,
            )
        return Adjustment(
            transaction_date=self.transaction_date,
            notes=self.notes,
            amount=self.amount,
            reason=self.reason,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "id": 2,
                "debt_tab_id": 1,
                "customer_id": "cust_001",
                "transaction_type": "PAYMENT",
                "transaction_date": "2024-01-02T09:00:00Z",
                "amount": "100.00",
                "balance_before": "250.00",
                "balance_after": "150.00",
                "notes": "Cash",
                "entered_by_id": "staff_01",
                "idempotency_key": "pay-7f3a",
                "created_at": "2024-01-02T09:00:01Z"
            }
        }
