"""Debt Tab Domain Entity

One row per customer accumulation period. A customer has at most one OPEN tab;
closed tabs are kept forever as history.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, Integer, Numeric, String, text
from src.domain.base import BaseModel, IdType


class TabStatus(str, Enum):
    """Debt tab status"""
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class DebtTab(BaseModel, table=True):
    """
    Debt Tab - Current outstanding balance of a customer

    Domain Rules:
    - At most one OPEN tab per customer (partial unique index)
    - total_balance is never negative
    - total_balance equals the sum of contributions of the tab's transactions
    - Snapshot writes go through a compare-and-swap on version
    - CLOSED is terminal; a new charge opens a new tab
    """

    __tablename__ = "debt_tabs"
    __table_args__ = (
        CheckConstraint('total_balance >= 0', name='total_balance_non_negative'),
        Index(
            'uq_debt_tabs_open_customer',
            'customer_id',
            unique=True,
            sqlite_where=text("status = 'OPEN'"),
            postgresql_where=text("status = 'OPEN'"),
        ),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
        description="Unique tab identifier (auto-increment)"
    )

    customer_id: str = Field(
        index=True,
        description="Customer owning the tab"
    )

    status: TabStatus = Field(
        default=TabStatus.OPEN,
        description="Tab status (OPEN, CLOSED)"
    )

    total_balance: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(18, 2), nullable=False, default=0),
        description="Current outstanding amount (>= 0)"
    )

    version: int = Field(
        default=1,
        sa_column=Column(Integer, nullable=False, default=1),
        description="Incremented on every snapshot write (optimistic concurrency)"
    )

    close_idempotency_key: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True, unique=True),
        description="Idempotency key of the mark-paid request that closed the tab"
    )

    opened_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Date of the charge that opened the tab"
    )

    closed_at: Optional[datetime] = Field(
        default=None,
        description="Settlement timestamp (set when CLOSED)"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last snapshot update timestamp"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "id": 1,
                "customer_id": "cust_001",
                "status": "OPEN",
                "total_balance": "150.00",
                "version": 3,
                "opened_at": "2024-01-01T08:00:00Z",
                "closed_at": None,
                "updated_at": "2024-01-03T08:00:00Z"
            }
        }
