"""Request schemas for Debt Ledger API

Pydantic models for validating the shape of incoming HTTP requests.
Business rules (positive amounts, mandatory reason, balance checks) are
enforced by the ledger so that violations come back with their own error code.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class MutationRequestSchema(BaseModel):
    customer_id: str = Field(
        ...,
        min_length=1,
        description="Customer identifier (required, non-empty)"
    )

    transaction_date: Optional[datetime] = Field(
        default=None,
        description="Business date of the transaction (defaults to now)"
    )

    notes: Optional[str] = Field(
        default=None,
        max_length=2000,
        description="Optional notes"
    )

    entered_by_id: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Staff member entering the transaction"
    )

    idempotency_key: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=255,
        description="Client generated key for retry-safe submission"
    )


class ChargeRequestSchema(MutationRequestSchema):
    """
    Request schema for charging containers

    Used for POST /debts/charge endpoint.
    """

    containers: int = Field(
        ...,
        description="Number of containers taken on credit"
    )

    unit_price: Decimal = Field(
        ...,
        description="Price per container"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "cust_001",
                "containers": 10,
                "unit_price": "25.00",
                "notes": "Morning delivery",
                "idempotency_key": "charge-8d2c"
            }
        }


class PaymentRequestSchema(MutationRequestSchema):
    """
    Request schema for recording a payment

    Used for POST /debts/payment endpoint.
    """

    amount: Decimal = Field(
        ...,
        description="Amount paid"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "cust_001",
                "amount": "100.00",
                "idempotency_key": "pay-7f3a"
            }
        }


class AdjustmentRequestSchema(MutationRequestSchema):
    """
    Request schema for a manual adjustment

    Used for POST /debts/adjustment endpoint.
    """

    amount: Decimal = Field(
        ...,
        description="Signed adjustment amount"
    )

    reason: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Reason for the adjustment (required by the ledger)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "cust_001",
                "amount": "-150.00",
                "reason": "goodwill"
            }
        }


class MarkPaidRequestSchema(MutationRequestSchema):
    """
    Request schema for settling and closing a tab

    Used for POST /debts/mark-paid endpoint.
    """

    final_payment: Optional[Decimal] = Field(
        default=None,
        description="Optional final payment; must settle the balance exactly"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "cust_001",
                "final_payment": "150.00",
                "idempotency_key": "close-42"
            }
        }
