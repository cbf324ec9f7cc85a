"""Data Transfer Objects for Debt Ledger Use Cases

Pydantic models for command inputs and response outputs.
Command DTOs carry types only; amount and reason rules are enforced by the
balance calculator so that the violated rule is reported by name.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from src.domain.customer import Customer
from src.domain.debt_tab import DebtTab, TabStatus
from src.domain.debt_transaction import DebtTransaction, TransactionType


def _enum_value(value) -> str:
    return value.value if hasattr(value, "value") else value


# ============================================================================
# Commands
# ============================================================================


class MutationCommandBase(BaseModel):
    customer_id: str = Field(
        ...,
        description="Customer identifier"
    )

    transaction_date: Optional[datetime] = Field(
        default=None,
        description="Business date of the transaction (defaults to now, UTC)"
    )

    notes: Optional[str] = Field(
        default=None,
        description="Optional free-form notes"
    )

    entered_by_id: Optional[str] = Field(
        default=None,
        description="Staff member entering the transaction"
    )

    idempotency_key: Optional[str] = Field(
        default=None,
        description="Client generated key; a retry with the same key is not applied twice"
    )


class ChargeCommandDTO(MutationCommandBase):
    """
    Command DTO for charging containers to a customer's tab

    Used as input to CreateCharge use case. Opens a tab if none is open.
    """

    containers: int = Field(
        ...,
        description="Number of containers taken on credit (must be > 0)"
    )

    unit_price: Decimal = Field(
        ...,
        description="Price per container, already resolved by the caller"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "cust_001",
                "containers": 10,
                "unit_price": "25.00",
                "transaction_date": "2024-01-01T08:00:00Z",
                "notes": "Morning delivery",
                "idempotency_key": "charge-8d2c"
            }
        }


class PaymentCommandDTO(MutationCommandBase):
    """
    Command DTO for recording a payment against the open tab

    Used as input to CreatePayment use case.
    """

    amount: Decimal = Field(
        ...,
        description="Amount paid (must be > 0 and not exceed the balance)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "cust_001",
                "amount": "100.00",
                "transaction_date": "2024-01-02T09:00:00Z",
                "idempotency_key": "pay-7f3a"
            }
        }


class AdjustmentCommandDTO(MutationCommandBase):
    """
    Command DTO for a manual balance correction

    Used as input to CreateAdjustment use case.
    """

    amount: Decimal = Field(
        ...,
        description="Signed amount (negative reduces the balance, never below zero)"
    )

    reason: Optional[str] = Field(
        default=None,
        description="Why the adjustment is made (required)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "cust_001",
                "amount": "-150.00",
                "reason": "goodwill",
                "idempotency_key": "adj-11ab"
            }
        }


class MarkPaidCommandDTO(MutationCommandBase):
    """
    Command DTO for settling and closing the open tab

    Used as input to MarkPaid use case. Without final_payment the exact
    outstanding balance is recorded as the final payment.
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


class TransactionFiltersDTO(BaseModel):
    """Filters for ListTransactions"""

    customer_id: Optional[str] = None
    transaction_type: Optional[TransactionType] = None
    tab_status: Optional[TabStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: int = 1
    limit: int = 20


# ============================================================================
# Responses
# ============================================================================


class CustomerDTO(BaseModel):
    id: str
    name: str
    location: Optional[str] = None
    custom_unit_price: Optional[Decimal] = None
    credit_limit: Optional[Decimal] = None

    @classmethod
    def from_entity(cls, customer: Customer) -> "CustomerDTO":
        return cls(
            id=customer.id,
            name=customer.name,
            location=customer.location,
            custom_unit_price=customer.custom_unit_price,
            credit_limit=customer.credit_limit,
        )


class DebtTabDTO(BaseModel):
    """Tab snapshot as returned to callers"""

    id: int = Field(..., description="Tab ID")
    customer_id: str = Field(..., description="Customer identifier")
    status: str = Field(..., description="OPEN or CLOSED")
    total_balance: Decimal = Field(..., description="Outstanding amount")
    version: int = Field(default=0, description="Snapshot version, incremented on every write")
    opened_at: datetime = Field(..., description="Date of the opening charge")
    closed_at: Optional[datetime] = Field(default=None, description="Settlement timestamp")
    updated_at: datetime = Field(..., description="Last snapshot update")

    @classmethod
    def from_entity(cls, tab: DebtTab) -> "DebtTabDTO":
        return cls(
            id=tab.id,
            customer_id=tab.customer_id,
            status=_enum_value(tab.status),
            total_balance=tab.total_balance,
            version=tab.version,
            opened_at=tab.opened_at,
            closed_at=tab.closed_at,
            updated_at=tab.updated_at,
        )


class DebtTransactionDTO(BaseModel):
    """Ledger entry as returned to callers"""

    id: int = Field(..., description="Transaction ID")
    debt_tab_id: int = Field(..., description="Tab the transaction belongs to")
    customer_id: str = Field(..., description="Customer identifier")
    transaction_type: str = Field(..., description="CHARGE, PAYMENT or ADJUSTMENT")
    transaction_date: datetime = Field(..., description="Business date")
    containers: Optional[int] = Field(default=None, description="Containers (CHARGE)")
    unit_price: Optional[Decimal] = Field(default=None, description="Unit price (CHARGE)")
    amount: Decimal = Field(..., description="Charge total, payment amount or signed adjustment")
    reason: Optional[str] = Field(default=None, description="Adjustment reason")
    balance_before: Decimal = Field(..., description="Balance before the transaction")
    balance_after: Decimal = Field(..., description="Balance after the transaction")
    notes: Optional[str] = Field(default=None, description="Notes")
    entered_by_id: Optional[str] = Field(default=None, description="Entered by")
    idempotency_key: Optional[str] = Field(default=None, description="Idempotency key")
    created_at: datetime = Field(..., description="Insertion timestamp")

    @classmethod
    def from_entity(cls, transaction: DebtTransaction) -> "DebtTransactionDTO":
        return cls(
            id=transaction.id,
            debt_tab_id=transaction.debt_tab_id,
            customer_id=transaction.customer_id,
            transaction_type=_enum_value(transaction.transaction_type),
            transaction_date=transaction.transaction_date,
            containers=transaction.containers,
            unit_price=transaction.unit_price,
            amount=transaction.amount,
            reason=transaction.reason,
            balance_before=transaction.balance_before,
            balance_after=transaction.balance_after,
            notes=transaction.notes,
            entered_by_id=transaction.entered_by_id,
            idempotency_key=transaction.idempotency_key,
            created_at=transaction.created_at,
        )


class DebtMutationResponseDTO(BaseModel):
    """
    Response DTO for every tab mutation

    ``transaction`` is None only for a mark-paid on a tab that already had a
    zero balance. ``replayed`` is True when an idempotency key matched an
    earlier request and nothing new was written.
    """

    transaction: Optional[DebtTransactionDTO] = Field(
        default=None,
        description="Transaction recorded by the mutation"
    )

    tab: DebtTabDTO = Field(
        ...,
        description="Tab snapshot after the mutation"
    )

    replayed: bool = Field(
        default=False,
        description="True when returned from an earlier request with the same idempotency key"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "transaction": {
                    "id": 2,
                    "debt_tab_id": 1,
                    "customer_id": "cust_001",
                    "transaction_type": "PAYMENT",
                    "transaction_date": "2024-01-02T09:00:00Z",
                    "amount": "100.00",
                    "balance_before": "250.00",
                    "balance_after": "150.00",
                    "created_at": "2024-01-02T09:00:01Z"
                },
                "tab": {
                    "id": 1,
                    "customer_id": "cust_001",
                    "status": "OPEN",
                    "total_balance": "150.00",
                    "opened_at": "2024-01-01T08:00:00Z",
                    "updated_at": "2024-01-02T09:00:01Z"
                },
                "replayed": False
            }
        }


class CustomerDebtResponseDTO(BaseModel):
    customer: CustomerDTO
    tab: Optional[DebtTabDTO] = None
    transactions: List[DebtTransactionDTO] = Field(default_factory=list)


class CustomerHistoryResponseDTO(BaseModel):
    customer: CustomerDTO
    tabs: List[DebtTabDTO] = Field(default_factory=list)
    transactions: List[DebtTransactionDTO] = Field(default_factory=list)


class PaginationDTO(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ListTransactionsResponseDTO(BaseModel):
    transactions: List[DebtTransactionDTO]
    pagination: PaginationDTO


class AgingReportCustomerDTO(BaseModel):
    customer_id: str
    customer_name: str
    location: Optional[str] = None
    tab_id: int
    age_days: int
    current: Decimal
    days_31_to_60: Decimal
    days_61_to_90: Decimal
    over_90_days: Decimal
    total_owed: Decimal
    collection_status: str
    last_payment_date: Optional[datetime] = None


class AgingReportSummaryDTO(BaseModel):
    total_customers: int
    total_outstanding: Decimal
    current: Decimal
    days_31_to_60: Decimal
    days_61_to_90: Decimal
    over_90_days: Decimal


class AgingReportResponseDTO(BaseModel):
    """Aging report, recomputed from the ledger on every request"""

    customers: List[AgingReportCustomerDTO]
    summary: AgingReportSummaryDTO
    generated_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "customers": [
                    {
                        "customer_id": "cust_001",
                        "customer_name": "Dela Cruz Store",
                        "location": "BANAI",
                        "tab_id": 1,
                        "age_days": 45,
                        "current": "0.00",
                        "days_31_to_60": "150.00",
                        "days_61_to_90": "0.00",
                        "over_90_days": "0.00",
                        "total_owed": "150.00",
                        "collection_status": "OVERDUE",
                        "last_payment_date": "2024-01-02T09:00:00Z"
                    }
                ],
                "summary": {
                    "total_customers": 1,
                    "total_outstanding": "150.00",
                    "current": "0.00",
                    "days_31_to_60": "150.00",
                    "days_61_to_90": "0.00",
                    "over_90_days": "0.00"
                },
                "generated_at": "2024-02-15T00:00:00Z"
            }
        }


class DebtSummaryItemDTO(BaseModel):
    customer_id: str
    customer_name: str
    location: Optional[str] = None
    tab_id: int
    total_balance: Decimal
    opened_at: datetime
    days_open: int
    collection_status: str
    credit_limit: Optional[Decimal] = None
    over_credit_limit: bool = False
    last_payment_date: Optional[datetime] = None


class DebtSummaryResponseDTO(BaseModel):
    items: List[DebtSummaryItemDTO]
    total_outstanding: Decimal
    customer_count: int
    generated_at: datetime


class DebtMetricsResponseDTO(BaseModel):
    total_outstanding: Decimal
    active_debtors: int
    weekly_payment_amount: Decimal
    collection_status_counts: Dict[str, int]
    generated_at: datetime


class TabDiscrepancyDTO(BaseModel):
    """
    Tab whose snapshot disagrees with its transaction history

    ``broken_transaction_id`` is the first transaction whose balance_after
    does not match the replayed running balance, if any.
    """

    customer_id: str
    tab_id: int
    tab_balance: Decimal
    calculated_balance: Decimal
    discrepancy: Decimal
    broken_transaction_id: Optional[int] = None


class ReconciliationResultDTO(BaseModel):
    total_tabs_checked: int
    discrepancies_found: int
    discrepancies: List[TabDiscrepancyDTO]
    reconciliation_time: datetime
    execution_time_ms: int
