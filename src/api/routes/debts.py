"""Debt Ledger API Routes

FastAPI routes for customer tabs: mutations go through the MutationCoordinator,
reads go straight to their use cases and never take the customer lock.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories import (
    SqlAlchemyCustomerRepository,
    SqlAlchemyDebtTabRepository,
    SqlAlchemyDebtTransactionRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError
from src.api.schemas.debt_request import (
    AdjustmentRequestSchema,
    ChargeRequestSchema,
    MarkPaidRequestSchema,
    PaymentRequestSchema,
)
from src.app.services.customer_locks import CustomerLockRegistry
from src.app.services.mutation_coordinator import MutationCoordinator
from src.app.use_cases.debts import (
    AdjustmentCommandDTO,
    AgingReportResponseDTO,
    ChargeCommandDTO,
    CustomerDebtResponseDTO,
    CustomerHistoryResponseDTO,
    DebtMetricsResponseDTO,
    DebtMutationResponseDTO,
    DebtSummaryResponseDTO,
    GetAgingReport,
    GetCustomerDebt,
    GetCustomerHistory,
    GetDebtMetrics,
    GetDebtSummary,
    ListTransactions,
    ListTransactionsResponseDTO,
    MarkPaidCommandDTO,
    PaymentCommandDTO,
    TransactionFiltersDTO,
)
from src.app.use_cases.debts.tab_mutation import normalize_timestamp
from src.depends import get_customer_locks, get_session
from src.domain.debt_tab import TabStatus
from src.domain.debt_transaction import TransactionType

router = APIRouter(prefix="/debts", tags=["Debts"])


def _error_example(code: str, message: str) -> dict:
    return {"application/json": {"example": {"error": {"code": code, "message": message}}}}


MUTATION_RESPONSES = {
    400: {"description": "Validation error", "content": _error_example("VALIDATION_ERROR", "Amount must be greater than 0")},
    404: {"description": "Customer not found", "content": _error_example("CUSTOMER_NOT_FOUND", "Customer cust_404 not found")},
    409: {"description": "Rejected by the ledger", "content": _error_example("OVERPAYMENT", "Payment exceeds outstanding balance")},
    503: {"description": "Storage unavailable", "content": _error_example("STORAGE_ERROR", "Failed to record payment")},
}


def _coordinator(session: AsyncSession, locks: CustomerLockRegistry) -> MutationCoordinator:
    return MutationCoordinator(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyCustomerRepository(session),
        SqlAlchemyDebtTabRepository(session),
        SqlAlchemyDebtTransactionRepository(session),
        locks,
    )


def _unwrap(result):
    if result.is_err():
        raise ClientError(result.error)
    return result.value


@router.post(
    "/charge",
    response_model=DebtMutationResponseDTO,
    status_code=status.HTTP_200_OK,
    responses=MUTATION_RESPONSES,
)
async def create_charge(
    request: ChargeRequestSchema,
    session: AsyncSession = Depends(get_session),
    locks: CustomerLockRegistry = Depends(get_customer_locks),
):
    """
    Charge containers to a customer's tab.

    Opens a new tab when the customer has none open. The charge amount is
    `containers * unit_price`; the caller resolves the unit price.

    **Returns:**
    - 200: Charge recorded (or replayed for a known idempotency_key)
    - 400: containers <= 0, negative unit_price or backdated charge
    - 404: Unknown customer
    """
    command = ChargeCommandDTO(**request.model_dump())
    result = await _coordinator(session, locks).submit_charge(command)
    return _unwrap(result)


@router.post(
    "/payment",
    response_model=DebtMutationResponseDTO,
    status_code=status.HTTP_200_OK,
    responses=MUTATION_RESPONSES,
)
async def create_payment(
    request: PaymentRequestSchema,
    session: AsyncSession = Depends(get_session),
    locks: CustomerLockRegistry = Depends(get_customer_locks),
):
    """
    Record a payment against the customer's open tab.

    **Returns:**
    - 200: Payment recorded
    - 400: amount <= 0
    - 409: NO_OPEN_TAB or OVERPAYMENT
    """
    command = PaymentCommandDTO(**request.model_dump())
    result = await _coordinator(session, locks).submit_payment(command)
    return _unwrap(result)


@router.post(
    "/adjustment",
    response_model=DebtMutationResponseDTO,
    status_code=status.HTTP_200_OK,
    responses=MUTATION_RESPONSES,
)
async def create_adjustment(
    request: AdjustmentRequestSchema,
    session: AsyncSession = Depends(get_session),
    locks: CustomerLockRegistry = Depends(get_customer_locks),
):
    """
    Record a signed manual adjustment with a mandatory reason.

    **Returns:**
    - 200: Adjustment recorded
    - 400: MISSING_REASON or zero amount
    - 409: NO_OPEN_TAB or NEGATIVE_BALANCE
    """
    command = AdjustmentCommandDTO(**request.model_dump())
    result = await _coordinator(session, locks).submit_adjustment(command)
    return _unwrap(result)


@router.post(
    "/mark-paid",
    response_model=DebtMutationResponseDTO,
    status_code=status.HTTP_200_OK,
    responses=MUTATION_RESPONSES,
)
async def mark_paid(
    request: MarkPaidRequestSchema,
    session: AsyncSession = Depends(get_session),
    locks: CustomerLockRegistry = Depends(get_customer_locks),
):
    """
    Settle the customer's open tab and close it.

    Without `final_payment` the exact outstanding balance is recorded as the
    final payment. The next charge opens a new tab.

    **Returns:**
    - 200: Tab closed
    - 400: UNSETTLED_BALANCE (final_payment does not settle the balance)
    - 409: NO_OPEN_TAB or OVERPAYMENT
    """
    command = MarkPaidCommandDTO(**request.model_dump())
    result = await _coordinator(session, locks).submit_mark_paid(command)
    return _unwrap(result)


@router.get("/customer/{customer_id}", response_model=CustomerDebtResponseDTO)
async def get_customer_debt(customer_id: str, session: AsyncSession = Depends(get_session)):
    """Current open tab of a customer with its transactions (oldest first)."""
    use_case = GetCustomerDebt(
        SqlAlchemyCustomerRepository(session),
        SqlAlchemyDebtTabRepository(session),
        SqlAlchemyDebtTransactionRepository(session),
    )
    return _unwrap(await use_case.execute(customer_id))


@router.get("/customer/{customer_id}/history", response_model=CustomerHistoryResponseDTO)
async def get_customer_history(customer_id: str, session: AsyncSession = Depends(get_session)):
    """Every tab of a customer (newest first) with all of their transactions."""
    use_case = GetCustomerHistory(
        SqlAlchemyCustomerRepository(session),
        SqlAlchemyDebtTabRepository(session),
        SqlAlchemyDebtTransactionRepository(session),
    )
    return _unwrap(await use_case.execute(customer_id))


@router.get("/transactions", response_model=ListTransactionsResponseDTO)
async def list_transactions(
    customer_id: Optional[str] = Query(default=None),
    transaction_type: Optional[TransactionType] = Query(default=None),
    tab_status: Optional[TabStatus] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    page: int = Query(default=1),
    limit: int = Query(default=ApplicationConfig.DEFAULT_PAGE_LIMIT),
    session: AsyncSession = Depends(get_session),
):
    """
    Filtered transaction listing, most recent first.

    **Query parameters:** customer_id, transaction_type (CHARGE, PAYMENT,
    ADJUSTMENT), tab_status (OPEN, CLOSED), start_date, end_date, page, limit.
    """
    filters = TransactionFiltersDTO(
        customer_id=customer_id,
        transaction_type=transaction_type,
        tab_status=tab_status,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    use_case = ListTransactions(
        SqlAlchemyDebtTransactionRepository(session),
        max_limit=ApplicationConfig.MAX_PAGE_LIMIT,
    )
    return _unwrap(await use_case.execute(filters))


@router.get("/aging", response_model=AgingReportResponseDTO)
async def get_aging_report(
    as_of: Optional[datetime] = Query(default=None),
    session: AsyncSession = Depends(get_session),
):
    """Aging buckets and collection status of every open tab with a balance."""
    use_case = GetAgingReport(
        SqlAlchemyCustomerRepository(session),
        SqlAlchemyDebtTabRepository(session),
        SqlAlchemyDebtTransactionRepository(session),
    )
    return _unwrap(await use_case.execute(normalize_timestamp(as_of)))


@router.get("/summary", response_model=DebtSummaryResponseDTO)
async def get_summary(
    as_of: Optional[datetime] = Query(default=None),
    session: AsyncSession = Depends(get_session),
):
    """Outstanding balance per customer with an open tab."""
    use_case = GetDebtSummary(
        SqlAlchemyCustomerRepository(session),
        SqlAlchemyDebtTabRepository(session),
        SqlAlchemyDebtTransactionRepository(session),
    )
    return _unwrap(await use_case.execute(normalize_timestamp(as_of)))


@router.get("/metrics", response_model=DebtMetricsResponseDTO)
async def get_metrics(
    as_of: Optional[datetime] = Query(default=None),
    session: AsyncSession = Depends(get_session),
):
    """Dashboard totals: outstanding, active debtors, payments in the last 7 days."""
    use_case = GetDebtMetrics(
        SqlAlchemyDebtTabRepository(session),
        SqlAlchemyDebtTransactionRepository(session),
    )
    return _unwrap(await use_case.execute(normalize_timestamp(as_of)))
