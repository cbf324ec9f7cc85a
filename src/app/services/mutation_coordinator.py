"""Mutation Coordinator

Single entry point for every write to a customer's tab. Each operation runs
inside the customer's exclusive section (CustomerLockRegistry) so that the
balance calculator always validates against the latest committed balance.
Different customers proceed in parallel.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.result import Result
from src.app.repositories.customer_repository import CustomerRepository
from src.app.repositories.debt_tab_repository import DebtTabRepository
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from src.app.services.customer_locks import CustomerLockRegistry
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.debts.create_adjustment import CreateAdjustment
from src.app.use_cases.debts.create_charge import CreateCharge
from src.app.use_cases.debts.create_payment import CreatePayment
from src.app.use_cases.debts.dtos import (
    AdjustmentCommandDTO,
    ChargeCommandDTO,
    DebtMutationResponseDTO,
    MarkPaidCommandDTO,
    PaymentCommandDTO,
)
from src.app.use_cases.debts.mark_paid import MarkPaid


class MutationCoordinator:
    """
    Coordinates charge, payment, adjustment and mark-paid for one unit of work

    Usage:
        coordinator = MutationCoordinator(uow, customer_repo, tab_repo, transaction_repo, locks)
        result = await coordinator.pay("cust_001", Decimal("100.00"))
        if result.is_err():
            ...
    """

    def __init__(
        self,
        uow: UnitOfWork,
        customer_repo: CustomerRepository,
        tab_repo: DebtTabRepository,
        transaction_repo: DebtTransactionRepository,
        locks: CustomerLockRegistry,
    ):
        args = (uow, customer_repo, tab_repo, transaction_repo, locks)
        self._charge = CreateCharge(*args)
        self._payment = CreatePayment(*args)
        self._adjustment = CreateAdjustment(*args)
        self._mark_paid = MarkPaid(*args)

    async def charge(
        self,
        customer_id: str,
        containers: int,
        unit_price: Decimal,
        transaction_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        entered_by_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Result[DebtMutationResponseDTO]:
        return await self.submit_charge(ChargeCommandDTO(
            customer_id=customer_id,
            containers=containers,
            unit_price=unit_price,
            transaction_date=transaction_date,
            notes=notes,
            entered_by_id=entered_by_id,
            idempotency_key=idempotency_key,
        ))

    async def pay(
        self,
        customer_id: str,
        amount: Decimal,
        transaction_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        entered_by_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Result[DebtMutationResponseDTO]:
        return await self.submit_payment(PaymentCommandDTO(
            customer_id=customer_id,
            amount=amount,
            transaction_date=transaction_date,
            notes=notes,
            entered_by_id=entered_by_id,
            idempotency_key=idempotency_key,
        ))

    async def adjust(
        self,
        customer_id: str,
        amount: Decimal,
        reason: Optional[str],
        transaction_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        entered_by_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Result[DebtMutationResponseDTO]:
        return await self.submit_adjustment(AdjustmentCommandDTO(
            customer_id=customer_id,
            amount=amount,
            reason=reason,
            transaction_date=transaction_date,
            notes=notes,
            entered_by_id=entered_by_id,
            idempotency_key=idempotency_key,
        ))

    async def mark_paid(
        self,
        customer_id: str,
        final_payment: Optional[Decimal] = None,
        transaction_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        entered_by_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Result[DebtMutationResponseDTO]:
        return await self.submit_mark_paid(MarkPaidCommandDTO(
            customer_id=customer_id,
            final_payment=final_payment,
            transaction_date=transaction_date,
            notes=notes,
            entered_by_id=entered_by_id,
            idempotency_key=idempotency_key,
        ))

    # Command-based variants used by the HTTP layer

    async def submit_charge(self, command: ChargeCommandDTO) -> Result[DebtMutationResponseDTO]:
        return await self._charge.execute(command)

    async def submit_payment(self, command: PaymentCommandDTO) -> Result[DebtMutationResponseDTO]:
        return await self._payment.execute(command)

    async def submit_adjustment(self, command: AdjustmentCommandDTO) -> Result[DebtMutationResponseDTO]:
        return await self._adjustment.execute(command)

    async def submit_mark_paid(self, command: MarkPaidCommandDTO) -> Result[DebtMutationResponseDTO]:
        return await self._mark_paid.execute(command)
