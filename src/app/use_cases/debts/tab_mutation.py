"""Shared flow of every tab mutation

Each mutation runs the same sequence inside the customer's exclusive section:

1. Replay check (idempotency key)
2. Load customer and current tab
3. Validate the entry against the current balance (nothing written yet)
4. Append the transaction
5. Compare-and-swap the tab snapshot
6. Commit (or roll back), then release the section

Business-rule violations are raised by the domain layer before step 4, so a
rejected mutation never leaves partial state behind.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from libs.result import Error, Result, Return
from src.app.repositories.customer_repository import CustomerRepository
from src.app.repositories.debt_tab_repository import DebtTabRepository
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from src.app.services.customer_locks import CustomerLockRegistry
from src.app.services.unit_of_work import UnitOfWork
from src.domain.balance_calculator import to_amount, to_money, validate_chronology
from src.domain.customer import Customer
from src.domain.debt_tab import DebtTab
from src.domain.debt_transaction import DebtTransaction, TransactionType
from src.domain.errors import (
    ConcurrentModificationError,
    CustomerNotFoundError,
    LedgerError,
    StorageError,
    ValidationError,
)
from src.domain.ledger_entry import Adjustment, Charge
from .dtos import DebtMutationResponseDTO, DebtTabDTO, DebtTransactionDTO, MutationCommandBase

logger = logging.getLogger(__name__)


def normalize_timestamp(value: Optional[datetime]) -> datetime:
    """Naive UTC timestamp; defaults to now"""
    if value is None:
        return datetime.utcnow()
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def error_from(exc: LedgerError) -> Error:
    return Error(code=exc.code, message=exc.message, reason=exc.reason, retryable=exc.retryable)


class TabMutation(ABC):
    """Base use case for CHARGE, PAYMENT, ADJUSTMENT and mark-paid"""

    operation = "mutation"

    def __init__(
        self,
        uow: UnitOfWork,
        customer_repo: CustomerRepository,
        tab_repo: DebtTabRepository,
        transaction_repo: DebtTransactionRepository,
        locks: CustomerLockRegistry,
    ):
        self.uow = uow
        self.customer_repo = customer_repo
        self.tab_repo = tab_repo
        self.transaction_repo = transaction_repo
        self.locks = locks

    async def execute(self, command: MutationCommandBase) -> Result[DebtMutationResponseDTO]:
        try:
            replayed = await self._replay(command)
            if replayed:
                return Return.ok(replayed)

            async with self.locks.exclusive(command.customer_id):
                try:
                    # A duplicate may have committed while we waited for the section
                    replayed = await self._replay(command)
                    if replayed:
                        return Return.ok(replayed)

                    customer = await self._load_customer(command.customer_id)
                    transaction, tab = await self._mutate(command, customer)
                    try:
                        await self.uow.commit()
                    except SQLAlchemyError as e:
                        raise StorageError(
                            f"Failed to record {self.operation}", reason=str(e)
                        ) from e
                except Exception:
                    # Release row and write locks before the next writer enters
                    await self.uow.rollback()
                    raise

            logger.info(
                f"Recorded {self.operation} for customer {command.customer_id}: "
                f"tab_id={tab.id}, balance={tab.total_balance}, "
                f"transaction_id={transaction.id if transaction else None}"
            )
            return Return.ok(
                DebtMutationResponseDTO(
                    transaction=DebtTransactionDTO.from_entity(transaction) if transaction else None,
                    tab=DebtTabDTO.from_entity(tab),
                )
            )

        except LedgerError as e:
            if isinstance(e, StorageError):
                logger.error(f"{self.operation} for customer {command.customer_id} failed: {e.reason}")
            else:
                logger.info(f"{self.operation} for customer {command.customer_id} rejected: {e.code} {e.message}")
            return Return.err(error_from(e))

        except IntegrityError as e:
            # Unique open-tab index or idempotency key hit by a concurrent writer
            logger.warning(f"{self.operation} for customer {command.customer_id} lost a race: {e}")
            return Return.err(error_from(ConcurrentModificationError(
                f"Tab of customer {command.customer_id} was modified concurrently",
                reason=str(e.orig) if e.orig else str(e),
            )))

        except SQLAlchemyError as e:
            logger.error(f"{self.operation} for customer {command.customer_id} failed: {e}")
            return Return.err(error_from(StorageError(f"Failed to record {self.operation}", reason=str(e))))

    @abstractmethod
    async def _mutate(
        self, command: MutationCommandBase, customer: Customer
    ) -> Tuple[Optional[DebtTransaction], DebtTab]:
        """Validate and record the mutation; raise LedgerError to reject it"""
        pass

    async def _replay(self, command: MutationCommandBase) -> Optional[DebtMutationResponseDTO]:
        if not command.idempotency_key:
            return None
        existing = await self.transaction_repo.get_by_idempotency_key(command.idempotency_key)
        if not existing:
            return None
        self._check_key_owner(existing.customer_id, command)
        tab = await self.tab_repo.get_by_id(existing.debt_tab_id)
        logger.info(f"Idempotent replay of {self.operation} with key {command.idempotency_key}")
        return DebtMutationResponseDTO(
            transaction=DebtTransactionDTO.from_entity(existing),
            tab=DebtTabDTO.from_entity(tab),
            replayed=True,
        )

    @staticmethod
    def _check_key_owner(owner_customer_id: str, command: MutationCommandBase) -> None:
        if owner_customer_id != command.customer_id:
            raise ValidationError(
                "Idempotency key was already used for another customer",
                reason=f"idempotency_key={command.idempotency_key}",
            )

    async def _load_customer(self, customer_id: str) -> Customer:
        customer = await self.customer_repo.get_by_id(customer_id)
        if not customer:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return customer

    async def _check_chronology(self, tab: DebtTab, transaction_date: datetime) -> None:
        last = await self.transaction_repo.get_last_for_tab(tab.id)
        validate_chronology(last.transaction_date if last else None, transaction_date)

    async def _append(
        self,
        tab: DebtTab,
        command: MutationCommandBase,
        entry,
        contribution: Decimal,
        idempotency_key: Optional[str] = None,
    ) -> DebtTransaction:
        """
        Record a validated entry variant and move the tab snapshot with it

        ``contribution`` is the signed value returned by ``contribution_of``
        for the same entry and balance.
        """
        transaction_type = TransactionType(entry.kind)
        balance_before = to_money(tab.total_balance)
        balance_after = to_amount(balance_before + contribution, "balance")

        transaction = DebtTransaction(
            debt_tab_id=tab.id,
            customer_id=tab.customer_id,
            transaction_type=transaction_type,
            transaction_date=entry.transaction_date,
            containers=entry.containers if isinstance(entry, Charge) else None,
            unit_price=to_money(entry.unit_price) if isinstance(entry, Charge) else None,
            amount=-contribution if transaction_type is TransactionType.PAYMENT else contribution,
            reason=entry.reason.strip() if isinstance(entry, Adjustment) else None,
            balance_before=balance_before,
            balance_after=balance_after,
            notes=entry.notes,
            entered_by_id=command.entered_by_id,
            idempotency_key=idempotency_key if idempotency_key is not None else command.idempotency_key,
        )
        created = await self.transaction_repo.create(transaction)
        await self.tab_repo.compare_and_swap(tab, expected_version=tab.version, total_balance=balance_after)
        return created
