"""SQLAlchemy implementation of DebtTransactionRepository

Provides append-only persistence for DebtTransaction entities with
idempotency enforcement via unique constraint on idempotency_key.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from src.domain.balance_calculator import to_money
from src.domain.debt_tab import DebtTab, TabStatus
from src.domain.debt_transaction import DebtTransaction, TransactionType


class SqlAlchemyDebtTransactionRepository(DebtTransactionRepository):
    """
    SQLAlchemy implementation of DebtTransactionRepository

    Features:
    - Idempotency enforcement via unique idempotency_key constraint
    - Immutable append-only transactions (no update or delete)
    - Ledger order (transaction_date, id) served by a composite index
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: DebtTransaction) -> DebtTransaction:
        """
        Append a transaction

        Raises:
            IntegrityError: If idempotency_key already exists (duplicate submission)
        """
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def get_by_id(self, transaction_id: int) -> Optional[DebtTransaction]:
        stmt = select(DebtTransaction).where(DebtTransaction.id == transaction_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[DebtTransaction]:
        """
        Retrieve transaction by idempotency key

        Used to check if a mutation was already applied.
        """
        stmt = select(DebtTransaction).where(
            DebtTransaction.idempotency_key == idempotency_key
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_last_for_tab(self, tab_id: int) -> Optional[DebtTransaction]:
        stmt = (
            select(DebtTransaction)
            .where(DebtTransaction.debt_tab_id == tab_id)
            .order_by(DebtTransaction.transaction_date.desc(), DebtTransaction.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_tab_ids(self, tab_ids: Iterable[int]) -> List[DebtTransaction]:
        ids = list(tab_ids)
        if not ids:
            return []
        stmt = (
            select(DebtTransaction)
            .where(DebtTransaction.debt_tab_id.in_(ids))
            .order_by(
                DebtTransaction.debt_tab_id,
                DebtTransaction.transaction_date,
                DebtTransaction.id,
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_filtered(
        self,
        customer_id: Optional[str] = None,
        transaction_type: Optional[TransactionType] = None,
        tab_status: Optional[TabStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[DebtTransaction], int]:
        """
        Filtered transactions, most recent first

        Args:
            customer_id: Only this customer's transactions
            transaction_type: Only this type
            tab_status: Only transactions on tabs with this status
            start_date: transaction_date >= start_date
            end_date: transaction_date <= end_date
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (transactions, total matching count)
        """
        stmt = select(DebtTransaction)

        if tab_status is not None:
            stmt = stmt.join(DebtTab, DebtTab.id == DebtTransaction.debt_tab_id).where(
                DebtTab.status == tab_status
            )
        if customer_id:
            stmt = stmt.where(DebtTransaction.customer_id == customer_id)
        if transaction_type is not None:
            stmt = stmt.where(DebtTransaction.transaction_type == transaction_type)
        if start_date is not None:
            stmt = stmt.where(DebtTransaction.transaction_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(DebtTransaction.transaction_date <= end_date)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            stmt.order_by(DebtTransaction.transaction_date.desc(), DebtTransaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def sum_amount_since(self, transaction_type: TransactionType, since: datetime) -> Decimal:
        stmt = select(func.sum(DebtTransaction.amount)).where(
            DebtTransaction.transaction_type == transaction_type,
            DebtTransaction.transaction_date >= since,
        )
        total = (await self.session.execute(stmt)).scalar_one_or_none()
        return to_money(total if total is not None else 0)

    async def get_last_payment_dates(self, customer_ids: Iterable[str]) -> Dict[str, datetime]:
        ids = list(set(customer_ids))
        if not ids:
            return {}
        stmt = (
            select(DebtTransaction.customer_id, func.max(DebtTransaction.transaction_date))
            .where(
                DebtTransaction.customer_id.in_(ids),
                DebtTransaction.transaction_type == TransactionType.PAYMENT,
            )
            .group_by(DebtTransaction.customer_id)
        )
        result = await self.session.execute(stmt)
        return {customer_id: last_date for customer_id, last_date in result.all()}
