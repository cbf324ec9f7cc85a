"""SQLAlchemy implementation of DebtTabRepository

Provides persistence for DebtTab snapshots with pessimistic locking on read
and a version compare-and-swap on write, so that two writers can never both
move the same balance.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.debt_tab_repository import DebtTabRepository
from src.domain.debt_tab import DebtTab, TabStatus
from src.domain.errors import ConcurrentModificationError


class SqlAlchemyDebtTabRepository(DebtTabRepository):
    """
    SQLAlchemy implementation of DebtTabRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE (ignored by SQLite)
    - Compare-and-swap snapshot writes on the version column
    - Partial unique index rejects a second OPEN tab per customer
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_open_by_customer_id(self, customer_id: str, for_update: bool = False) -> Optional[DebtTab]:
        """
        Retrieve the customer's OPEN tab with optional row-level locking

        Args:
            customer_id: Customer identifier
            for_update: If True, locks the row and reloads it from the database

        Returns:
            DebtTab if the customer has an open tab, None otherwise
        """
        stmt = select(DebtTab).where(
            DebtTab.customer_id == customer_id,
            DebtTab.status == TabStatus.OPEN,
        )

        if for_update:
            # Never trust a snapshot cached in the identity map before a write
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, tab_id: int) -> Optional[DebtTab]:
        stmt = select(DebtTab).where(DebtTab.id == tab_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_close_idempotency_key(self, idempotency_key: str) -> Optional[DebtTab]:
        stmt = select(DebtTab).where(DebtTab.close_idempotency_key == idempotency_key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_customer_id(self, customer_id: str) -> List[DebtTab]:
        stmt = (
            select(DebtTab)
            .where(DebtTab.customer_id == customer_id)
            .order_by(DebtTab.opened_at.desc(), DebtTab.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_open(self, with_balance_only: bool = False) -> List[DebtTab]:
        stmt = select(DebtTab).where(DebtTab.status == TabStatus.OPEN)
        if with_balance_only:
            stmt = stmt.where(DebtTab.total_balance > 0)
        stmt = stmt.order_by(DebtTab.opened_at, DebtTab.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all(self) -> List[DebtTab]:
        stmt = select(DebtTab).order_by(DebtTab.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, tab: DebtTab) -> DebtTab:
        """
        Create a new tab

        Raises:
            IntegrityError: If the customer already has an OPEN tab
        """
        self.session.add(tab)
        await self.session.flush()
        await self.session.refresh(tab)
        return tab

    async def compare_and_swap(
        self,
        tab: DebtTab,
        expected_version: int,
        total_balance: Decimal,
        status: Optional[TabStatus] = None,
        closed_at: Optional[datetime] = None,
        close_idempotency_key: Optional[str] = None,
    ) -> DebtTab:
        """
        Write a new snapshot only if the stored version is still expected_version

        Args:
            tab: Tab read by the caller (refreshed in place on success)
            expected_version: Version the caller validated against
            total_balance: New balance
            status: New status, if changing
            closed_at: Settlement timestamp, if closing
            close_idempotency_key: Key of the closing mark-paid request

        Raises:
            ConcurrentModificationError: If another writer got there first
        """
        values = {
            "total_balance": total_balance,
            "version": expected_version + 1,
            "updated_at": datetime.utcnow(),
        }
        if status is not None:
            values["status"] = status
        if closed_at is not None:
            values["closed_at"] = closed_at
        if close_idempotency_key is not None:
            values["close_idempotency_key"] = close_idempotency_key

        stmt = (
            update(DebtTab)
            .where(DebtTab.id == tab.id, DebtTab.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount != 1:
            raise ConcurrentModificationError(
                f"Tab {tab.id} was modified concurrently",
                reason=f"expected version {expected_version}",
            )

        await self.session.refresh(tab)
        return tab
