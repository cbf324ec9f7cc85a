"""Debt Tab Repository Interface

Defines the contract for the tab snapshot half of the ledger store.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from src.domain.debt_tab import DebtTab, TabStatus


class DebtTabRepository(ABC):
    """
    Repository interface for DebtTab persistence

    Snapshot writes are compare-and-swap on DebtTab.version so that a stale
    read can never overwrite a newer balance.
    """

    @abstractmethod
    async def get_open_by_customer_id(self, customer_id: str, for_update: bool = False) -> Optional[DebtTab]:
        """
        Retrieve the customer's OPEN tab

        Args:
            customer_id: Customer identifier
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            The open DebtTab, or None when the customer has no open tab
        """
        pass

    @abstractmethod
    async def get_by_id(self, tab_id: int) -> Optional[DebtTab]:
        pass

    @abstractmethod
    async def get_by_close_idempotency_key(self, idempotency_key: str) -> Optional[DebtTab]:
        """Retrieve the tab closed by a mark-paid request with this key"""
        pass

    @abstractmethod
    async def list_by_customer_id(self, customer_id: str) -> List[DebtTab]:
        """All tabs of a customer, newest first"""
        pass

    @abstractmethod
    async def list_open(self, with_balance_only: bool = False) -> List[DebtTab]:
        """
        All OPEN tabs

        Args:
            with_balance_only: If True, only tabs with total_balance > 0
        """
        pass

    @abstractmethod
    async def get_all(self) -> List[DebtTab]:
        pass

    @abstractmethod
    async def create(self, tab: DebtTab) -> DebtTab:
        """
        Insert a new tab

        Raises:
            IntegrityError: If the customer already has an OPEN tab
        """
        pass

    @abstractmethod
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
        Write a new tab snapshot if nobody else has since the tab was read

        Raises:
            ConcurrentModificationError: If the stored version != expected_version
        """
        pass
