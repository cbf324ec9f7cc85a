"""Debt Transaction Repository Interface

Defines the contract for the append-only half of the ledger store.
There are deliberately no update or delete operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from src.domain.debt_tab import TabStatus
from src.domain.debt_transaction import DebtTransaction, TransactionType


class DebtTransactionRepository(ABC):
    """
    Repository interface for DebtTransaction persistence

    Ledger order within a tab is (transaction_date, id).
    Idempotency is enforced via unique idempotency_key.
    """

    @abstractmethod
    async def create(self, transaction: DebtTransaction) -> DebtTransaction:
        """
        Append a transaction

        Raises:
            IntegrityError: If idempotency_key already exists
        """
        pass

    @abstractmethod
    async def get_by_id(self, transaction_id: int) -> Optional[DebtTransaction]:
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[DebtTransaction]:
        pass

    @abstractmethod
    async def get_last_for_tab(self, tab_id: int) -> Optional[DebtTransaction]:
        """Latest transaction of a tab in ledger order"""
        pass

    @abstractmethod
    async def list_by_tab_ids(self, tab_ids: Iterable[int]) -> List[DebtTransaction]:
        """Transactions of the given tabs, grouped by tab and in ledger order"""
        pass

    @abstractmethod
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

        Returns:
            Tuple of (page of transactions, total matching count)
        """
        pass

    @abstractmethod
    async def sum_amount_since(self, transaction_type: TransactionType, since: datetime) -> Decimal:
        """Sum of stored amounts of one type dated on or after ``since``"""
        pass

    @abstractmethod
    async def get_last_payment_dates(self, customer_ids: Iterable[str]) -> Dict[str, datetime]:
        """Latest PAYMENT date per customer (customers without payments are omitted)"""
        pass
