import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.app.services.customer_locks import CustomerLockRegistry
from src.domain.customer import Customer
from src.domain.debt_tab import DebtTab, TabStatus


@pytest.fixture
def customer():
    return Customer(
        id="cust_001",
        name="Dela Cruz Store",
        location="BANAI",
        credit_limit=Decimal("1000.00"),
        created_at=datetime(2023, 12, 1),
    )


@pytest.fixture
def make_tab():
    """Factory for tabs in a given state"""
    def _make(balance="250.00", status=TabStatus.OPEN, tab_id=1, customer_id="cust_001",
              version=2, opened_at=datetime(2024, 1, 1, 8, 0)):
        return DebtTab(
            id=tab_id,
            customer_id=customer_id,
            status=status,
            total_balance=Decimal(balance),
            version=version,
            opened_at=opened_at,
            updated_at=opened_at,
        )
    return _make


@pytest.fixture
def mock_customer_repo(customer):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(side_effect=lambda customer_id: customer if customer_id == customer.id else None)
    repo.get_by_ids = AsyncMock(return_value={customer.id: customer})
    return repo


@pytest.fixture
def mock_tab_repo():
    """Tab repository whose writes behave like the real compare-and-swap"""
    repo = MagicMock()
    repo.get_open_by_customer_id = AsyncMock(return_value=None)
    repo.get_by_id = AsyncMock(return_value=None)
    repo.get_by_close_idempotency_key = AsyncMock(return_value=None)
    repo.list_by_customer_id = AsyncMock(return_value=[])
    repo.list_open = AsyncMock(return_value=[])
    repo.get_all = AsyncMock(return_value=[])

    def create(tab):
        tab.id = 1
        return tab

    def compare_and_swap(tab, expected_version, total_balance, status=None, closed_at=None,
                         close_idempotency_key=None):
        tab.total_balance = total_balance
        tab.version = expected_version + 1
        if status is not None:
            tab.status = status
        if closed_at is not None:
            tab.closed_at = closed_at
        if close_idempotency_key is not None:
            tab.close_idempotency_key = close_idempotency_key
        return tab

    repo.create = AsyncMock(side_effect=create)
    repo.compare_and_swap = AsyncMock(side_effect=compare_and_swap)
    return repo


@pytest.fixture
def mock_transaction_repo():
    """Transaction repository that records appended rows in ``repo.created``"""
    repo = MagicMock()
    repo.created = []
    repo.get_by_idempotency_key = AsyncMock(return_value=None)
    repo.get_last_for_tab = AsyncMock(return_value=None)
    repo.list_by_tab_ids = AsyncMock(return_value=[])
    repo.get_last_payment_dates = AsyncMock(return_value={})
    repo.sum_amount_since = AsyncMock(return_value=Decimal("0.00"))

    def create(transaction):
        transaction.id = len(repo.created) + 1
        repo.created.append(transaction)
        return transaction

    repo.create = AsyncMock(side_effect=create)
    return repo


@pytest.fixture
def locks():
    return CustomerLockRegistry(timeout_seconds=1.0)


@pytest.fixture
def mutation_deps(mock_uow, mock_customer_repo, mock_tab_repo, mock_transaction_repo, locks):
    return dict(
        uow=mock_uow,
        customer_repo=mock_customer_repo,
        tab_repo=mock_tab_repo,
        transaction_repo=mock_transaction_repo,
        locks=locks,
    )
