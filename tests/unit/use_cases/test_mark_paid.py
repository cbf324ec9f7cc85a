"""Unit tests for MarkPaid use case"""

import pytest
from datetime import datetime
from decimal import Decimal

from src.app.use_cases.debts.dtos import MarkPaidCommandDTO
from src.app.use_cases.debts.mark_paid import FINAL_PAYMENT_NOTE, MarkPaid, final_payment_key
from src.domain.debt_tab import TabStatus
from src.domain.debt_transaction import DebtTransaction, TransactionType

CLOSE_DATE = datetime(2024, 1, 20, 17, 0)


@pytest.fixture
def use_case(mutation_deps):
    return MarkPaid(**mutation_deps)


def mark_paid_command(**overrides):
    data = dict(customer_id="cust_001", transaction_date=CLOSE_DATE)
    data.update(overrides)
    return MarkPaidCommandDTO(**data)


@pytest.mark.asyncio
class TestMarkPaid:
    async def test_records_exact_balance_and_closes(self, use_case, mock_tab_repo, mock_transaction_repo, make_tab):
        """
        Given: Open tab with balance 150.00
        When: Mark paid without a final payment
        Then: A PAYMENT of 150.00 is recorded and the tab is CLOSED at zero
        """
        mock_tab_repo.get_open_by_customer_id.return_value = make_tab("150.00")

        result = await use_case.execute(mark_paid_command())

        assert result.is_ok()
        assert result.value.transaction.transaction_type == "PAYMENT"
        assert result.value.transaction.amount == Decimal("150.00")
        assert result.value.transaction.notes == FINAL_PAYMENT_NOTE
        assert result.value.tab.status == "CLOSED"
        assert result.value.tab.total_balance == Decimal("0.00")
        assert result.value.tab.closed_at == CLOSE_DATE
        assert len(mock_transaction_repo.created) == 1

    async def test_exact_final_payment(self, use_case, mock_tab_repo, make_tab):
        mock_tab_repo.get_open_by_customer_id.return_value = make_tab("150.00")

        result = await use_case.execute(mark_paid_command(final_payment=Decimal("150.00")))

        assert result.is_ok()
        assert result.value.tab.status == "CLOSED"

    async def test_partial_final_payment_is_rejected(self, use_case, mock_tab_repo, mock_transaction_repo, make_tab):
        tab = make_tab("150.00")
        mock_tab_repo.get_open_by_customer_id.return_value = tab

        result = await use_case.execute(mark_paid_command(final_payment=Decimal("100.00")))

        assert result.is_err()
        assert result.error.code == "UNSETTLED_BALANCE"
        assert tab.status == TabStatus.OPEN
        assert mock_transaction_repo.created == []
        mock_tab_repo.compare_and_swap.assert_not_called()

    async def test_zero_balance_closes_without_payment(self, use_case, mock_tab_repo, mock_transaction_repo, make_tab):
        mock_tab_repo.get_open_by_customer_id.return_value = make_tab("0.00")

        result = await use_case.execute(mark_paid_command())

        assert result.is_ok()
        assert result.value.transaction is None
        assert result.value.tab.status == "CLOSED"
        assert mock_transaction_repo.created == []

    async def test_no_open_tab(self, use_case):
        result = await use_case.execute(mark_paid_command())

        assert result.is_err()
        assert result.error.code == "NO_OPEN_TAB"

    async def test_key_is_stored_on_tab_and_final_payment(self, use_case, mock_tab_repo, mock_transaction_repo, make_tab):
        mock_tab_repo.get_open_by_customer_id.return_value = make_tab("80.00")

        result = await use_case.execute(mark_paid_command(idempotency_key="close-42"))

        assert result.is_ok()
        assert mock_transaction_repo.created[0].idempotency_key == final_payment_key("close-42")
        _, kwargs = mock_tab_repo.compare_and_swap.call_args
        assert kwargs["close_idempotency_key"] == "close-42"
        assert kwargs["status"] == TabStatus.CLOSED

    async def test_replay_returns_closed_tab(self, use_case, mock_tab_repo, mock_transaction_repo, make_tab):
        closed = make_tab("0.00", status=TabStatus.CLOSED)
        closed.close_idempotency_key = "close-42"
        closed.closed_at = CLOSE_DATE
        mock_tab_repo.get_by_close_idempotency_key.return_value = closed
        mock_transaction_repo.get_by_idempotency_key.return_value = DebtTransaction(
            id=9, debt_tab_id=1, customer_id="cust_001", transaction_type=TransactionType.PAYMENT,
            transaction_date=CLOSE_DATE, amount=Decimal("80.00"), balance_before=Decimal("80.00"),
            balance_after=Decimal("0.00"), idempotency_key=final_payment_key("close-42"),
        )

        result = await use_case.execute(mark_paid_command(idempotency_key="close-42"))

        assert result.is_ok()
        assert result.value.replayed is True
        assert result.value.tab.status == "CLOSED"
        assert result.value.transaction.id == 9
        mock_tab_repo.get_open_by_customer_id.assert_not_called()
        mock_tab_repo.compare_and_swap.assert_not_called()
