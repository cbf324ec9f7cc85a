"""Integration tests for the tab lifecycle on a real database

Walks one customer through charge, payment, rejected overpayment,
adjustment, settlement and a fresh tab, checking the ledger invariants
after every step.
"""

import pytest
from datetime import datetime
from decimal import Decimal
from sqlmodel import select

from src.adapter.repositories import (
    SqlAlchemyCustomerRepository,
    SqlAlchemyDebtTabRepository,
    SqlAlchemyDebtTransactionRepository,
)
from src.app.use_cases.debts import GetCustomerDebt, ReconcileLedger
from src.domain.balance_calculator import running_balances
from src.domain.debt_tab import DebtTab, TabStatus


async def assert_ledger_consistent(session_factory):
    """Every tab balance equals the replay of its transactions"""
    async with session_factory() as session:
        result = await ReconcileLedger(
            SqlAlchemyDebtTabRepository(session), SqlAlchemyDebtTransactionRepository(session)
        ).execute()
    assert result.is_ok()
    assert result.value.discrepancies == []


async def read_debt(session_factory, customer_id="cust_001"):
    async with session_factory() as session:
        result = await GetCustomerDebt(
            SqlAlchemyCustomerRepository(session),
            SqlAlchemyDebtTabRepository(session),
            SqlAlchemyDebtTransactionRepository(session),
        ).execute(customer_id)
    assert result.is_ok()
    return result.value


@pytest.mark.asyncio
class TestTabLifecycleScenario:
    async def test_full_lifecycle(self, customers, coordinate, session_factory):
        # 1. First charge opens a tab
        result = await coordinate(lambda c: c.charge(
            "cust_001", 10, Decimal("25.00"), transaction_date=datetime(2024, 1, 1, 8, 0)
        ))
        assert result.is_ok()
        first_tab_id = result.value.tab.id
        assert result.value.tab.total_balance == Decimal("250.00")
        assert (await read_debt(session_factory)).tab.total_balance == Decimal("250.00")

        # 2. Payment
        result = await coordinate(lambda c: c.pay(
            "cust_001", Decimal("100.00"), transaction_date=datetime(2024, 1, 2, 9, 0)
        ))
        assert result.is_ok()
        assert result.value.transaction.balance_after == Decimal("150.00")
        assert (await read_debt(session_factory)).tab.total_balance == Decimal("150.00")

        # 3. Overpayment is rejected and nothing changes
        result = await coordinate(lambda c: c.pay(
            "cust_001", Decimal("200.00"), transaction_date=datetime(2024, 1, 3, 9, 0)
        ))
        assert result.is_err()
        assert result.error.code == "OVERPAYMENT"
        debt = await read_debt(session_factory)
        assert debt.tab.total_balance == Decimal("150.00")
        assert len(debt.transactions) == 2

        # 4. Goodwill adjustment brings the balance to zero
        result = await coordinate(lambda c: c.adjust(
            "cust_001", Decimal("-150.00"), "goodwill", transaction_date=datetime(2024, 1, 4, 10, 0)
        ))
        assert result.is_ok()
        assert result.value.tab.total_balance == Decimal("0.00")

        # 5. Mark paid closes the tab, the next charge starts a new one
        result = await coordinate(lambda c: c.mark_paid("cust_001", transaction_date=datetime(2024, 1, 5, 17, 0)))
        assert result.is_ok()
        assert result.value.transaction is None
        assert result.value.tab.status == "CLOSED"
        assert result.value.tab.closed_at == datetime(2024, 1, 5, 17, 0)

        result = await coordinate(lambda c: c.charge(
            "cust_001", 2, Decimal("25.00"), transaction_date=datetime(2024, 1, 8, 8, 0)
        ))
        assert result.is_ok()
        assert result.value.tab.id != first_tab_id
        assert result.value.tab.total_balance == Decimal("50.00")
        assert result.value.transaction.balance_before == Decimal("0.00")

        debt = await read_debt(session_factory)
        assert debt.tab.id == result.value.tab.id
        assert [t.transaction_type for t in debt.transactions] == ["CHARGE"]

        await assert_ledger_consistent(session_factory)

    async def test_balance_after_chain(self, customers, coordinate, session_factory):
        await coordinate(lambda c: c.charge("cust_001", 4, Decimal("30.00"), transaction_date=datetime(2024, 3, 1)))
        await coordinate(lambda c: c.pay("cust_001", Decimal("20.00"), transaction_date=datetime(2024, 3, 1)))
        await coordinate(lambda c: c.adjust("cust_001", Decimal("5.50"), "delivery fee", transaction_date=datetime(2024, 3, 2)))
        await coordinate(lambda c: c.charge("cust_001", 1, Decimal("30.00"), transaction_date=datetime(2024, 3, 3)))

        debt = await read_debt(session_factory)

        async with session_factory() as session:
            rows = await SqlAlchemyDebtTransactionRepository(session).list_by_tab_ids([debt.tab.id])
        assert [row.balance_after for row in rows] == running_balances(row.to_entry() for row in rows)
        for previous, current in zip(debt.transactions, debt.transactions[1:]):
            assert current.balance_before == previous.balance_after
        assert debt.tab.total_balance == Decimal("135.50")

    async def test_mark_paid_with_outstanding_balance_records_final_payment(
        self, customers, coordinate, session_factory, db_session
    ):
        await coordinate(lambda c: c.charge("cust_001", 3, Decimal("25.00")))

        result = await coordinate(lambda c: c.mark_paid("cust_001", idempotency_key="close-1"))
        replay = await coordinate(lambda c: c.mark_paid("cust_001", idempotency_key="close-1"))

        assert result.is_ok()
        assert result.value.transaction.amount == Decimal("75.00")
        assert result.value.tab.status == "CLOSED"
        assert replay.is_ok()
        assert replay.value.replayed is True
        assert replay.value.transaction.id == result.value.transaction.id

        tabs = (await db_session.execute(select(DebtTab).where(DebtTab.customer_id == "cust_001"))).scalars().all()
        assert len(tabs) == 1
        assert tabs[0].status == TabStatus.CLOSED
        assert tabs[0].total_balance == Decimal("0.00")

        await assert_ledger_consistent(session_factory)

    async def test_unsettling_final_payment_keeps_tab_open(self, customers, coordinate, session_factory):
        await coordinate(lambda c: c.charge("cust_001", 6, Decimal("25.00")))

        result = await coordinate(lambda c: c.mark_paid("cust_001", final_payment=Decimal("100.00")))

        assert result.is_err()
        assert result.error.code == "UNSETTLED_BALANCE"
        debt = await read_debt(session_factory)
        assert debt.tab.status == "OPEN"
        assert debt.tab.total_balance == Decimal("150.00")
        assert len(debt.transactions) == 1

    async def test_duplicate_charge_with_same_key_is_applied_once(self, customers, coordinate, session_factory):
        first = await coordinate(lambda c: c.charge("cust_001", 10, Decimal("25.00"), idempotency_key="charge-1"))
        second = await coordinate(lambda c: c.charge("cust_001", 10, Decimal("25.00"), idempotency_key="charge-1"))

        assert first.is_ok() and second.is_ok()
        assert second.value.replayed is True
        debt = await read_debt(session_factory)
        assert debt.tab.total_balance == Decimal("250.00")
        assert len(debt.transactions) == 1

    async def test_mutations_without_open_tab(self, customers, coordinate):
        for call in (
            lambda c: c.pay("cust_002", Decimal("1.00")),
            lambda c: c.adjust("cust_002", Decimal("-1.00"), "fix"),
            lambda c: c.mark_paid("cust_002"),
        ):
            result = await coordinate(call)
            assert result.is_err()
            assert result.error.code == "NO_OPEN_TAB"
