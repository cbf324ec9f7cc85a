"""Unit tests for MutationCoordinator"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from libs.result import Return
from src.app.services.mutation_coordinator import MutationCoordinator
from src.app.use_cases.debts.dtos import (
    AdjustmentCommandDTO,
    ChargeCommandDTO,
    MarkPaidCommandDTO,
    PaymentCommandDTO,
)


@pytest.fixture
def use_cases():
    mocks = {}
    with patch("src.app.services.mutation_coordinator.CreateCharge") as charge, \
            patch("src.app.services.mutation_coordinator.CreatePayment") as payment, \
            patch("src.app.services.mutation_coordinator.CreateAdjustment") as adjustment, \
            patch("src.app.services.mutation_coordinator.MarkPaid") as mark_paid:
        for name, cls in (("charge", charge), ("payment", payment), ("adjustment", adjustment), ("mark_paid", mark_paid)):
            instance = MagicMock()
            instance.execute = AsyncMock(return_value=Return.ok(name))
            cls.return_value = instance
            mocks[name] = instance
        yield mocks


@pytest.fixture
def coordinator(use_cases, mock_uow):
    return MutationCoordinator(mock_uow, MagicMock(), MagicMock(), MagicMock(), MagicMock())


@pytest.mark.asyncio
class TestMutationCoordinator:
    async def test_charge_builds_command(self, coordinator, use_cases):
        result = await coordinator.charge("cust_001", 10, Decimal("25.00"), notes="delivery", idempotency_key="k1")

        assert result.value == "charge"
        command = use_cases["charge"].execute.call_args.args[0]
        assert isinstance(command, ChargeCommandDTO)
        assert command.containers == 10
        assert command.unit_price == Decimal("25.00")
        assert command.idempotency_key == "k1"

    async def test_pay(self, coordinator, use_cases):
        await coordinator.pay("cust_001", Decimal("100.00"))

        command = use_cases["payment"].execute.call_args.args[0]
        assert isinstance(command, PaymentCommandDTO)
        assert command.amount == Decimal("100.00")

    async def test_adjust(self, coordinator, use_cases):
        await coordinator.adjust("cust_001", Decimal("-5.00"), "rounding")

        command = use_cases["adjustment"].execute.call_args.args[0]
        assert isinstance(command, AdjustmentCommandDTO)
        assert command.reason == "rounding"

    async def test_mark_paid(self, coordinator, use_cases):
        await coordinator.mark_paid("cust_001", final_payment=Decimal("150.00"))

        command = use_cases["mark_paid"].execute.call_args.args[0]
        assert isinstance(command, MarkPaidCommandDTO)
        assert command.final_payment == Decimal("150.00")
