"""Unit tests for CreateAdjustment use case"""

import pytest
from datetime import datetime
from decimal import Decimal

from src.app.use_cases.debts.create_adjustment import CreateAdjustment
from src.app.use_cases.debts.dtos import AdjustmentCommandDTO


@pytest.fixture
def use_case(mutation_deps):
    return CreateAdjustment(**mutation_deps)


def adjustment_command(amount, reason="goodwill", **overrides):
    data = dict(
        customer_id="cust_001",
        amount=Decimal(amount),
        reason=reason,
        transaction_date=datetime(2024, 1, 3, 10, 0),
    )
    data.update(overrides)
    return AdjustmentCommandDTO(**data)


@pytest.mark.asyncio
class TestCreateAdjustment:
    async def test_negative_adjustment_to_zero(self, use_case, mock_tab_repo, make_tab):
        mock_tab_repo.get_open_by_customer_id.return_value = make_tab("150.00")

        result = await use_case.execute(adjustment_command("-150.00"))

        assert result.is_ok()
        assert result.value.transaction.transaction_type == "ADJUSTMENT"
        assert result.value.transaction.amount == Decimal("-150.00")
        assert result.value.transaction.reason == "goodwill"
        assert result.value.tab.total_balance == Decimal("0.00")

    async def test_positive_adjustment(self, use_case, mock_tab_repo, make_tab):
        mock_tab_repo.get_open_by_customer_id.return_value = make_tab("150.00")

        result = await use_case.execute(adjustment_command("25.00", reason="  missed charge  "))

        assert result.is_ok()
        assert result.value.tab.total_balance == Decimal("175.00")
        assert result.value.transaction.reason == "missed charge"

    async def test_adjustment_below_zero(self, use_case, mock_tab_repo, mock_transaction_repo, make_tab):
        mock_tab_repo.get_open_by_customer_id.return_value = make_tab("100.00")

        result = await use_case.execute(adjustment_command("-120.00"))

        assert result.is_err()
        assert result.error.code == "NEGATIVE_BALANCE"
        assert mock_transaction_repo.created == []

    @pytest.mark.parametrize("reason", [None, "", "   "])
    async def test_missing_reason(self, use_case, mock_tab_repo, make_tab, reason):
        mock_tab_repo.get_open_by_customer_id.return_value = make_tab("100.00")

        result = await use_case.execute(adjustment_command("-10.00", reason=reason))

        assert result.is_err()
        assert result.error.code == "MISSING_REASON"

    async def test_no_open_tab(self, use_case):
        result = await use_case.execute(adjustment_command("-10.00"))

        assert result.is_err()
        assert result.error.code == "NO_OPEN_TAB"
