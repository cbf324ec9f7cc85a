"""Integration tests for Debt Ledger API endpoints"""

import asyncio
import pytest
from decimal import Decimal
from httpx import AsyncClient

BASE = "/api/debts"


async def post_charge(client: AsyncClient, customer_id="cust_001", containers=10, unit_price="25.00", **extra):
    payload = {"customer_id": customer_id, "containers": containers, "unit_price": unit_price, **extra}
    return await client.post(f"{BASE}/charge", json=payload)


class TestDebtMutationsAPI:
    """Mutation endpoints"""

    @pytest.mark.asyncio
    async def test_charge_opens_tab(self, client: AsyncClient, customers):
        """POST /charge on a customer without a tab returns 200 and a new OPEN tab"""
        response = await post_charge(client, transaction_date="2024-01-01T08:00:00Z", idempotency_key="c-1")

        assert response.status_code == 200
        data = response.json()
        assert data["transaction"]["transaction_type"] == "CHARGE"
        assert data["transaction"]["containers"] == 10
        assert Decimal(data["transaction"]["amount"]) == Decimal("250.00")
        assert Decimal(data["transaction"]["balance_before"]) == Decimal("0.00")
        assert Decimal(data["transaction"]["balance_after"]) == Decimal("250.00")
        assert data["tab"]["status"] == "OPEN"
        assert Decimal(data["tab"]["total_balance"]) == Decimal("250.00")
        assert data["replayed"] is False

    @pytest.mark.asyncio
    async def test_payment_and_overpayment(self, client: AsyncClient, customers):
        """POST /payment reduces the balance; paying more than owed returns 409"""
        charged = await post_charge(client)

        ok = await client.post(f"{BASE}/payment", json={"customer_id": "cust_001", "amount": "100.00"})
        rejected = await client.post(f"{BASE}/payment", json={"customer_id": "cust_001", "amount": "200.00"})

        assert ok.status_code == 200
        assert Decimal(ok.json()["tab"]["total_balance"]) == Decimal("150.00")
        assert ok.json()["tab"]["version"] == charged.json()["tab"]["version"] + 1
        assert rejected.status_code == 409
        error = rejected.json()["error"]
        assert error["code"] == "OVERPAYMENT"
        assert error["retryable"] is False

        debt = await client.get(f"{BASE}/customer/cust_001")
        assert Decimal(debt.json()["tab"]["total_balance"]) == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_adjustment_requires_reason(self, client: AsyncClient, customers):
        """POST /adjustment without a reason returns 400 MISSING_REASON"""
        await post_charge(client)

        response = await client.post(f"{BASE}/adjustment", json={"customer_id": "cust_001", "amount": "-10.00"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_REASON"

    @pytest.mark.asyncio
    async def test_adjustment_below_zero_returns_409(self, client: AsyncClient, customers):
        await post_charge(client)

        response = await client.post(
            f"{BASE}/adjustment",
            json={"customer_id": "cust_001", "amount": "-300.00", "reason": "write-off"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "NEGATIVE_BALANCE"

    @pytest.mark.asyncio
    async def test_goodwill_adjustment_then_mark_paid(self, client: AsyncClient, customers):
        """Adjusting to zero and marking paid closes the tab; next charge opens a new one"""
        first = await post_charge(client)
        adjust = await client.post(
            f"{BASE}/adjustment",
            json={"customer_id": "cust_001", "amount": "-250.00", "reason": "goodwill"},
        )
        close = await client.post(f"{BASE}/mark-paid", json={"customer_id": "cust_001"})
        after_close = await client.get(f"{BASE}/customer/cust_001")
        second = await post_charge(client, containers=1)

        assert adjust.status_code == 200
        assert Decimal(adjust.json()["transaction"]["amount"]) == Decimal("-250.00")
        assert close.status_code == 200
        assert close.json()["transaction"] is None
        assert close.json()["tab"]["status"] == "CLOSED"
        assert after_close.json()["tab"] is None
        assert second.json()["tab"]["id"] != first.json()["tab"]["id"]
        assert Decimal(second.json()["tab"]["total_balance"]) == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_mark_paid_with_partial_final_payment_returns_400(self, client: AsyncClient, customers):
        await post_charge(client)

        response = await client.post(
            f"{BASE}/mark-paid", json={"customer_id": "cust_001", "final_payment": "100.00"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "UNSETTLED_BALANCE"

    @pytest.mark.asyncio
    async def test_payment_without_open_tab_returns_409(self, client: AsyncClient, customers):
        response = await client.post(f"{BASE}/payment", json={"customer_id": "cust_002", "amount": "5.00"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "NO_OPEN_TAB"

    @pytest.mark.asyncio
    async def test_unknown_customer_returns_404(self, client: AsyncClient, customers):
        response = await post_charge(client, customer_id="cust_404")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CUSTOMER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_invalid_charge_returns_400(self, client: AsyncClient, customers):
        response = await post_charge(client, containers=0)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("unit_price", ["1e30", "1234567890123456.78"])
    async def test_out_of_range_unit_price_returns_400(self, client: AsyncClient, customers, unit_price):
        response = await post_charge(client, containers=1, unit_price=unit_price)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        debt = await client.get(f"{BASE}/customer/cust_001")
        assert debt.json()["tab"] is None

    @pytest.mark.asyncio
    async def test_charge_total_beyond_maximum_returns_400(self, client: AsyncClient, customers):
        response = await post_charge(client, containers=2, unit_price="999999999999.99")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_largest_charge_is_stored_exactly(self, client: AsyncClient, customers):
        response = await post_charge(client, containers=1, unit_price="999999999999.99")

        assert response.status_code == 200
        debt = await client.get(f"{BASE}/customer/cust_001")
        assert Decimal(debt.json()["tab"]["total_balance"]) == Decimal("999999999999.99")
        history = await client.get(f"{BASE}/transactions", params={"customer_id": "cust_001"})
        assert Decimal(history.json()["transactions"][0]["balance_after"]) == Decimal("999999999999.99")

    @pytest.mark.asyncio
    async def test_malformed_body_returns_422(self, client: AsyncClient, customers):
        response = await client.post(f"{BASE}/payment", json={"customer_id": "cust_001", "amount": "lots"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_idempotent_retry_returns_original(self, client: AsyncClient, customers):
        first = await post_charge(client, idempotency_key="retry-1")
        second = await post_charge(client, idempotency_key="retry-1")

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["replayed"] is True
        assert second.json()["transaction"]["id"] == first.json()["transaction"]["id"]
        assert Decimal(second.json()["tab"]["total_balance"]) == Decimal("250.00")

    @pytest.mark.asyncio
    async def test_concurrent_payments_never_overdraw(self, client: AsyncClient, customers):
        await post_charge(client, containers=6)

        responses = await asyncio.gather(
            client.post(f"{BASE}/payment", json={"customer_id": "cust_001", "amount": "100.00"}),
            client.post(f"{BASE}/payment", json={"customer_id": "cust_001", "amount": "100.00"}),
        )

        codes = sorted(r.status_code for r in responses)
        assert codes == [200, 409]
        rejected = next(r for r in responses if r.status_code == 409)
        assert rejected.json()["error"]["code"] in ("OVERPAYMENT", "CONCURRENT_MODIFICATION")
        debt = await client.get(f"{BASE}/customer/cust_001")
        assert Decimal(debt.json()["tab"]["total_balance"]) == Decimal("50.00")


class TestDebtQueriesAPI:
    """Read endpoints"""

    @pytest.mark.asyncio
    async def test_customer_history_lists_closed_and_open_tabs(self, client: AsyncClient, customers):
        await post_charge(client, containers=2, transaction_date="2024-01-01T08:00:00")
        await client.post(
            f"{BASE}/mark-paid", json={"customer_id": "cust_001", "transaction_date": "2024-01-05T08:00:00"}
        )
        await post_charge(client, containers=1, transaction_date="2024-02-01T08:00:00")

        response = await client.get(f"{BASE}/customer/cust_001/history")

        assert response.status_code == 200
        data = response.json()
        assert [tab["status"] for tab in data["tabs"]] == ["OPEN", "CLOSED"]
        assert len(data["transactions"]) == 3

    @pytest.mark.asyncio
    async def test_customer_debt_unknown_customer(self, client: AsyncClient, customers):
        response = await client.get(f"{BASE}/customer/nobody")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_transactions_with_filters(self, client: AsyncClient, customers):
        await post_charge(client)
        await client.post(f"{BASE}/payment", json={"customer_id": "cust_001", "amount": "50.00"})
        await post_charge(client, customer_id="cust_002", containers=1)

        everything = await client.get(f"{BASE}/transactions")
        payments = await client.get(f"{BASE}/transactions", params={"transaction_type": "PAYMENT"})
        santos = await client.get(f"{BASE}/transactions", params={"customer_id": "cust_002"})
        paged = await client.get(f"{BASE}/transactions", params={"limit": 2, "page": 2})

        assert everything.json()["pagination"]["total"] == 3
        assert [t["transaction_type"] for t in payments.json()["transactions"]] == ["PAYMENT"]
        assert [t["customer_id"] for t in santos.json()["transactions"]] == ["cust_002"]
        assert len(paged.json()["transactions"]) == 1
        assert paged.json()["pagination"]["total_pages"] == 2

    @pytest.mark.asyncio
    async def test_aging_report(self, client: AsyncClient, customers):
        await post_charge(client, transaction_date="2024-01-01T08:00:00")
        await client.post(
            f"{BASE}/payment",
            json={"customer_id": "cust_001", "amount": "100.00", "transaction_date": "2024-01-02T09:00:00"},
        )

        response = await client.get(f"{BASE}/aging", params={"as_of": "2024-02-15T00:00:00"})

        assert response.status_code == 200
        data = response.json()
        assert len(data["customers"]) == 1
        row = data["customers"][0]
        assert row["collection_status"] == "OVERDUE"
        assert Decimal(row["days_31_to_60"]) == Decimal("150.00")
        assert Decimal(row["current"]) == Decimal("0.00")
        assert row["last_payment_date"].startswith("2024-01-02")
        assert Decimal(data["summary"]["total_outstanding"]) == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_summary_and_metrics(self, client: AsyncClient, customers):
        await post_charge(client, transaction_date="2024-03-01T08:00:00")
        await post_charge(client, customer_id="cust_002", containers=6, transaction_date="2024-03-01T08:00:00")
        await client.post(
            f"{BASE}/payment",
            json={"customer_id": "cust_001", "amount": "50.00", "transaction_date": "2024-03-05T08:00:00"},
        )

        summary = await client.get(f"{BASE}/summary", params={"as_of": "2024-03-06T00:00:00"})
        metrics = await client.get(f"{BASE}/metrics", params={"as_of": "2024-03-06T00:00:00"})

        assert summary.status_code == 200
        items = {item["customer_id"]: item for item in summary.json()["items"]}
        assert Decimal(summary.json()["total_outstanding"]) == Decimal("350.00")
        assert items["cust_002"]["over_credit_limit"] is True
        assert items["cust_001"]["over_credit_limit"] is False

        assert metrics.status_code == 200
        data = metrics.json()
        assert Decimal(data["total_outstanding"]) == Decimal("350.00")
        assert data["active_debtors"] == 2
        assert Decimal(data["weekly_payment_amount"]) == Decimal("50.00")
        assert data["collection_status_counts"]["ACTIVE"] == 2

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
