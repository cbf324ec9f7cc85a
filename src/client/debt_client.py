"""Debt Ledger HTTP client

Async httpx client for the debt ledger API that keeps an optimistic view of
each customer's balance:

- while mutations are in flight, ``balance()`` reports the confirmed balance
  with every in-flight projection applied in send order
- on success the server's tab balance becomes the confirmed balance, unless a
  newer tab snapshot was already confirmed
- on any failure only that mutation's projection is discarded

Snapshots are ordered by ``(tab id, tab version)``, so a response that arrives
late never overwrites a newer confirmed balance. The server is always
authoritative; the client never retries on its own.
"""

import itertools
import logging
import uuid
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class LedgerClientError(Exception):
    """Error returned by the ledger API (or a transport failure)"""

    def __init__(self, code: str, message: str, retryable: bool = False, status_code: Optional[int] = None):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.retryable = retryable
        self.status_code = status_code


class DebtLedgerClient:
    """
    Client for /debts endpoints with optimistic balance tracking

    Usage:
        client = DebtLedgerClient("http://localhost:8000")
        await client.refresh("cust_001")
        await client.pay("cust_001", Decimal("100.00"))
        client.balance("cust_001")
    """

    def __init__(
        self,
        base_url: str,
        api_prefix: str = "/api",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Root URL of the ledger service
            api_prefix: Prefix the debts router is mounted under
            timeout: Request timeout in seconds
            transport: Optional httpx transport (ASGI app, mock)
        """
        self.base_url = base_url
        self.api_prefix = api_prefix.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._confirmed: Dict[str, Decimal] = {}
        self._confirmed_at: Dict[str, Tuple[int, int]] = {}
        self._in_flight: Dict[str, Dict[int, Callable[[Decimal], Decimal]]] = {}
        self._tokens = itertools.count(1)

    def balance(self, customer_id: str) -> Optional[Decimal]:
        """Confirmed balance with the projections of in-flight mutations applied"""
        balance = self._confirmed.get(customer_id)
        if balance is None:
            return None
        for project in self._in_flight.get(customer_id, {}).values():
            balance = project(balance)
        return balance

    def confirmed_balance(self, customer_id: str) -> Optional[Decimal]:
        return self._confirmed.get(customer_id)

    def is_pending(self, customer_id: str) -> bool:
        return bool(self._in_flight.get(customer_id))

    async def refresh(self, customer_id: str) -> Dict[str, Any]:
        """Load the customer's current tab and confirm its balance"""
        data = await self._request("GET", f"/debts/customer/{customer_id}")
        tab = data.get("tab")
        if tab:
            self._confirm(customer_id, tab)
        else:
            # No open tab; the last snapshot key still orders later responses
            self._confirmed[customer_id] = ZERO
        return data

    async def charge(
        self,
        customer_id: str,
        containers: int,
        unit_price: Decimal,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "customer_id": customer_id,
            "containers": containers,
            "unit_price": str(unit_price),
            "notes": notes,
        }
        return await self._mutate("/debts/charge", payload, idempotency_key,
                                  lambda balance: balance + Decimal(containers) * Decimal(unit_price))

    async def pay(
        self,
        customer_id: str,
        amount: Decimal,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {"customer_id": customer_id, "amount": str(amount), "notes": notes}
        return await self._mutate("/debts/payment", payload, idempotency_key,
                                  lambda balance: balance - Decimal(amount))

    async def adjust(
        self,
        customer_id: str,
        amount: Decimal,
        reason: str,
        notes: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {"customer_id": customer_id, "amount": str(amount), "reason": reason, "notes": notes}
        return await self._mutate("/debts/adjustment", payload, idempotency_key,
                                  lambda balance: balance + Decimal(amount))

    async def mark_paid(
        self,
        customer_id: str,
        final_payment: Optional[Decimal] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = {
            "customer_id": customer_id,
            "final_payment": str(final_payment) if final_payment is not None else None,
        }
        return await self._mutate("/debts/mark-paid", payload, idempotency_key, lambda balance: ZERO)

    async def _mutate(self, path: str, payload: Dict[str, Any], idempotency_key: Optional[str], project) -> Dict[str, Any]:
        customer_id = payload["customer_id"]
        payload["idempotency_key"] = idempotency_key or str(uuid.uuid4())

        token = next(self._tokens)
        in_flight = self._in_flight.setdefault(customer_id, {})
        in_flight[token] = project

        try:
            data = await self._request("POST", path, json=payload)
        except LedgerClientError as e:
            logger.info(f"Discarded optimistic update of customer {customer_id}: {e.code}")
            raise
        finally:
            in_flight.pop(token, None)
            if not in_flight and self._in_flight.get(customer_id) is in_flight:
                del self._in_flight[customer_id]

        self._confirm(customer_id, data["tab"])
        return data

    def _confirm(self, customer_id: str, tab: Dict[str, Any]) -> None:
        """Confirm a tab snapshot unless a newer one is already confirmed"""
        key = (int(tab["id"]), int(tab.get("version", 0)))
        current = self._confirmed_at.get(customer_id)
        if current is not None and key < current:
            logger.debug(f"Ignored stale snapshot {key} of customer {customer_id}; confirmed {current}")
            return
        self._confirmed_at[customer_id] = key
        self._confirmed[customer_id] = Decimal(str(tab["total_balance"]))

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.api_prefix}{path}"
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Ledger request {method} {url} failed: {e}")
            raise LedgerClientError("NETWORK_ERROR", str(e), retryable=True) from e

        if response.is_success:
            return response.json()

        raise self._error_from(response)

    @staticmethod
    def _error_from(response: httpx.Response) -> LedgerClientError:
        try:
            body = response.json()
        except ValueError:
            body = {}

        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return LedgerClientError(
                code=error.get("code", "UNKNOWN_ERROR"),
                message=error.get("message", response.text),
                retryable=bool(error.get("retryable", False)),
                status_code=response.status_code,
            )
        if response.status_code == 422:
            return LedgerClientError("VALIDATION_ERROR", response.text, status_code=422)
        return LedgerClientError(
            "HTTP_ERROR",
            response.text,
            retryable=response.status_code >= 500,
            status_code=response.status_code,
        )
