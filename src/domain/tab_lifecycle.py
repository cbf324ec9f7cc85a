"""Tab Lifecycle Manager

State machine per customer:

    NO_TAB --charge--> OPEN
    OPEN   --charge/payment/adjustment--> OPEN
    OPEN   --mark paid--> CLOSED      (balance must be zero)
    CLOSED --charge--> OPEN           (new tab instance)

CLOSED is terminal for a tab instance; closed tabs are never reopened.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from src.domain.balance_calculator import ZERO, is_zero, to_money, validate_payment
from src.domain.debt_tab import DebtTab, TabStatus
from src.domain.errors import NoOpenTabError, UnsettledBalanceError


class TabState(str, Enum):
    NO_TAB = "NO_TAB"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class TabLifecycleManager:
    """Owns the transitions between open and closed tabs"""

    @staticmethod
    def state_of(tab: Optional[DebtTab]) -> TabState:
        if tab is None:
            return TabState.NO_TAB
        return TabState(TabStatus(tab.status).value)

    @staticmethod
    def open_tab(customer_id: str, opened_at: datetime) -> DebtTab:
        """New OPEN tab with a zero balance; the opening charge is applied by the caller"""
        return DebtTab(
            customer_id=customer_id,
            status=TabStatus.OPEN,
            total_balance=ZERO,
            version=1,
            opened_at=opened_at,
            updated_at=datetime.utcnow(),
        )

    @staticmethod
    def require_open(tab: Optional[DebtTab], customer_id: str) -> DebtTab:
        if tab is None or TabStatus(tab.status) is not TabStatus.OPEN:
            raise NoOpenTabError(
                f"Customer {customer_id} has no open tab",
                reason="Record a charge to open a new tab",
            )
        return tab

    @staticmethod
    def settlement_amount(tab: DebtTab, final_payment: Optional[Decimal] = None) -> Optional[Decimal]:
        """
        Payment to record before closing, or None when nothing is owed

        A caller-supplied final payment must pass the normal payment rule and
        must settle the tab exactly.
        """
        balance = to_money(tab.total_balance)
        if final_payment is None:
            return None if is_zero(balance) else balance

        validate_payment(balance, final_payment)
        remainder = balance - to_money(final_payment)
        if not is_zero(remainder):
            raise UnsettledBalanceError(
                f"Final payment of {to_money(final_payment)} leaves {remainder} outstanding",
                reason=f"balance={balance}, final_payment={to_money(final_payment)}",
            )
        return to_money(final_payment)

    @staticmethod
    def can_close(tab: DebtTab) -> bool:
        return TabStatus(tab.status) is TabStatus.OPEN and is_zero(to_money(tab.total_balance))
