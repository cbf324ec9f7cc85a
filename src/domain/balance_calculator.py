"""Balance Calculator

Pure functions turning ledger entries into signed balance contributions and
validating a proposed entry against the current tab balance. Nothing here
reads state beyond the balance it is given.

Sign convention:
- CHARGE: +containers * unit_price
- PAYMENT: -amount
- ADJUSTMENT: +amount (negative amounts reduce the balance)
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

from src.domain.errors import (
    MissingReasonError,
    NegativeBalanceError,
    OverpaymentError,
    ValidationError,
)
from src.domain.ledger_entry import Adjustment, Charge, Payment

MONEY_QUANTUM = Decimal("0.01")
BALANCE_EPSILON = Decimal("0.001")
ZERO = Decimal("0.00")

# Largest amount or balance every supported store keeps exactly
# (SQLite persists NUMERIC columns as 8-byte floats)
MAX_AMOUNT = Decimal("999999999999.99")


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """
    Quantize an amount to currency precision

    Raises:
        ValidationError: If the value is not a finite number representable in cents
    """
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValidationError(f"Invalid amount: {value}", reason=f"value={value}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value}", reason=f"value={value}")
    return amount


def to_amount(value: Union[Decimal, int, float, str], field: str = "amount") -> Decimal:
    """Money value accepted on input: quantized and within MAX_AMOUNT"""
    amount = to_money(value)
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(
            f"{field} is out of range (maximum {MAX_AMOUNT})",
            reason=f"{field}={value}",
        )
    return amount


def is_zero(amount: Decimal) -> bool:
    return abs(amount) < BALANCE_EPSILON


def signed_amount(entry) -> Decimal:
    """
    Signed effect of an entry on the tab balance, without validation

    Used to replay stored history, which was validated when it was written.
    """
    if isinstance(entry, Charge):
        return to_money(entry.containers * to_money(entry.unit_price))
    if isinstance(entry, Payment):
        return -to_money(entry.amount)
    if isinstance(entry, Adjustment):
        return to_money(entry.amount)
    raise TypeError(f"Unsupported ledger entry: {type(entry).__name__}")


def validate_charge(balance: Decimal, containers: int, unit_price: Decimal) -> Decimal:
    """Validate a charge and return its contribution"""
    if isinstance(containers, bool) or not isinstance(containers, int) or containers <= 0:
        raise ValidationError(
            "Containers must be a whole number greater than 0",
            reason=f"containers={containers}",
        )
    unit_price = to_amount(unit_price, "unit_price")
    if unit_price < ZERO:
        raise ValidationError(
            "Unit price cannot be negative",
            reason=f"unit_price={unit_price}",
        )
    total = to_amount(containers * unit_price, "charge amount")
    to_amount(to_money(balance) + total, "balance")
    return total


def validate_payment(balance: Decimal, amount: Decimal) -> Decimal:
    """Validate a payment and return its (negative) contribution"""
    amount = to_amount(amount)
    if amount <= ZERO:
        raise ValidationError(
            "Payment amount must be greater than 0",
            reason=f"amount={amount}",
        )
    if amount > to_money(balance) + BALANCE_EPSILON:
        raise OverpaymentError(
            f"Overpayment is not allowed. Payment: {amount}, Outstanding: {to_money(balance)}",
            reason=f"balance={to_money(balance)}, amount={amount}",
        )
    return -amount


def validate_adjustment(balance: Decimal, amount: Decimal, reason: Optional[str]) -> Decimal:
    """Validate an adjustment and return its contribution"""
    amount = to_amount(amount)
    if is_zero(amount):
        raise ValidationError(
            "Adjustment amount must be non-zero",
            reason=f"amount={amount}",
        )
    if not reason or not reason.strip():
        raise MissingReasonError("Adjustment reason is required")
    if amount < ZERO and -amount > to_money(balance) + BALANCE_EPSILON:
        raise NegativeBalanceError(
            f"Adjustment would create negative balance. Adjustment: {amount}, Outstanding: {to_money(balance)}",
            reason=f"balance={to_money(balance)}, amount={amount}",
        )
    if amount > ZERO:
        to_amount(to_money(balance) + amount, "balance")
    return amount


def validate_chronology(last_transaction_date: Optional[datetime], transaction_date: datetime) -> None:
    """Entries may not be dated before the latest entry already on the tab"""
    if last_transaction_date is not None and transaction_date < last_transaction_date:
        raise ValidationError(
            "Transaction date cannot precede the latest transaction on the tab",
            reason=f"transaction_date={transaction_date.isoformat()}, latest={last_transaction_date.isoformat()}",
        )


def contribution_of(balance: Decimal, entry) -> Decimal:
    """Validate any entry variant against the balance and return its contribution"""
    if isinstance(entry, Charge):
        return validate_charge(balance, entry.containers, entry.unit_price)
    if isinstance(entry, Payment):
        return validate_payment(balance, entry.amount)
    if isinstance(entry, Adjustment):
        return validate_adjustment(balance, entry.amount, entry.reason)
    raise TypeError(f"Unsupported ledger entry: {type(entry).__name__}")


def apply(balance: Decimal, entry) -> Decimal:
    """Return the balance after applying a validated entry"""
    return to_money(to_money(balance) + contribution_of(balance, entry))


def running_balances(entries: Iterable) -> List[Decimal]:
    """
    Expected balance after each entry, replayed from zero

    Entries must already be in ledger order. Stored history is not
    re-validated; it was accepted when written.
    """
    balance = ZERO
    balances = []
    for entry in entries:
        balance = to_money(balance + signed_amount(entry))
        balances.append(balance)
    return balances
