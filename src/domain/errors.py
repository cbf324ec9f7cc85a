"""Debt ledger error taxonomy

Business-rule errors are raised before anything is written to the ledger.
Each error carries a stable ``code`` used by the API and the client, and a
``retryable`` flag telling callers whether resubmitting unchanged input can
succeed.
"""

from typing import Optional


class LedgerError(Exception):
    code = "LEDGER_ERROR"
    retryable = False

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason


class ValidationError(LedgerError):
    """Malformed or out-of-range input"""
    code = "VALIDATION_ERROR"


class MissingReasonError(ValidationError):
    code = "MISSING_REASON"


class UnsettledBalanceError(ValidationError):
    """A final payment would leave the tab with a remaining balance"""
    code = "UNSETTLED_BALANCE"


class OverpaymentError(LedgerError):
    code = "OVERPAYMENT"


class NegativeBalanceError(LedgerError):
    code = "NEGATIVE_BALANCE"


class NoOpenTabError(LedgerError):
    code = "NO_OPEN_TAB"


class CustomerNotFoundError(LedgerError):
    code = "CUSTOMER_NOT_FOUND"


class ConcurrentModificationError(LedgerError):
    code = "CONCURRENT_MODIFICATION"
    retryable = True


class StorageError(LedgerError):
    code = "STORAGE_ERROR"
    retryable = True
