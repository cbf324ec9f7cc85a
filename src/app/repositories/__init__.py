from .customer_repository import CustomerRepository
from .debt_tab_repository import DebtTabRepository
from .debt_transaction_repository import DebtTransactionRepository

__all__ = [
    "CustomerRepository",
    "DebtTabRepository",
    "DebtTransactionRepository",
]
