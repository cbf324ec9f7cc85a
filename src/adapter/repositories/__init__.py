from .customer_repository import SqlAlchemyCustomerRepository
from .debt_tab_repository import SqlAlchemyDebtTabRepository
from .debt_transaction_repository import SqlAlchemyDebtTransactionRepository

__all__ = [
    "SqlAlchemyCustomerRepository",
    "SqlAlchemyDebtTabRepository",
    "SqlAlchemyDebtTransactionRepository",
]
