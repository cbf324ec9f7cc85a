from .unit_of_work import UnitOfWork
from .customer_locks import CustomerLockRegistry

__all__ = [
    "UnitOfWork",
    "CustomerLockRegistry",
]
