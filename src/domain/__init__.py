from .base import BaseModel, generate_uuid
from .customer import Customer
from .debt_tab import DebtTab, TabStatus
from .debt_transaction import DebtTransaction, TransactionType
from .ledger_entry import Charge, Payment, Adjustment, LedgerEntry
from .aging import AgingClassifier, AgingSnapshot, CollectionStatus, AGING_POLICY
from .tab_lifecycle import TabLifecycleManager, TabState

__all__ = [
    "BaseModel",
    "generate_uuid",
    "Customer",
    "DebtTab",
    "TabStatus",
    "DebtTransaction",
    "TransactionType",
    "Charge",
    "Payment",
    "Adjustment",
    "LedgerEntry",
    "AgingClassifier",
    "AgingSnapshot",
    "CollectionStatus",
    "AGING_POLICY",
    "TabLifecycleManager",
    "TabState",
]
