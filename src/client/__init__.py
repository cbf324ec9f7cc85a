from .debt_client import DebtLedgerClient, LedgerClientError

__all__ = ["DebtLedgerClient", "LedgerClientError"]
