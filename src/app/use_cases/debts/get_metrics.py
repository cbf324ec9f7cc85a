"""Get Debt Metrics Use Case

Headline numbers for the debts dashboard.
"""

from datetime import datetime, timedelta
from typing import Optional

from libs.result import Result, Return
from src.app.repositories.debt_tab_repository import DebtTabRepository
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from src.domain.aging import AgingClassifier, CollectionStatus
from src.domain.balance_calculator import ZERO, is_zero, to_money
from src.domain.debt_transaction import TransactionType
from .dtos import DebtMetricsResponseDTO

PAYMENT_WINDOW = timedelta(days=7)


class GetDebtMetrics:
    """
    Metrics:
    - total_outstanding: sum of open tab balances
    - active_debtors: open tabs with a balance > 0
    - weekly_payment_amount: payments dated within the last 7 days
    - collection_status_counts: open tabs per collection status
    """

    def __init__(
        self,
        tab_repo: DebtTabRepository,
        transaction_repo: DebtTransactionRepository,
        classifier: Optional[AgingClassifier] = None,
    ):
        self.tab_repo = tab_repo
        self.transaction_repo = transaction_repo
        self.classifier = classifier or AgingClassifier()

    async def execute(self, as_of: Optional[datetime] = None) -> Result[DebtMetricsResponseDTO]:
        generated_at = as_of or datetime.utcnow()

        tabs = await self.tab_repo.list_open()
        total_outstanding = ZERO
        active_debtors = 0
        status_counts = {status.value: 0 for status in CollectionStatus}
        for tab in tabs:
            balance = to_money(tab.total_balance)
            total_outstanding += balance
            if not is_zero(balance):
                active_debtors += 1
            age_days = self.classifier.age_in_days(tab.opened_at, generated_at)
            status_counts[self.classifier.collection_status(balance, age_days).value] += 1

        weekly_payment_amount = await self.transaction_repo.sum_amount_since(
            TransactionType.PAYMENT, generated_at - PAYMENT_WINDOW
        )

        return Return.ok(
            DebtMetricsResponseDTO(
                total_outstanding=total_outstanding,
                active_debtors=active_debtors,
                weekly_payment_amount=to_money(weekly_payment_amount),
                collection_status_counts=status_counts,
                generated_at=generated_at,
            )
        )
