"""Get Debt Summary Use Case

Per-customer balance and collection status for every open tab.
"""

from datetime import datetime
from typing import Optional

from libs.result import Result, Return
from src.app.repositories.customer_repository import CustomerRepository
from src.app.repositories.debt_tab_repository import DebtTabRepository
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from src.domain.aging import AgingClassifier
from src.domain.balance_calculator import ZERO, to_money
from .dtos import DebtSummaryItemDTO, DebtSummaryResponseDTO


class GetDebtSummary:
    def __init__(
        self,
        customer_repo: CustomerRepository,
        tab_repo: DebtTabRepository,
        transaction_repo: DebtTransactionRepository,
        classifier: Optional[AgingClassifier] = None,
    ):
        self.customer_repo = customer_repo
        self.tab_repo = tab_repo
        self.transaction_repo = transaction_repo
        self.classifier = classifier or AgingClassifier()

    async def execute(self, as_of: Optional[datetime] = None) -> Result[DebtSummaryResponseDTO]:
        generated_at = as_of or datetime.utcnow()

        tabs = await self.tab_repo.list_open()
        customer_ids = [tab.customer_id for tab in tabs]
        customers = await self.customer_repo.get_by_ids(customer_ids)
        last_payments = await self.transaction_repo.get_last_payment_dates(customer_ids)

        items = []
        total_outstanding = ZERO
        for tab in tabs:
            customer = customers.get(tab.customer_id)
            balance = to_money(tab.total_balance)
            days_open = self.classifier.age_in_days(tab.opened_at, generated_at)
            credit_limit = customer.credit_limit if customer else None
            total_outstanding += balance
            items.append(
                DebtSummaryItemDTO(
                    customer_id=tab.customer_id,
                    customer_name=customer.name if customer else tab.customer_id,
                    location=customer.location if customer else None,
                    tab_id=tab.id,
                    total_balance=balance,
                    opened_at=tab.opened_at,
                    days_open=days_open,
                    collection_status=self.classifier.collection_status(balance, days_open).value,
                    credit_limit=credit_limit,
                    over_credit_limit=credit_limit is not None and balance > to_money(credit_limit),
                    last_payment_date=last_payments.get(tab.customer_id),
                )
            )

        items.sort(key=lambda item: item.total_balance, reverse=True)
        return Return.ok(
            DebtSummaryResponseDTO(
                items=items,
                total_outstanding=total_outstanding,
                customer_count=len(items),
                generated_at=generated_at,
            )
        )
