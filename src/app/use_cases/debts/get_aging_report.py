"""Get Aging Report Use Case

Ages every open tab with an outstanding balance. The report is recomputed from
the ledger on each call and never stored, so it cannot drift from the
transaction log.
"""

import logging
from datetime import datetime
from typing import Optional

from libs.result import Result, Return
from src.app.repositories.customer_repository import CustomerRepository
from src.app.repositories.debt_tab_repository import DebtTabRepository
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from src.domain.aging import AgingClassifier
from .dtos import AgingReportCustomerDTO, AgingReportResponseDTO, AgingReportSummaryDTO

logger = logging.getLogger(__name__)


class GetAgingReport:
    """
    Use Case: Aging report across the customer population

    Rows are ordered oldest tab first, then by amount owed.
    """

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

    async def execute(self, as_of: Optional[datetime] = None) -> Result[AgingReportResponseDTO]:
        generated_at = as_of or datetime.utcnow()

        tabs = await self.tab_repo.list_open(with_balance_only=True)
        customer_ids = [tab.customer_id for tab in tabs]
        customers = await self.customer_repo.get_by_ids(customer_ids)
        last_payments = await self.transaction_repo.get_last_payment_dates(customer_ids)

        snapshots = [self.classifier.classify(tab, generated_at) for tab in tabs]
        snapshots.sort(key=lambda s: (-s.age_days, -s.total_balance))
        totals = self.classifier.summarize(snapshots)

        rows = []
        for snapshot in snapshots:
            customer = customers.get(snapshot.customer_id)
            rows.append(
                AgingReportCustomerDTO(
                    customer_id=snapshot.customer_id,
                    customer_name=customer.name if customer else snapshot.customer_id,
                    location=customer.location if customer else None,
                    tab_id=snapshot.tab_id,
                    age_days=snapshot.age_days,
                    current=snapshot.current,
                    days_31_to_60=snapshot.days_31_to_60,
                    days_61_to_90=snapshot.days_61_to_90,
                    over_90_days=snapshot.over_90_days,
                    total_owed=snapshot.total_balance,
                    collection_status=snapshot.collection_status.value,
                    last_payment_date=last_payments.get(snapshot.customer_id),
                )
            )

        logger.info(
            f"Aging report generated for {totals.total_customers} customers, "
            f"outstanding={totals.total_outstanding}"
        )

        return Return.ok(
            AgingReportResponseDTO(
                customers=rows,
                summary=AgingReportSummaryDTO(
                    total_customers=totals.total_customers,
                    total_outstanding=totals.total_outstanding,
                    current=totals.buckets["current"],
                    days_31_to_60=totals.buckets["days_31_to_60"],
                    days_61_to_90=totals.buckets["days_61_to_90"],
                    over_90_days=totals.buckets["over_90_days"],
                ),
                generated_at=generated_at,
            )
        )
