"""ReconcileLedger Use Case

Replays every tab's transactions and compares the result with the stored tab
snapshot and each transaction's balance_after.
"""

import logging
import time
from collections import defaultdict
from datetime import datetime
from libs.result import Result, Return, Error
from src.app.repositories.debt_tab_repository import DebtTabRepository
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from src.domain.balance_calculator import ZERO, running_balances, to_money
from .dtos import TabDiscrepancyDTO, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class ReconcileLedger:
    """
    Use Case: Reconcile tab snapshots against the ledger

    Business Rules:
    1. Expected balance of a tab = sum of its transactions' contributions
    2. Every transaction's balance_after must equal the running balance
    3. Does NOT modify any data (read-only reconciliation)

    Flow:
    1. Get all tabs and their transactions (ledger order)
    2. Replay each tab from zero
    3. Record a discrepancy for a snapshot mismatch or a broken chain
    4. Return reconciliation result with all discrepancies
    """

    def __init__(
        self,
        tab_repo: DebtTabRepository,
        transaction_repo: DebtTransactionRepository,
    ):
        self.tab_repo = tab_repo
        self.transaction_repo = transaction_repo

    async def execute(self) -> Result[ReconciliationResultDTO]:
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            logger.info("Starting debt ledger reconciliation")

            tabs = await self.tab_repo.get_all()
            total_tabs = len(tabs)
            logger.info(f"Found {total_tabs} tabs to reconcile")

            by_tab = defaultdict(list)
            if tabs:
                for transaction in await self.transaction_repo.list_by_tab_ids([tab.id for tab in tabs]):
                    by_tab[transaction.debt_tab_id].append(transaction)

            discrepancies: list[TabDiscrepancyDTO] = []

            for tab in tabs:
                transactions = by_tab.get(tab.id, [])
                expected = running_balances(t.to_entry() for t in transactions)
                calculated_balance = expected[-1] if expected else ZERO

                broken_transaction_id = None
                for transaction, balance in zip(transactions, expected):
                    if to_money(transaction.balance_after) != balance:
                        broken_transaction_id = transaction.id
                        break

                tab_balance = to_money(tab.total_balance)
                if tab_balance != calculated_balance or broken_transaction_id is not None:
                    discrepancy = TabDiscrepancyDTO(
                        customer_id=tab.customer_id,
                        tab_id=tab.id,
                        tab_balance=tab_balance,
                        calculated_balance=calculated_balance,
                        discrepancy=tab_balance - calculated_balance,
                        broken_transaction_id=broken_transaction_id,
                    )
                    discrepancies.append(discrepancy)

                    logger.warning(
                        f"Discrepancy found for customer {tab.customer_id} "
                        f"(tab_id={tab.id}): "
                        f"tab_balance={tab_balance}, "
                        f"calculated_balance={calculated_balance}, "
                        f"broken_transaction_id={broken_transaction_id}"
                    )

            execution_time_ms = int((time.time() - start_time) * 1000)

            response = ReconciliationResultDTO(
                total_tabs_checked=total_tabs,
                discrepancies_found=len(discrepancies),
                discrepancies=discrepancies,
                reconciliation_time=reconciliation_time,
                execution_time_ms=execution_time_ms,
            )

            if discrepancies:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} discrepancies "
                    f"out of {total_tabs} tabs in {execution_time_ms}ms"
                )
            else:
                logger.info(
                    f"Reconciliation complete. All {total_tabs} tabs balanced "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(response)

        except Exception as e:
            logger.error(f"Ledger reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile debt ledger",
                    reason=str(e),
                )
            )
