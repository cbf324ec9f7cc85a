"""Debt Ledger Reconciliation Worker

Replays every tab's transactions on a schedule and alerts on tabs whose
balance snapshot or balance_after chain disagrees with the ledger. The worker
only reports; repairs are a manual decision.

    python -m src.worker.ledger_reconciler --once
    python -m src.worker.ledger_reconciler --interval 3600
"""

import argparse
import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories import SqlAlchemyDebtTabRepository, SqlAlchemyDebtTransactionRepository
from src.app.use_cases.debts import ReconcileLedger, ReconciliationResultDTO

logger = logging.getLogger(__name__)


def _describe(discrepancy) -> str:
    return (
        f"Customer {discrepancy.customer_id} (tab_id={discrepancy.tab_id}): "
        f"stored={discrepancy.tab_balance}, replayed={discrepancy.calculated_balance}, "
        f"diff={discrepancy.discrepancy}, "
        f"first_broken_transaction={discrepancy.broken_transaction_id}"
    )


class LedgerReconcilerWorker:
    """
    Runs ReconcileLedger against its own engine, once or on an interval

    Each pass uses a fresh session so a long-running worker never reads
    snapshots cached by an earlier pass.
    """

    def __init__(self, db_uri: Optional[str] = None):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self._stopped = asyncio.Event()

    async def run_once(self) -> ReconciliationResultDTO:
        """
        Reconcile every tab a single time

        Raises:
            RuntimeError: If the reconciliation itself failed
        """
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Debt ledger reconciliation disabled by configuration")
            return ReconciliationResultDTO(
                total_tabs_checked=0,
                discrepancies_found=0,
                discrepancies=[],
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            result = await ReconcileLedger(
                tab_repo=SqlAlchemyDebtTabRepository(session),
                transaction_repo=SqlAlchemyDebtTransactionRepository(session),
            ).execute()

        if result.is_err():
            logger.error(f"Debt ledger reconciliation failed: {result.error.reason or result.error.message}")
            raise RuntimeError(result.error.message)

        report = result.value
        if report.discrepancies:
            logger.error(
                f"{report.discrepancies_found} of {report.total_tabs_checked} "
                f"debt tabs disagree with their ledger"
            )
            for discrepancy in report.discrepancies:
                logger.error(_describe(discrepancy))
        return report

    async def run_forever(self, interval_seconds: int = 86400):
        logger.info(f"Debt ledger reconciliation every {interval_seconds}s")

        while not self._stopped.is_set():
            try:
                report = await self.run_once()
                logger.info(
                    f"Reconciliation pass checked {report.total_tabs_checked} tabs "
                    f"in {report.execution_time_ms}ms"
                )
            except RuntimeError as e:
                # Next pass retries; a failed pass never stops the schedule
                logger.error(f"Reconciliation pass failed: {e}")

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                continue

    async def shutdown(self):
        self._stopped.set()
        await self.engine.dispose()
        logger.info("LedgerReconcilerWorker stopped")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Debt Ledger Reconciliation Worker")
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    parser.add_argument(
        "--interval",
        type=int,
        default=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
        help="Seconds between passes when running continuously",
    )
    return parser


async def main(argv=None) -> int:
    """Returns the process exit code: 1 when discrepancies were found in --once mode"""
    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    worker = LedgerReconcilerWorker()

    try:
        if not args.once:
            await worker.run_forever(interval_seconds=args.interval)
            return 0

        report = await worker.run_once()
        print(
            f"Checked {report.total_tabs_checked} tabs in {report.execution_time_ms}ms, "
            f"{report.discrepancies_found} discrepancies"
        )
        for discrepancy in report.discrepancies:
            print(f"  - {_describe(discrepancy)}")
        return 1 if report.discrepancies else 0
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        return 0
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
