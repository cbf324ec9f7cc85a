"""
List Transactions Use Case

Retrieves ledger transactions across customers with filters and pagination.
"""
import math

from libs.result import Result, Return, Error
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from .dtos import DebtTransactionDTO, ListTransactionsResponseDTO, PaginationDTO, TransactionFiltersDTO
from .tab_mutation import normalize_timestamp


class ListTransactions:
    """
    Use case: View Debt Transactions

    Transactions are ordered by transaction_date DESC, id DESC (most recent first).
    """

    def __init__(self, transaction_repo: DebtTransactionRepository, max_limit: int = 100):
        """
        Args:
            transaction_repo: DebtTransactionRepository instance
            max_limit: Largest page size a caller may request
        """
        self.transaction_repo = transaction_repo
        self.max_limit = max_limit

    async def execute(self, filters: TransactionFiltersDTO) -> Result[ListTransactionsResponseDTO]:
        """
        Errors:
            VALIDATION_ERROR: page < 1, limit out of range, or start_date after end_date
        """
        if filters.page < 1:
            return Return.err(
                Error(code="VALIDATION_ERROR", message="page must be >= 1", reason=f"page={filters.page}")
            )
        if filters.limit < 1 or filters.limit > self.max_limit:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message=f"limit must be between 1 and {self.max_limit}",
                    reason=f"limit={filters.limit}",
                )
            )

        start_date = normalize_timestamp(filters.start_date) if filters.start_date else None
        end_date = normalize_timestamp(filters.end_date) if filters.end_date else None
        if start_date and end_date and start_date > end_date:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message="start_date must not be after end_date",
                    reason=f"start_date={start_date.isoformat()}, end_date={end_date.isoformat()}",
                )
            )

        transactions, total = await self.transaction_repo.list_filtered(
            customer_id=filters.customer_id,
            transaction_type=filters.transaction_type,
            tab_status=filters.tab_status,
            start_date=start_date,
            end_date=end_date,
            limit=filters.limit,
            offset=(filters.page - 1) * filters.limit,
        )

        return Return.ok(
            ListTransactionsResponseDTO(
                transactions=[DebtTransactionDTO.from_entity(t) for t in transactions],
                pagination=PaginationDTO(
                    page=filters.page,
                    limit=filters.limit,
                    total=total,
                    total_pages=math.ceil(total / filters.limit) if total else 0,
                ),
            )
        )
