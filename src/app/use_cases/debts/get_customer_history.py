"""Get Customer History Use Case

Retrieves every tab a customer ever had, open and closed, with all their
transactions.
"""

from libs.result import Result, Return, Error
from src.app.repositories.customer_repository import CustomerRepository
from src.app.repositories.debt_tab_repository import DebtTabRepository
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from .dtos import CustomerDTO, CustomerHistoryResponseDTO, DebtTabDTO, DebtTransactionDTO


class GetCustomerHistory:
    def __init__(
        self,
        customer_repo: CustomerRepository,
        tab_repo: DebtTabRepository,
        transaction_repo: DebtTransactionRepository,
    ):
        self.customer_repo = customer_repo
        self.tab_repo = tab_repo
        self.transaction_repo = transaction_repo

    async def execute(self, customer_id: str) -> Result[CustomerHistoryResponseDTO]:
        customer = await self.customer_repo.get_by_id(customer_id)
        if not customer:
            return Return.err(
                Error(
                    code="CUSTOMER_NOT_FOUND",
                    message=f"Customer {customer_id} not found",
                )
            )

        tabs = await self.tab_repo.list_by_customer_id(customer_id)
        transactions = await self.transaction_repo.list_by_tab_ids([tab.id for tab in tabs]) if tabs else []

        return Return.ok(
            CustomerHistoryResponseDTO(
                customer=CustomerDTO.from_entity(customer),
                tabs=[DebtTabDTO.from_entity(tab) for tab in tabs],
                transactions=[DebtTransactionDTO.from_entity(t) for t in transactions],
            )
        )
