"""Get Customer Debt Use Case

Retrieves a customer's current tab and the transactions recorded on it.
Read-only; never takes the customer's mutation lock.
"""

from libs.result import Result, Return, Error
from src.app.repositories.customer_repository import CustomerRepository
from src.app.repositories.debt_tab_repository import DebtTabRepository
from src.app.repositories.debt_transaction_repository import DebtTransactionRepository
from .dtos import CustomerDTO, CustomerDebtResponseDTO, DebtTabDTO, DebtTransactionDTO


class GetCustomerDebt:
    """
    Get Customer Debt Use Case

    Returns the customer, the OPEN tab (None when the customer owes nothing
    and has no open tab) and that tab's transactions in ledger order.
    """

    def __init__(
        self,
        customer_repo: CustomerRepository,
        tab_repo: DebtTabRepository,
        transaction_repo: DebtTransactionRepository,
    ):
        self.customer_repo = customer_repo
        self.tab_repo = tab_repo
        self.transaction_repo = transaction_repo

    async def execute(self, customer_id: str) -> Result[CustomerDebtResponseDTO]:
        """
        Errors:
            CUSTOMER_NOT_FOUND: Unknown customer
        """
        customer = await self.customer_repo.get_by_id(customer_id)
        if not customer:
            return Return.err(
                Error(
                    code="CUSTOMER_NOT_FOUND",
                    message=f"Customer {customer_id} not found",
                )
            )

        tab = await self.tab_repo.get_open_by_customer_id(customer_id)
        transactions = await self.transaction_repo.list_by_tab_ids([tab.id]) if tab else []

        return Return.ok(
            CustomerDebtResponseDTO(
                customer=CustomerDTO.from_entity(customer),
                tab=DebtTabDTO.from_entity(tab) if tab else None,
                transactions=[DebtTransactionDTO.from_entity(t) for t in transactions],
            )
        )
