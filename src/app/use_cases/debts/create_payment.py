"""CreatePayment Use Case

Records a payment against the customer's open tab. Payments can never drive
the balance below zero.
"""

from src.domain.balance_calculator import contribution_of
from src.domain.ledger_entry import Payment
from src.domain.tab_lifecycle import TabLifecycleManager
from .dtos import PaymentCommandDTO
from .tab_mutation import TabMutation, normalize_timestamp


class CreatePayment(TabMutation):
    """
    Use Case: Record a payment

    Business Rules:
    1. An OPEN tab is required (NO_OPEN_TAB otherwise)
    2. amount > 0 and amount <= balance (OVERPAYMENT otherwise)
    3. Validated against the balance read inside the customer's section
    """

    operation = "payment"

    async def _mutate(self, command: PaymentCommandDTO, customer):
        entry = Payment(
            transaction_date=normalize_timestamp(command.transaction_date),
            notes=command.notes,
            amount=command.amount,
        )
        tab = TabLifecycleManager.require_open(
            await self.tab_repo.get_open_by_customer_id(customer.id, for_update=True),
            customer.id,
        )

        contribution = contribution_of(tab.total_balance, entry)
        await self._check_chronology(tab, entry.transaction_date)

        transaction = await self._append(tab, command, entry, contribution)
        return transaction, tab
