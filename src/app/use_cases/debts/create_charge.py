"""CreateCharge Use Case

Charges containers to a customer's tab, opening a new tab when the customer
has none open (first charge, or first charge after a settled tab).
"""

from src.domain.balance_calculator import ZERO, contribution_of
from src.domain.ledger_entry import Charge
from src.domain.tab_lifecycle import TabLifecycleManager, TabState
from .dtos import ChargeCommandDTO
from .tab_mutation import TabMutation, normalize_timestamp


class CreateCharge(TabMutation):
    """
    Use Case: Charge containers to a customer's tab

    Business Rules:
    1. containers > 0, unit_price >= 0; contribution = containers * unit_price
    2. NO_TAB / CLOSED -> a new OPEN tab is created, opened at the charge date
    3. Charge may not be dated before the latest transaction on the tab
    4. Idempotency: same idempotency_key returns the recorded charge
    """

    operation = "charge"

    async def _mutate(self, command: ChargeCommandDTO, customer):
        entry = Charge(
            transaction_date=normalize_timestamp(command.transaction_date),
            notes=command.notes,
            containers=command.containers,
            unit_price=command.unit_price,
        )
        tab = await self.tab_repo.get_open_by_customer_id(customer.id, for_update=True)

        contribution = contribution_of(tab.total_balance if tab else ZERO, entry)

        if TabLifecycleManager.state_of(tab) is TabState.OPEN:
            await self._check_chronology(tab, entry.transaction_date)
        else:
            tab = await self.tab_repo.create(
                TabLifecycleManager.open_tab(customer.id, opened_at=entry.transaction_date)
            )

        transaction = await self._append(tab, command, entry, contribution)
        return transaction, tab
