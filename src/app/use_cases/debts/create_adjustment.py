"""CreateAdjustment Use Case

Records a manual correction. Positive adjustments are bounded only by the
largest storable balance; negative ones may reduce the balance to zero but
never below.
"""

from src.domain.balance_calculator import contribution_of
from src.domain.ledger_entry import Adjustment
from src.domain.tab_lifecycle import TabLifecycleManager
from .dtos import AdjustmentCommandDTO
from .tab_mutation import TabMutation, normalize_timestamp


class CreateAdjustment(TabMutation):
    """
    Use Case: Record a balance adjustment

    Business Rules:
    1. An OPEN tab is required
    2. amount != 0 and a non-empty reason (MISSING_REASON otherwise)
    3. Negative amount may not exceed the balance (NEGATIVE_BALANCE otherwise)
    """

    operation = "adjustment"

    async def _mutate(self, command: AdjustmentCommandDTO, customer):
        entry = Adjustment(
            transaction_date=normalize_timestamp(command.transaction_date),
            notes=command.notes,
            amount=command.amount,
            reason=command.reason,
        )
        tab = TabLifecycleManager.require_open(
            await self.tab_repo.get_open_by_customer_id(customer.id, for_update=True),
            customer.id,
        )

        contribution = contribution_of(tab.total_balance, entry)
        await self._check_chronology(tab, entry.transaction_date)

        transaction = await self._append(tab, command, entry, contribution)
        return transaction, tab
