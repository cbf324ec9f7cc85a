"""MarkPaid Use Case

Settles the open tab and closes it. When money is still owed, a final PAYMENT
is recorded first (the exact balance, or the caller's final_payment when it
settles the balance exactly). The closed tab is kept as history; the next
charge opens a new tab.
"""

from src.domain.balance_calculator import contribution_of
from src.domain.debt_tab import TabStatus
from src.domain.errors import UnsettledBalanceError
from src.domain.ledger_entry import Payment
from src.domain.tab_lifecycle import TabLifecycleManager
from .dtos import DebtMutationResponseDTO, DebtTabDTO, DebtTransactionDTO, MarkPaidCommandDTO
from .tab_mutation import TabMutation, normalize_timestamp

FINAL_PAYMENT_NOTE = "Final payment"


def final_payment_key(idempotency_key: str) -> str:
    return f"{idempotency_key}:final-payment"


class MarkPaid(TabMutation):
    """
    Use Case: Mark a customer's tab as paid

    Business Rules:
    1. An OPEN tab is required (NO_OPEN_TAB otherwise)
    2. final_payment, when given, must satisfy the payment rule and settle the
       balance exactly (UNSETTLED_BALANCE otherwise)
    3. The tab only transitions to CLOSED with a zero balance
    4. Idempotency: the key is stored on the closed tab
    """

    operation = "mark paid"

    async def _replay(self, command: MarkPaidCommandDTO):
        if not command.idempotency_key:
            return None
        tab = await self.tab_repo.get_by_close_idempotency_key(command.idempotency_key)
        if not tab:
            return None
        self._check_key_owner(tab.customer_id, command)
        transaction = await self.transaction_repo.get_by_idempotency_key(
            final_payment_key(command.idempotency_key)
        )
        return DebtMutationResponseDTO(
            transaction=DebtTransactionDTO.from_entity(transaction) if transaction else None,
            tab=DebtTabDTO.from_entity(tab),
            replayed=True,
        )

    async def _mutate(self, command: MarkPaidCommandDTO, customer):
        transaction_date = normalize_timestamp(command.transaction_date)
        tab = TabLifecycleManager.require_open(
            await self.tab_repo.get_open_by_customer_id(customer.id, for_update=True),
            customer.id,
        )

        amount = TabLifecycleManager.settlement_amount(tab, command.final_payment)
        await self._check_chronology(tab, transaction_date)

        transaction = None
        if amount is not None:
            entry = Payment(
                transaction_date=transaction_date,
                notes=command.notes or FINAL_PAYMENT_NOTE,
                amount=amount,
            )
            transaction = await self._append(
                tab,
                command,
                entry,
                contribution_of(tab.total_balance, entry),
                idempotency_key=(
                    final_payment_key(command.idempotency_key) if command.idempotency_key else None
                ),
            )

        if not TabLifecycleManager.can_close(tab):
            raise UnsettledBalanceError(
                f"Tab {tab.id} still has {tab.total_balance} outstanding",
                reason=f"balance={tab.total_balance}",
            )

        tab = await self.tab_repo.compare_and_swap(
            tab,
            expected_version=tab.version,
            total_balance=tab.total_balance,
            status=TabStatus.CLOSED,
            closed_at=transaction_date,
            close_idempotency_key=command.idempotency_key,
        )
        return transaction, tab
