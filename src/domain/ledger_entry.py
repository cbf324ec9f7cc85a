"""Ledger Entry Variants

A mutation intent is one of three variants sharing the same base fields.
The discriminator ``kind`` matches the persisted TransactionType value.
Mutations validate and record a variant; reconciliation replays the variants
rebuilt from stored rows (``DebtTransaction.to_entry``).
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class EntryBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    transaction_date: datetime
    notes: Optional[str] = None


class Charge(EntryBase):
    kind: Literal["CHARGE"] = "CHARGE"
    containers: int
    unit_price: Decimal


class Payment(EntryBase):
    kind: Literal["PAYMENT"] = "PAYMENT"
    amount: Decimal


class Adjustment(EntryBase):
    kind: Literal["ADJUSTMENT"] = "ADJUSTMENT"
    amount: Decimal
    # Checked by the balance calculator so a missing reason reports MISSING_REASON
    reason: Optional[str] = None


LedgerEntry = Annotated[Union[Charge, Payment, Adjustment], Field(discriminator="kind")]
