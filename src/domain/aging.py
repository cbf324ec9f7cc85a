"""Aging Classifier

Buckets each open tab's balance by how long the tab has been open and derives
a collection status from the same policy table. Everything here is pure and
recomputed at read time; aging results are never stored.

Aging model: the age of a tab is the number of whole days between the date it
was opened and the report date. The whole balance lands in a single bucket.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from src.domain.balance_calculator import ZERO, is_zero, to_money
from src.domain.debt_tab import DebtTab


class CollectionStatus(str, Enum):
    """Collection risk tier, lowest to highest"""
    CLEARED = "CLEARED"
    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    SUSPENDED = "SUSPENDED"


@dataclass(frozen=True)
class AgingBucket:
    key: str
    label: str
    min_days: int
    max_days: Optional[int]  # None = unbounded
    collection_status: CollectionStatus

    def contains(self, age_days: int) -> bool:
        if age_days < self.min_days:
            return False
        return self.max_days is None or age_days <= self.max_days


# Shared by every report that ages balances
AGING_POLICY: Tuple[AgingBucket, ...] = (
    AgingBucket("current", "0-30 days", 0, 30, CollectionStatus.ACTIVE),
    AgingBucket("days_31_to_60", "31-60 days", 31, 60, CollectionStatus.OVERDUE),
    AgingBucket("days_61_to_90", "61-90 days", 61, 90, CollectionStatus.OVERDUE),
    AgingBucket("over_90_days", "90+ days", 91, None, CollectionStatus.SUSPENDED),
)

BUCKET_KEYS: Tuple[str, ...] = tuple(bucket.key for bucket in AGING_POLICY)


@dataclass(frozen=True)
class AgingSnapshot:
    customer_id: str
    tab_id: int
    age_days: int
    total_balance: Decimal
    buckets: Dict[str, Decimal]
    collection_status: CollectionStatus

    @property
    def current(self) -> Decimal:
        return self.buckets["current"]

    @property
    def days_31_to_60(self) -> Decimal:
        return self.buckets["days_31_to_60"]

    @property
    def days_61_to_90(self) -> Decimal:
        return self.buckets["days_61_to_90"]

    @property
    def over_90_days(self) -> Decimal:
        return self.buckets["over_90_days"]


@dataclass
class AgingTotals:
    total_customers: int = 0
    total_outstanding: Decimal = ZERO
    buckets: Dict[str, Decimal] = field(default_factory=lambda: {key: ZERO for key in BUCKET_KEYS})


class AgingClassifier:
    def __init__(self, policy: Tuple[AgingBucket, ...] = AGING_POLICY):
        self.policy = policy

    @staticmethod
    def age_in_days(opened_at: datetime, as_of: datetime) -> int:
        return max(0, (as_of.date() - opened_at.date()).days)

    def bucket_for(self, age_days: int) -> AgingBucket:
        for bucket in self.policy:
            if bucket.contains(age_days):
                return bucket
        raise ValueError(f"Age {age_days} does not fall into any aging bucket")

    def collection_status(self, balance: Decimal, age_days: int) -> CollectionStatus:
        if is_zero(to_money(balance)):
            return CollectionStatus.CLEARED
        return self.bucket_for(age_days).collection_status

    def classify(self, tab: DebtTab, as_of: datetime) -> AgingSnapshot:
        balance = to_money(tab.total_balance)
        age_days = self.age_in_days(tab.opened_at, as_of)
        buckets = {bucket.key: ZERO for bucket in self.policy}
        if not is_zero(balance):
            buckets[self.bucket_for(age_days).key] = balance
        return AgingSnapshot(
            customer_id=tab.customer_id,
            tab_id=tab.id,
            age_days=age_days,
            total_balance=balance,
            buckets=buckets,
            collection_status=self.collection_status(balance, age_days),
        )

    def summarize(self, snapshots: Iterable[AgingSnapshot]) -> AgingTotals:
        totals = AgingTotals(buckets={bucket.key: ZERO for bucket in self.policy})
        for snapshot in snapshots:
            totals.total_customers += 1
            totals.total_outstanding += snapshot.total_balance
            for key, amount in snapshot.buckets.items():
                totals.buckets[key] += amount
        return totals
