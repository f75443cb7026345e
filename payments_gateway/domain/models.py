"""Domain models - pure Python dataclasses representing rewards entities"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import List, Optional, Union

Number = Union[int, float, Decimal]


class CashbackTier(IntEnum):
    """Ordered cashback tiers, keyed by GNO balance"""

    TIER_0 = 0
    TIER_1 = 1
    TIER_2 = 2
    TIER_3 = 3
    TIER_4 = 4


@dataclass(frozen=True)
class TierConfig:
    """Balance range and base rate attached to a tier"""

    tier: CashbackTier
    min_gno: Number
    max_gno: Optional[Number]  # None for the top tier
    base_rate: Number  # percent
    label: str

    @property
    def is_max_tier(self) -> bool:
        return self.max_gno is None

    def contains(self, gno_balance: Number) -> bool:
        if gno_balance < self.min_gno:
            return False
        return self.max_gno is None or gno_balance < self.max_gno


@dataclass(frozen=True)
class Transaction:
    """Card transaction from Gnosis Pay, normalized"""

    transaction_id: str
    created_at: Optional[datetime]
    amount: Optional[Decimal]  # major units; None when upstream record is malformed
    currency: str = "EUR"
    is_eligible_for_cashback: bool = False
    merchant_name: str = ""
    kind: str = "Payment"
    status: str = "Approved"
    is_pending: bool = False


@dataclass(frozen=True)
class RewardsInfo:
    """Rewards snapshot as reported by Gnosis Pay"""

    gno_balance: Number
    is_og_holder: bool
    api_cashback_rate: Number  # base rate reported upstream, without OG bonus


@dataclass(frozen=True)
class TierDistance:
    """GNO still needed to reach the next tier"""

    gno_needed: Optional[Number]
    next_tier: Optional[TierConfig]


@dataclass(frozen=True)
class TierProgress:
    """Current tier position and what the next tier would bring"""

    current_tier: TierConfig
    current_rate: Number
    next_tier: Optional[TierConfig]
    next_rate: Optional[Number]
    gno_balance: Number
    gno_needed: Optional[Number]
    progress_percentage: float
    og_bonus_rate: Number
    potential_extra_cashback: Decimal


@dataclass(frozen=True)
class MonthlyEarnings:
    """Cashback earned in one UTC calendar month"""

    year: int
    month: int
    earned: Decimal
    eligible_count: int

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class CashbackStats:
    """Derived cashback statistics for a transaction history"""

    earned_this_month: Decimal
    earned_last_month: Decimal
    total_earned: Decimal
    average_monthly_earned: Decimal
    projected_yearly_cashback: Decimal
    month_over_month_change: float
    eligible_transaction_count: int
    eligible_this_month: int
    eligible_last_month: int
    ineligible_transaction_count: int
    skipped_transaction_count: int
    monthly_earnings: List[MonthlyEarnings] = field(default_factory=list)


@dataclass(frozen=True)
class CashbackSummary:
    """Spending and cashback totals over a set of transactions"""

    total_spending: Decimal
    eligible_spending: Decimal
    total_cashback: Decimal
    transaction_count: int
    eligible_transaction_count: int
    average_cashback_rate: Decimal
