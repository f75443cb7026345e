"""Cashback tier resolution - maps a GNO balance to a tier and an effective rate"""

import math
from bisect import bisect_right
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from payments_gateway.domain.exceptions import InvalidBalanceError, InvalidTierTableError
from payments_gateway.domain.models import (
    CashbackTier,
    Number,
    TierConfig,
    TierDistance,
    TierProgress,
)

OG_BONUS_RATE = 1  # percentage point added for OG NFT holders

CASHBACK_TIERS: Tuple[TierConfig, ...] = (
    TierConfig(CashbackTier.TIER_0, min_gno=0, max_gno=1, base_rate=0, label="No Cashback"),
    TierConfig(CashbackTier.TIER_1, min_gno=1, max_gno=10, base_rate=1, label="Bronze"),
    TierConfig(CashbackTier.TIER_2, min_gno=10, max_gno=50, base_rate=2, label="Silver"),
    TierConfig(CashbackTier.TIER_3, min_gno=50, max_gno=100, base_rate=3, label="Gold"),
    TierConfig(CashbackTier.TIER_4, min_gno=100, max_gno=None, base_rate=4, label="Platinum"),
)


def validate_tier_table(tiers: Sequence[TierConfig]) -> None:
    """
    Check that the tiers partition [0, inf) exactly once.

    Requirements:
    - First tier starts at 0, only the last tier is unbounded
    - Each tier's max_gno equals the next tier's min_gno (no gaps, no overlaps)
    - Tier ordinals strictly increase, base rates are non-negative and never decrease
    """
    if not tiers:
        raise InvalidTierTableError("Tier table is empty")

    if tiers[0].min_gno != 0:
        raise InvalidTierTableError(f"First tier must start at 0 GNO, got {tiers[0].min_gno}")

    for tier in tiers:
        if tier.base_rate < 0:
            raise InvalidTierTableError(f"{tier.tier.name} has a negative base rate")
        if tier.max_gno is not None and tier.max_gno <= tier.min_gno:
            raise InvalidTierTableError(f"{tier.tier.name} has an empty GNO range")

    for current, following in zip(tiers, tiers[1:]):
        if following.tier <= current.tier:
            raise InvalidTierTableError("Tiers must be listed in increasing order")
        if following.base_rate < current.base_rate:
            raise InvalidTierTableError(
                f"{following.tier.name} pays less than {current.tier.name}"
            )
        if current.max_gno is None:
            raise InvalidTierTableError(f"Only the last tier may be unbounded, not {current.tier.name}")
        if current.max_gno != following.min_gno:
            raise InvalidTierTableError(
                f"Gap or overlap between {current.tier.name} and {following.tier.name}"
            )

    if tiers[-1].max_gno is not None:
        raise InvalidTierTableError("Last tier must have no upper bound")


@dataclass(frozen=True)
class CashbackSchedule:
    """Validated tier table plus the OG bonus, passed explicitly to every tier function"""

    tiers: Tuple[TierConfig, ...] = CASHBACK_TIERS
    og_bonus_rate: Number = OG_BONUS_RATE

    def __post_init__(self) -> None:
        object.__setattr__(self, "tiers", tuple(self.tiers))
        validate_tier_table(self.tiers)
        if self.og_bonus_rate < 0:
            raise InvalidTierTableError("OG bonus rate cannot be negative")


DEFAULT_SCHEDULE = CashbackSchedule()


def _validate_balance(gno_balance: Number) -> None:
    if isinstance(gno_balance, bool) or not isinstance(gno_balance, (int, float, Decimal)):
        raise InvalidBalanceError(f"GNO balance must be a number, got {type(gno_balance).__name__}")

    finite = gno_balance.is_finite() if isinstance(gno_balance, Decimal) else math.isfinite(gno_balance)
    if not finite:
        raise InvalidBalanceError(f"GNO balance must be finite, got {gno_balance}")
    if gno_balance < 0:
        raise InvalidBalanceError(f"GNO balance cannot be negative, got {gno_balance}")


def resolve_tier(gno_balance: Number, schedule: CashbackSchedule = DEFAULT_SCHEDULE) -> TierConfig:
    """
    Resolve the tier whose [min_gno, max_gno) range contains the balance.

    Binary search over the sorted lower boundaries: the highest tier whose
    min_gno the balance meets or exceeds wins.

    Raises:
        InvalidBalanceError: balance is negative, non-finite or not numeric
    """
    _validate_balance(gno_balance)

    boundaries = [tier.min_gno for tier in schedule.tiers]
    index = bisect_right(boundaries, gno_balance) - 1
    return schedule.tiers[index]


def next_tier(tier: TierConfig, schedule: CashbackSchedule = DEFAULT_SCHEDULE) -> Optional[TierConfig]:
    """Tier directly above the given one, None at the top"""
    for position, candidate in enumerate(schedule.tiers):
        if candidate.tier == tier.tier:
            following = position + 1
            return schedule.tiers[following] if following < len(schedule.tiers) else None
    raise InvalidTierTableError(f"{tier.tier.name} is not part of this schedule")


def effective_rate(
    tier: TierConfig,
    is_og_holder: bool,
    schedule: CashbackSchedule = DEFAULT_SCHEDULE,
) -> Number:
    """Base rate of the tier plus the OG bonus for OG NFT holders"""
    return tier.base_rate + (schedule.og_bonus_rate if is_og_holder else 0)


def distance_to_next_tier(
    gno_balance: Number,
    schedule: CashbackSchedule = DEFAULT_SCHEDULE,
) -> TierDistance:
    """
    GNO still needed to reach the next tier.

    The tier is resolved from the balance on every call, so the gap is always
    strictly positive. The top tier has no next tier: (None, None).
    """
    current = resolve_tier(gno_balance, schedule)
    following = next_tier(current, schedule)

    if following is None:
        return TierDistance(gno_needed=None, next_tier=None)

    return TierDistance(gno_needed=following.min_gno - gno_balance, next_tier=following)


def tier_progress(
    gno_balance: Number,
    is_og_holder: bool,
    monthly_spending: Number = 0,
    schedule: CashbackSchedule = DEFAULT_SCHEDULE,
) -> TierProgress:
    """
    Position within the current tier and the payoff of moving up.

    progress_percentage is how far the balance sits between the current tier's
    bounds (100 at the top tier). potential_extra_cashback is the additional
    monthly cashback the given monthly spend would earn at the next tier's rate.
    """
    current = resolve_tier(gno_balance, schedule)
    current_rate = effective_rate(current, is_og_holder, schedule)
    distance = distance_to_next_tier(gno_balance, schedule)
    og_bonus = schedule.og_bonus_rate if is_og_holder else 0

    if distance.next_tier is None:
        return TierProgress(
            current_tier=current,
            current_rate=current_rate,
            next_tier=None,
            next_rate=None,
            gno_balance=gno_balance,
            gno_needed=None,
            progress_percentage=100.0,
            og_bonus_rate=og_bonus,
            potential_extra_cashback=Decimal("0"),
        )

    span = float(current.max_gno) - float(current.min_gno)
    progress = (float(gno_balance) - float(current.min_gno)) / span * 100

    next_rate = effective_rate(distance.next_tier, is_og_holder, schedule)
    spending = abs(Decimal(str(monthly_spending)))
    extra = spending * (Decimal(str(next_rate)) - Decimal(str(current_rate))) / 100

    return TierProgress(
        current_tier=current,
        current_rate=current_rate,
        next_tier=distance.next_tier,
        next_rate=next_rate,
        gno_balance=gno_balance,
        gno_needed=distance.gno_needed,
        progress_percentage=progress,
        og_bonus_rate=og_bonus,
        potential_extra_cashback=extra,
    )
