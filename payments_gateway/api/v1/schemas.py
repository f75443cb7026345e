"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from payments_gateway.domain.models import (
    CashbackStats,
    CashbackSummary,
    TierConfig,
    TierDistance,
    TierProgress,
    Transaction,
)
from payments_gateway.domain.rewards import round_money


def _money(value: Decimal) -> float:
    """Two-decimal display rounding happens here and nowhere else"""
    return float(round_money(value))


class TierSchema(BaseModel):
    """One row of the tier table"""

    tier: int
    name: str
    label: str
    min_gno: float
    max_gno: Optional[float] = None
    base_rate: float

    @classmethod
    def from_domain(cls, config: TierConfig) -> "TierSchema":
        return cls(
            tier=int(config.tier),
            name=config.tier.name,
            label=config.label,
            min_gno=config.min_gno,
            max_gno=config.max_gno,
            base_rate=config.base_rate,
        )


class TierTableResponse(BaseModel):
    """Response for GET /v1/tiers"""

    tiers: List[TierSchema]
    og_bonus_rate: float


class TierDistanceSchema(BaseModel):
    gno_needed: Optional[float] = None
    next_tier: Optional[TierSchema] = None

    @classmethod
    def from_domain(cls, distance: TierDistance) -> "TierDistanceSchema":
        return cls(
            gno_needed=distance.gno_needed,
            next_tier=TierSchema.from_domain(distance.next_tier) if distance.next_tier else None,
        )


class TierProgressSchema(BaseModel):
    """Progress toward the next tier"""

    current_rate: float
    next_rate: Optional[float] = None
    is_max_tier: bool
    progress_percentage: float
    og_bonus_rate: float
    potential_extra_cashback: float

    @classmethod
    def from_domain(cls, progress: TierProgress) -> "TierProgressSchema":
        return cls(
            current_rate=progress.current_rate,
            next_rate=progress.next_rate,
            is_max_tier=progress.current_tier.is_max_tier,
            progress_percentage=round(progress.progress_percentage, 2),
            og_bonus_rate=progress.og_bonus_rate,
            potential_extra_cashback=_money(progress.potential_extra_cashback),
        )


class TierResolutionResponse(BaseModel):
    """Response for GET /v1/tiers/resolve"""

    gno_balance: float
    is_og_holder: bool
    tier: TierSchema
    effective_rate: float
    distance: TierDistanceSchema
    progress: TierProgressSchema


class TransactionSchema(BaseModel):
    """Normalized transaction supplied by the caller"""

    transaction_id: str = ""
    amount: Optional[Decimal] = Field(None, description="Amount in major units; refunds may be negative")
    currency: str = "EUR"
    created_at: Optional[datetime] = None
    is_eligible_for_cashback: bool = False

    def to_domain(self) -> Transaction:
        return Transaction(
            transaction_id=self.transaction_id,
            created_at=self.created_at,
            amount=self.amount,
            currency=self.currency,
            is_eligible_for_cashback=self.is_eligible_for_cashback,
        )


class CashbackStatsRequest(BaseModel):
    """Request body for POST /v1/cashback/stats and /v1/cashback/summary"""

    cashback_rate: float = Field(..., description="Effective cashback rate in percent")
    now: Optional[datetime] = Field(None, description="Reference instant; defaults to server time")
    transactions: List[TransactionSchema] = Field(default_factory=list)


class MonthlyEarningsSchema(BaseModel):
    month: str
    earned: float
    eligible_count: int


class CashbackStatsResponse(BaseModel):
    """Derived cashback statistics, money rounded to 2 decimals"""

    earned_this_month: float
    earned_last_month: float
    total_earned: float
    average_monthly_earned: float
    projected_yearly_cashback: float
    month_over_month_change: float
    eligible_transaction_count: int
    eligible_this_month: int
    eligible_last_month: int
    ineligible_transaction_count: int
    skipped_transaction_count: int
    monthly_earnings: List[MonthlyEarningsSchema]

    @classmethod
    def from_domain(cls, stats: CashbackStats) -> "CashbackStatsResponse":
        return cls(
            earned_this_month=_money(stats.earned_this_month),
            earned_last_month=_money(stats.earned_last_month),
            total_earned=_money(stats.total_earned),
            average_monthly_earned=_money(stats.average_monthly_earned),
            projected_yearly_cashback=_money(stats.projected_yearly_cashback),
            month_over_month_change=round(stats.month_over_month_change, 2),
            eligible_transaction_count=stats.eligible_transaction_count,
            eligible_this_month=stats.eligible_this_month,
            eligible_last_month=stats.eligible_last_month,
            ineligible_transaction_count=stats.ineligible_transaction_count,
            skipped_transaction_count=stats.skipped_transaction_count,
            monthly_earnings=[
                MonthlyEarningsSchema(month=m.key, earned=_money(m.earned), eligible_count=m.eligible_count)
                for m in stats.monthly_earnings
            ],
        )


class CashbackSummarySchema(BaseModel):
    total_spending: float
    eligible_spending: float
    total_cashback: float
    transaction_count: int
    eligible_transaction_count: int
    average_cashback_rate: float

    @classmethod
    def from_domain(cls, summary: CashbackSummary) -> "CashbackSummarySchema":
        return cls(
            total_spending=_money(summary.total_spending),
            eligible_spending=_money(summary.eligible_spending),
            total_cashback=_money(summary.total_cashback),
            transaction_count=summary.transaction_count,
            eligible_transaction_count=summary.eligible_transaction_count,
            average_cashback_rate=_money(summary.average_cashback_rate),
        )


class CashbackSummaryResponse(BaseModel):
    """Response for POST /v1/cashback/summary"""

    summary: CashbackSummarySchema
    by_month: Dict[str, CashbackSummarySchema]


class RewardsResponse(BaseModel):
    """Response for GET /v1/rewards"""

    gno_balance: float
    is_og_holder: bool
    reported_base_rate: float
    tier: TierSchema
    effective_rate: float
    distance: TierDistanceSchema
    progress: TierProgressSchema
    stats: CashbackStatsResponse
