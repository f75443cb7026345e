"""GET /v1/tiers - Cashback tier table and balance-to-tier resolution"""

from fastapi import APIRouter, Depends, HTTPException, Query

from payments_gateway.api.dependencies import get_cashback_schedule
from payments_gateway.api.v1.schemas import (
    TierDistanceSchema,
    TierProgressSchema,
    TierResolutionResponse,
    TierSchema,
    TierTableResponse,
)
from payments_gateway.domain.exceptions import InvalidBalanceError
from payments_gateway.domain.tiers import (
    CashbackSchedule,
    distance_to_next_tier,
    effective_rate,
    resolve_tier,
    tier_progress,
)

router = APIRouter()


@router.get("/tiers", response_model=TierTableResponse)
def list_tiers(schedule: CashbackSchedule = Depends(get_cashback_schedule)):
    """Full tier table, lowest tier first"""
    return TierTableResponse(
        tiers=[TierSchema.from_domain(tier) for tier in schedule.tiers],
        og_bonus_rate=schedule.og_bonus_rate,
    )


@router.get("/tiers/resolve", response_model=TierResolutionResponse)
def resolve(
    gno_balance: float = Query(..., description="GNO held by the user"),
    is_og_holder: bool = Query(False, description="Holds the OG NFT"),
    monthly_spending: float = Query(0, ge=0, description="Used to estimate extra cashback at the next tier"),
    schedule: CashbackSchedule = Depends(get_cashback_schedule),
):
    """
    Resolve tier, effective rate and distance to the next tier for a balance.

    Returns 422 for negative or non-finite balances.
    """
    try:
        tier = resolve_tier(gno_balance, schedule)
        distance = distance_to_next_tier(gno_balance, schedule)
        progress = tier_progress(gno_balance, is_og_holder, monthly_spending, schedule)
    except InvalidBalanceError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return TierResolutionResponse(
        gno_balance=gno_balance,
        is_og_holder=is_og_holder,
        tier=TierSchema.from_domain(tier),
        effective_rate=effective_rate(tier, is_og_holder, schedule),
        distance=TierDistanceSchema.from_domain(distance),
        progress=TierProgressSchema.from_domain(progress),
    )
