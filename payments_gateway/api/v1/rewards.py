"""GET /v1/rewards - Cashback tier and statistics for the signed-in user"""

import time
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request

from payments_gateway.api.dependencies import (
    get_cashback_schedule,
    get_gnosis_pay_client,
    get_now,
    get_request_id,
    get_session_token,
)
from payments_gateway.api.v1.schemas import (
    CashbackStatsResponse,
    RewardsResponse,
    TierDistanceSchema,
    TierProgressSchema,
    TierSchema,
)
from payments_gateway.config import settings
from payments_gateway.domain.exceptions import (
    GnosisPayAPIError,
    InvalidBalanceError,
    UnauthorizedError,
)
from payments_gateway.domain.rewards import compute_stats, monthly_breakdown
from payments_gateway.domain.tiers import (
    CashbackSchedule,
    distance_to_next_tier,
    effective_rate,
    resolve_tier,
    tier_progress,
)
from payments_gateway.infrastructure.clients.gnosis_pay import GnosisPayClient
from payments_gateway.infrastructure.observability.logging import log_rewards_computed
from payments_gateway.infrastructure.observability.metrics import record_rewards

router = APIRouter()


@router.get("/rewards", response_model=RewardsResponse)
async def get_rewards(
    request: Request,
    token: str = Depends(get_session_token),
    client: GnosisPayClient = Depends(get_gnosis_pay_client),
    schedule: CashbackSchedule = Depends(get_cashback_schedule),
    now: datetime = Depends(get_now),
):
    """
    Combined rewards view.

    Flow:
    1. Fetch rewards info (GNO balance, OG status) and transactions from Gnosis Pay
    2. Resolve tier and effective rate from the balance
    3. Compute cashback statistics at that rate
    4. Estimate the payoff of the next tier from this month's eligible spend
    5. Record metrics and logs, return the combined view
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        # 1. Upstream data
        rewards_info, transactions = await client.get_rewards_and_transactions(token)

        # 2. Tier and rate
        tier = resolve_tier(rewards_info.gno_balance, schedule)
        rate = effective_rate(tier, rewards_info.is_og_holder, schedule)

        # 3. Statistics
        stats = compute_stats(transactions, rate, now=now, projection_months=settings.projection_months)

        # 4. Next-tier payoff based on this month's eligible spend
        this_month = monthly_breakdown(transactions, rate).get(now.strftime("%Y-%m"))
        monthly_spending = this_month.eligible_spending if this_month else 0
        progress = tier_progress(rewards_info.gno_balance, rewards_info.is_og_holder, monthly_spending, schedule)
        distance = distance_to_next_tier(rewards_info.gno_balance, schedule)

    except UnauthorizedError as e:
        logging.warning(f"Unauthorized: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=401, detail=str(e))

    except GnosisPayAPIError as e:
        logging.error(f"Gnosis Pay API error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Gnosis Pay service unavailable")

    except InvalidBalanceError as e:
        logging.error(f"Invalid balance from Gnosis Pay: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail="Gnosis Pay returned an invalid GNO balance")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    # Record metrics and logs
    duration_ms = (time.time() - start_time) * 1000
    record_rewards(tier.label, stats.skipped_transaction_count)
    log_rewards_computed(
        request_id,
        tier.label,
        float(rate),
        stats.eligible_transaction_count,
        stats.skipped_transaction_count,
        duration_ms,
    )

    return RewardsResponse(
        gno_balance=rewards_info.gno_balance,
        is_og_holder=rewards_info.is_og_holder,
        reported_base_rate=rewards_info.api_cashback_rate,
        tier=TierSchema.from_domain(tier),
        effective_rate=rate,
        distance=TierDistanceSchema.from_domain(distance),
        progress=TierProgressSchema.from_domain(progress),
        stats=CashbackStatsResponse.from_domain(stats),
    )
