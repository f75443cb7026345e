"""POST /v1/cashback/* - Cashback statistics over caller-supplied transactions"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from payments_gateway.api.dependencies import get_now
from payments_gateway.api.v1.schemas import (
    CashbackStatsRequest,
    CashbackStatsResponse,
    CashbackSummaryResponse,
    CashbackSummarySchema,
)
from payments_gateway.config import settings
from payments_gateway.domain.exceptions import InvalidCashbackRateError
from payments_gateway.domain.rewards import compute_stats, monthly_breakdown, summarize_cashback

router = APIRouter()


@router.post("/cashback/stats", response_model=CashbackStatsResponse)
def cashback_stats(request_body: CashbackStatsRequest, now: datetime = Depends(get_now)):
    """
    Monthly earnings, trend and yearly projection for a transaction list.

    Records without an amount or timestamp are skipped and reported in
    skipped_transaction_count rather than failing the request.
    """
    transactions = [txn.to_domain() for txn in request_body.transactions]

    try:
        stats = compute_stats(
            transactions,
            request_body.cashback_rate,
            now=request_body.now or now,
            projection_months=settings.projection_months,
        )
    except InvalidCashbackRateError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return CashbackStatsResponse.from_domain(stats)


@router.post("/cashback/summary", response_model=CashbackSummaryResponse)
def cashback_summary(request_body: CashbackStatsRequest):
    """Spending vs cashback totals, overall and per calendar month"""
    transactions = [txn.to_domain() for txn in request_body.transactions]

    try:
        summary = summarize_cashback(transactions, request_body.cashback_rate)
        by_month = monthly_breakdown(transactions, request_body.cashback_rate)
    except InvalidCashbackRateError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return CashbackSummaryResponse(
        summary=CashbackSummarySchema.from_domain(summary),
        by_month={month: CashbackSummarySchema.from_domain(s) for month, s in by_month.items()},
    )
