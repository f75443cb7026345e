"""Cashback statistics engine - monthly earnings, trends and yearly projection"""

import logging
from collections import defaultdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Tuple

from payments_gateway.domain.exceptions import InvalidCashbackRateError
from payments_gateway.domain.models import (
    CashbackStats,
    CashbackSummary,
    MonthlyEarnings,
    Number,
    Transaction,
)
from payments_gateway.utils.date_utils import (
    YearMonth,
    month_of,
    shift_month,
    to_utc,
    trailing_months,
    utc_now,
)

PROJECTION_MONTHS = 6
MONTHS_PER_YEAR = 12

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def round_money(value: Decimal, places: int = 2) -> Decimal:
    """Display rounding, applied only when serializing"""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def validate_cashback_rate(cashback_rate: Number) -> Decimal:
    """Convert a percentage rate to Decimal, rejecting anything outside 0-100"""
    if isinstance(cashback_rate, bool) or not isinstance(cashback_rate, (int, float, Decimal)):
        raise InvalidCashbackRateError(f"Cashback rate must be a number, got {type(cashback_rate).__name__}")

    rate = Decimal(str(cashback_rate))
    if not rate.is_finite() or rate < 0 or rate > _HUNDRED:
        raise InvalidCashbackRateError(f"Cashback rate must be between 0 and 100, got {cashback_rate}")
    return rate


def _amount_of(txn: Transaction) -> Optional[Decimal]:
    """Absolute amount, or None when the record carries no usable amount"""
    amount = txn.amount
    if amount is None or isinstance(amount, bool):
        return None
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return abs(value)


def _well_formed(transactions: Iterable[Transaction]) -> Tuple[List[Tuple[Transaction, Decimal]], int]:
    """Split records into usable (txn, amount) pairs and a count of malformed ones"""
    usable = []
    skipped = 0
    for txn in transactions:
        amount = _amount_of(txn)
        if amount is None or not isinstance(txn.created_at, datetime):
            skipped += 1
            continue
        usable.append((txn, amount))
    return usable, skipped


def month_over_month_change(current: Decimal, previous: Decimal) -> float:
    """Percent change from previous to current; 0 when there is nothing to compare against"""
    if previous == 0:
        return 0.0
    return float((current - previous) / previous * _HUNDRED)


def compute_stats(
    transactions: Iterable[Transaction],
    cashback_rate: Number,
    now: Optional[datetime] = None,
    projection_months: int = PROJECTION_MONTHS,
) -> CashbackStats:
    """
    Derive cashback statistics from a transaction history.

    Requirements:
    - Only eligible transactions earn cashback: |amount| * rate / 100
    - Earnings are bucketed by UTC calendar month; each transaction lands in one bucket
    - earned_this_month / earned_last_month are the buckets of `now` and the month before
    - Projection averages the `projection_months` complete months before the current one,
      zero-filling empty months, shortened to the months covered by the history (min 1)
    - Malformed records (no amount or timestamp) are skipped and counted

    Args:
        transactions: Normalized transaction history
        cashback_rate: Effective rate in percent (e.g. 3 for 3%)
        now: Reference instant; defaults to the current UTC time
        projection_months: Trailing window used for the yearly projection

    Raises:
        InvalidCashbackRateError: rate is negative, above 100 or non-finite

    Example:
        €50 + €30 eligible this month at 2% → earned_this_month = €1.60
    """
    rate = validate_cashback_rate(cashback_rate)
    if projection_months < 1:
        raise ValueError(f"projection_months must be at least 1, got {projection_months}")

    now = to_utc(now) if now is not None else utc_now()
    current_month = month_of(now)
    previous_month = shift_month(current_month, -1)

    usable, skipped = _well_formed(transactions)
    if skipped:
        logging.warning(
            "Skipped malformed transactions",
            extra={"step": "compute_stats", "skipped_count": skipped},
        )

    # Accumulate earnings per month at full precision
    earned_by_month: Dict[YearMonth, Decimal] = defaultdict(Decimal)
    eligible_by_month: Dict[YearMonth, int] = defaultdict(int)
    ineligible_count = 0
    first_month: Optional[YearMonth] = None

    for txn, amount in usable:
        bucket = month_of(txn.created_at)
        if first_month is None or bucket < first_month:
            first_month = bucket

        if not txn.is_eligible_for_cashback:
            ineligible_count += 1
            continue

        earned_by_month[bucket] += amount * rate / _HUNDRED
        eligible_by_month[bucket] += 1

    earned_this_month = earned_by_month.get(current_month, _ZERO)
    earned_last_month = earned_by_month.get(previous_month, _ZERO)
    total_earned = sum(earned_by_month.values(), _ZERO)

    # Trailing window excludes the partial current month
    window = trailing_months(current_month, projection_months)
    if first_month is None or first_month >= current_month:
        # No completed month of history yet: current month stands alone
        averaged_months = [current_month]
    else:
        averaged_months = [month for month in window if month >= first_month]

    average_monthly = sum(
        (earned_by_month.get(month, _ZERO) for month in averaged_months), _ZERO
    ) / len(averaged_months)

    monthly_earnings = [
        MonthlyEarnings(
            year=year,
            month=month,
            earned=earned_by_month.get((year, month), _ZERO),
            eligible_count=eligible_by_month.get((year, month), 0),
        )
        for year, month in window + [current_month]
    ]

    return CashbackStats(
        earned_this_month=earned_this_month,
        earned_last_month=earned_last_month,
        total_earned=total_earned,
        average_monthly_earned=average_monthly,
        projected_yearly_cashback=average_monthly * MONTHS_PER_YEAR,
        month_over_month_change=month_over_month_change(earned_this_month, earned_last_month),
        eligible_transaction_count=sum(eligible_by_month.values()),
        eligible_this_month=eligible_by_month.get(current_month, 0),
        eligible_last_month=eligible_by_month.get(previous_month, 0),
        ineligible_transaction_count=ineligible_count,
        skipped_transaction_count=skipped,
        monthly_earnings=monthly_earnings,
    )


def summarize_cashback(transactions: Iterable[Transaction], cashback_rate: Number) -> CashbackSummary:
    """Spending vs cashback totals; malformed records are left out"""
    rate = validate_cashback_rate(cashback_rate)
    usable, _ = _well_formed(transactions)

    total_spending = sum((amount for _, amount in usable), _ZERO)
    eligible = [amount for txn, amount in usable if txn.is_eligible_for_cashback]
    eligible_spending = sum(eligible, _ZERO)
    total_cashback = eligible_spending * rate / _HUNDRED

    # Effective rate over eligible spend (avoid division by zero)
    average_rate = total_cashback / eligible_spending * _HUNDRED if eligible_spending > 0 else _ZERO

    return CashbackSummary(
        total_spending=total_spending,
        eligible_spending=eligible_spending,
        total_cashback=total_cashback,
        transaction_count=len(usable),
        eligible_transaction_count=len(eligible),
        average_cashback_rate=average_rate,
    )


def monthly_breakdown(transactions: Iterable[Transaction], cashback_rate: Number) -> Dict[str, CashbackSummary]:
    """CashbackSummary per UTC calendar month, keyed YYYY-MM in chronological order"""
    validate_cashback_rate(cashback_rate)
    usable, _ = _well_formed(transactions)

    grouped: Dict[str, List[Transaction]] = defaultdict(list)
    for txn, _ in usable:
        year, month = month_of(txn.created_at)
        grouped[f"{year:04d}-{month:02d}"].append(txn)

    return {key: summarize_cashback(grouped[key], cashback_rate) for key in sorted(grouped)}
