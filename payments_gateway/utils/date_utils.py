"""Date manipulation utilities"""

from datetime import datetime, timezone
from typing import List, Tuple

YearMonth = Tuple[int, int]


def to_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime (naive values are read as UTC)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def month_of(value: datetime) -> YearMonth:
    """UTC calendar month a timestamp falls in"""
    value = to_utc(value)
    return value.year, value.month


def shift_month(year_month: YearMonth, delta: int) -> YearMonth:
    """Move a (year, month) pair by delta months, crossing year boundaries"""
    year, month = year_month
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def trailing_months(anchor: YearMonth, count: int) -> List[YearMonth]:
    """The `count` months before anchor, oldest first (anchor excluded)"""
    return [shift_month(anchor, -offset) for offset in range(count, 0, -1)]
