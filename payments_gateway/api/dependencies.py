"""Dependency injection for FastAPI endpoints"""

from datetime import datetime
from functools import lru_cache

from fastapi import Header, HTTPException, Request

from payments_gateway.config import settings
from payments_gateway.domain.tiers import CashbackSchedule
from payments_gateway.infrastructure.clients.gnosis_pay import GnosisPayClient
from payments_gateway.utils.date_utils import utc_now


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_gnosis_pay_client() -> GnosisPayClient:
    """Provide Gnosis Pay API client instance"""
    return GnosisPayClient()


@lru_cache
def get_cashback_schedule() -> CashbackSchedule:
    """Tier table with the configured OG bonus, validated once"""
    return CashbackSchedule(og_bonus_rate=settings.og_bonus_rate)


def get_now() -> datetime:
    """Reference instant for month bucketing, sampled once per request"""
    return utc_now()


def get_session_token(authorization: str | None = Header(default=None)) -> str:
    """Bearer token issued by Gnosis Pay after wallet sign-in"""
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Expected a Bearer token")

    return token.strip()
