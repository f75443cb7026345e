"""FastAPI application factory"""

from fastapi import Depends, FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from payments_gateway.api.dependencies import get_cashback_schedule
from payments_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from payments_gateway.api.v1 import cashback, rewards, tiers
from payments_gateway.domain.tiers import CashbackSchedule
from payments_gateway.infrastructure.observability.logging import setup_logging
from payments_gateway.config import settings

setup_logging(settings.log_level, settings.service_name)


def create_app() -> FastAPI:
    """
    Build the gateway app.

    The cashback schedule is built here once so a misconfigured OG bonus
    fails at startup instead of on the first tier request.
    """
    get_cashback_schedule()

    app = FastAPI(
        title="Payments Gateway",
        description="Gnosis Pay cashback tiers and rewards statistics",
        version="0.1.0",
    )

    # Last added runs first, so every request gets an id before it is timed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check(schedule: CashbackSchedule = Depends(get_cashback_schedule)):
        return {
            "status": "ok",
            "service": settings.service_name,
            "tier_count": len(schedule.tiers),
            "og_bonus_rate": schedule.og_bonus_rate,
            "upstream": settings.gnosis_pay_api_base,
        }

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for module, tag in ((tiers, "tiers"), (cashback, "cashback"), (rewards, "rewards")):
        app.include_router(module.router, prefix="/v1", tags=[tag])

    return app


app = create_app()
