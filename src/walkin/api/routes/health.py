from __future__ import annotations

from fastapi import APIRouter, Response, status

from walkin.infrastructure.cache.redis_client import ping_redis
from walkin.infrastructure.db.session import ping_database
from walkin.infrastructure.settings import load_settings

router = APIRouter()


@router.get("/health/live")
def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
def ready(response: Response) -> dict[str, object]:
    """Postgres and Redis gate readiness; card payments only change the reported mode."""
    postgres_ready = ping_database(timeout_seconds=1.0)
    redis_ready = ping_redis(timeout_seconds=1.0)
    settings = load_settings()
    payments = "card_and_cash" if settings.stripe_secret_key else "cash_only"

    if postgres_ready and redis_ready:
        return {"status": "ok", "payments": payments}

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "unavailable",
        "payments": payments,
        "checks": {"postgres": postgres_ready, "redis": redis_ready},
    }
