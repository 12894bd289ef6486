"""Liveness and readiness checks."""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from src.config import settings
from src.db.database import check_db, check_redis

router = APIRouter(tags=["health"])

_started_at: float | None = None


def mark_started() -> None:
    global _started_at
    _started_at = time.monotonic()


def uptime_seconds() -> int:
    if _started_at is None:
        return 0
    return int(time.monotonic() - _started_at)


@router.get("/health")
async def health() -> dict:
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "uptime_seconds": uptime_seconds(),
    }


@router.get("/ready")
async def ready() -> JSONResponse:
    """Report 503 while Postgres or Redis is unreachable.

    A missing dish contract address does not fail readiness; holder counts
    answer 503 on their own in that case.
    """
    checks = {"database": await check_db(), "redis": await check_redis()}
    is_ready = all(checks.values())
    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "status": "ready" if is_ready else "degraded",
            **checks,
            "chain_configured": bool(settings.dishes_contract_address),
        },
    )
