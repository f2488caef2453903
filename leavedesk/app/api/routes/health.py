"""Liveness and readiness endpoints.

``/health`` only proves the process serves requests. ``/healthz`` probes
the database engine and Redis and answers 503 when either is down.
"""

from typing import Literal

import redis.asyncio as aioredis
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from leavedesk.app.config import Settings, get_settings

router = APIRouter()

ComponentCheck = tuple[bool, str]


class HealthReport(BaseModel):
    status: Literal["ok", "degraded"]
    components: dict[str, str]


async def check_db(engine: AsyncEngine | None) -> ComponentCheck:
    """Run ``SELECT 1`` on the app's engine.

    The in-memory store runs without an engine; that is reported as
    ``not_configured`` and counts as healthy.
    """
    if engine is None:
        return True, "not_configured"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        return False, f"error: {type(e).__name__}"

    return True, "ok"


async def check_redis(settings: Settings) -> ComponentCheck:
    """PING the rate limiter's Redis, when one is configured."""
    if not settings.redis_url:
        return True, "not_configured"

    client = aioredis.from_url(settings.redis_url)
    try:
        await client.ping()
    except Exception as e:
        return False, f"error: {type(e).__name__}"
    finally:
        await client.aclose()

    return True, "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe, always 200."""
    return {"status": "ok"}


@router.get("/healthz", response_model=HealthReport)
async def healthz(request: Request) -> JSONResponse:
    """Readiness probe with per-component status."""
    state = request.app.state
    settings = getattr(state, "settings", None) or get_settings()

    checks = {
        "db": await check_db(getattr(state, "engine", None)),
        "redis": await check_redis(settings),
    }
    healthy = all(ok for ok, _ in checks.values())

    report = HealthReport(
        status="ok" if healthy else "degraded",
        components={name: detail for name, (_, detail) in checks.items()},
    )
    return JSONResponse(report.model_dump(), status_code=200 if healthy else 503)
