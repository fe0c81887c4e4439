# fraudscore/api/v1/endpoints/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from fraudscore.api.deps import get_device_intel
from fraudscore.core.config import settings
from fraudscore.infra.db.session import get_db
from fraudscore.infra.detectors.device_intel import DeviceIntelClient
from fraudscore.schemas.health_schemas import ComponentStatus, HealthResponse, ScoringStatus, ServiceInfo

router = APIRouter(tags=["health"])

HISTORY_FEEDS = ["velocity-detection", "device-fingerprinting"]
DEVICE_FEEDS = ["device-fingerprinting"]
# A cache outage falls through to the provider
CACHE_FEEDS = []


async def _cache_status(request: Request) -> ComponentStatus:
    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        return ComponentStatus(
            status="operational",
            feeds=CACHE_FEEDS,
            detail="Redis cache not configured, using in-process cache",
        )
    try:
        await redis.ping()
        return ComponentStatus(status="operational", feeds=CACHE_FEEDS, detail="Redis connection OK")
    except Exception as e:
        return ComponentStatus(status="degraded_performance", feeds=CACHE_FEEDS, detail=f"Redis error: {e}")


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
    device_intel: DeviceIntelClient = Depends(get_device_intel),
):
    # Transaction history backs the velocity and known-device checks
    try:
        await db.execute(text("SELECT 1"))
        db_status = ComponentStatus(status="operational", feeds=HISTORY_FEEDS, detail="Database connection OK")
    except Exception as e:
        db_status = ComponentStatus(status="degraded_performance", feeds=HISTORY_FEEDS, detail=f"Database error: {e}")

    cache_status = await _cache_status(request)

    intel = device_intel.status()
    intel_status = ComponentStatus(
        status="degraded_performance" if intel["state"] == "error" else "operational",
        feeds=DEVICE_FEEDS,
        detail=f"Device intelligence provider {intel['state']}",
        last_success=intel["last_success"],
    )

    components = {
        "database": db_status,
        "cache": cache_status,
        "device_intel": intel_status,
    }
    degraded = [name for name, c in components.items() if c.status != "operational"]
    fallbacks = sorted({f for name in degraded for f in components[name].feeds})
    if fallbacks:
        description = f"Scoring available; no-data defaults in use for {', '.join(fallbacks)}."
    elif degraded:
        description = f"All signals available; degraded: {', '.join(degraded)}."
    else:
        description = "All signals available."
    scoring = ScoringStatus(
        indicator="degraded_performance" if degraded else "operational",
        description=description,
    )

    return HealthResponse(
        service=ServiceInfo(
            name=settings.PROJECT_NAME,
            version=settings.PROJECT_VERSION,
            model_version=settings.MODEL_VERSION,
            time=datetime.now(timezone.utc).isoformat(),
        ),
        scoring=scoring,
        components=components,
    )
