from fastapi import status
from fastapi.responses import JSONResponse

from vulnboard.api.router import CustomAPIRouter
from vulnboard.core.cache import cache_service
from vulnboard.db.mongodb import db

router = CustomAPIRouter()


@router.get("/live", summary="Liveness Probe")
async def liveness():
    """
    Liveness probe to check if the application process is running.
    """
    return {"status": "alive"}


@router.get("/ready", summary="Readiness Probe")
async def readiness():
    """
    Readiness probe.
    Checks:
    1. MongoDB connectivity (ping)
    2. Redis cache availability (optional - lookups fall through to MongoDB without it)
    """
    components = {"database": "unknown", "cache": "unknown"}
    is_ready = True

    try:
        if db.client:
            await db.client.admin.command("ping")
            components["database"] = "connected"
        else:
            components["database"] = "client_not_initialized"
            is_ready = False
    except Exception as e:
        components["database"] = f"error: {str(e)}"
        is_ready = False

    try:
        cache_health = await cache_service.health_check()
        if cache_health.get("status") == "healthy":
            components["cache"] = "connected"
        else:
            components["cache"] = "unavailable (degraded mode)"
    except Exception as e:
        components["cache"] = f"unavailable: {str(e)}"

    if is_ready:
        return {"status": "ready", "components": components}

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "components": components},
    )
