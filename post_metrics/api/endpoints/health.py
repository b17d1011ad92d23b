from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from post_metrics.core.logger import get_logger

router = APIRouter()
logger = get_logger("post_metrics.health")


async def _primary_store_status(request: Request) -> str:
    """ClickHouse being down is a degraded state, not an outage: the cache
    tiers and the remote API still answer."""
    try:
        exists = await request.app.state.primary.tables_exist()
    except Exception as e:
        logger.warning("primary_store_probe_failed", extra={"error": str(e)})
        return "unavailable"
    return "available" if exists else "unavailable"


@router.get("/healthz")
async def healthz(request: Request):
    """Redis backs the cache tiers and the sort projection, so it gates health."""
    try:
        await request.app.state.redis.ping()
    except Exception as e:
        return JSONResponse(
            status_code=503, content={"status": "unhealthy", "redis": str(e)}
        )
    return {
        "status": "ok",
        "redis": "ok",
        "primary_store": await _primary_store_status(request),
    }


@router.get("/readyz")
async def readyz(request: Request):
    if not request.app.state.ready_event.is_set():
        return JSONResponse(status_code=503, content={"status": "starting"})
    return {
        "status": "ready",
        "primary_store": await _primary_store_status(request),
    }
