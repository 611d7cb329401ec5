"""
Health checks

/health answers as long as the process is up. /health/ready also pings the
entity store and returns 503 when it is unreachable.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from secondhand.api.deps import get_store
from secondhand.services.entity_store import EntityStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness(store: EntityStore = Depends(get_store)):
    if not await store.ping():
        return JSONResponse(status_code=503, content={"status": "unavailable", "store": "unreachable"})
    return {"status": "ok", "store": "connected"}
