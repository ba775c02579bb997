"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool

from kavach.core.errors import KavachError
from kavach.core.settings import settings
from kavach.services.storage import get_zone_store

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/store")
async def store_health():
    """
    Store connectivity check.
    Lists zones without recomputing them.
    """
    try:
        zones = await run_in_threadpool(lambda: get_zone_store().list_all())
    except (KavachError, RuntimeError) as e:
        raise HTTPException(status_code=503, detail=f"Store connection failed: {str(e)}")

    return {
        "status": "healthy",
        "backend": "memory" if settings.USE_MEMORY_STORE else "firestore",
        "connected": True,
        "zones_count": len(zones),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
