# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints (liveness, readiness, Prometheus scrape).
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from rotation_engine.core.config import settings
from rotation_engine.core.dependencies import get_execution_repo
from rotation_engine.services.coordinator import RUNNING

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check():
    """Liveness probe; also reports how many executions are registered and ticking."""
    executions = get_execution_repo().get_all()
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "executions_count": len(executions),
        "running_executions": sum(1 for c in executions if c.status in RUNNING),
    }


@router.get("/health/ready")
def readiness_check():
    return {
        "status": "ready",
        "service": settings.SERVICE_NAME,
        "tick_interval_seconds": settings.TICK_INTERVAL_SECONDS,
        "alert_forwarding": settings.ALERT_NOTIFICATIONS_ENABLED,
    }


@router.get("/metrics")
def prometheus_metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
