# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Rotation Service
================
Runs station rotation schedules: groups of players cycle through a fixed set
of stations on a timed cadence, with a countdown / transition state machine,
alerts that require acknowledgment, and per-rotation session records.

    preparing ─► active ─► transitioning ─► active ─► ... ─► completed
                   ▲  │
                   │  ▼
                   paused

Port: 8005
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rotation_engine.controllers import (
    execution_controller,
    schedule_controller,
    system_controller,
)
from rotation_engine.core.config import settings
from rotation_engine.core.dependencies import get_execution_service
from rotation_engine.core.logging import get_logger
from rotation_engine.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger("rotation-service")


# ── Lifespan ──────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Log startup; stop every execution clock on shutdown."""
    logger.info(
        "Rotation service starting (tick interval %.1fs)",
        settings.TICK_INTERVAL_SECONDS,
    )
    yield
    get_execution_service().shutdown()
    logger.info("Rotation service shut down")


# ── FastAPI App ───────────────────────────────────────────────────────────
app = FastAPI(
    title="Rotation Service",
    description="Schedules and executes station rotations for training groups.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


# ── Global exception handler ─────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled exception", extra={"request_id": req_id})
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc), "request_id": req_id},
    )


# ── Routers ───────────────────────────────────────────────────────────────
app.include_router(system_controller.router)
app.include_router(schedule_controller.router)
app.include_router(execution_controller.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
