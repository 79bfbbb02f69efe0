"""
Health check and observability endpoints.

Provides liveness and readiness probes plus a metrics snapshot.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from aichat import __version__
from aichat.core.metrics import metrics
from aichat.db import verify_database_connection

router = APIRouter(tags=["health"])


@router.get("/health")
async def healthcheck() -> dict[str, Any]:
    """Liveness probe."""
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/readyz")
async def readiness() -> JSONResponse:
    """
    Readiness probe.

    Reports not ready (503) while the database cannot be reached.
    """
    checks = {"database": verify_database_connection()}
    ready = all(checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        },
    )


@router.get("/metrics")
async def metrics_snapshot() -> dict[str, Any]:
    """In-process counters and gauges."""
    return metrics.snapshot()
