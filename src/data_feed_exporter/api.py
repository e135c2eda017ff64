"""HTTP API surface for the data feed exporter."""

from __future__ import annotations

from fastapi import FastAPI, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .health import generate_health_report, generate_readiness_report
from .metrics import get_metrics


def register_health_routes(app: FastAPI) -> None:
    """Register health check endpoints.

    - GET /health: Overall status with per-job details
    - GET /health/livez: Liveness probe (always returns 200)
    - GET /health/readyz: Readiness probe (returns 200 if ready, 503 if not)
    """
    @app.get("/health", response_class=JSONResponse)
    async def health() -> JSONResponse:
        overall_status, status_code, job_details = generate_health_report()

        return JSONResponse(
            status_code=status_code,
            content={
                "status": overall_status,
                "jobs": job_details,
            },
        )

    @app.get("/health/livez", response_class=JSONResponse)
    async def livez() -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "alive"},
        )

    @app.get("/health/readyz", response_class=JSONResponse)
    async def readyz() -> JSONResponse:
        ready, readiness_details = generate_readiness_report()

        status_code = (
            status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
        )

        return JSONResponse(
            status_code=status_code,
            content={
                "status": "ready" if ready else "not_ready",
                "jobs": readiness_details,
            },
        )


def register_metrics_routes(app: FastAPI) -> None:
    """Register the Prometheus scrape endpoint at GET /metrics."""
    @app.get("/metrics", response_class=Response)
    async def metrics() -> Response:
        metric_data = generate_latest(get_metrics().registry)

        return Response(content=metric_data, media_type=CONTENT_TYPE_LATEST)


def register_routes(app: FastAPI) -> None:
    register_health_routes(app)
    register_metrics_routes(app)


__all__ = [
    "register_health_routes",
    "register_metrics_routes",
    "register_routes",
]
