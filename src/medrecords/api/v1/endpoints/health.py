"""
Health Check Endpoints.

Provides health and readiness endpoints for orchestration systems.
"""
import time
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config import Settings, get_settings
from ....core.exceptions import BlobStoreError
from ....core.responses import HealthCheck, HealthResponse
from ....db.session import get_db
from ..dependencies import BlobStoreDep

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the service and its dependencies.",
)
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
    db: Annotated[AsyncSession, Depends(get_db)],
    blob_store: BlobStoreDep,
) -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - Database connectivity
    - Blob storage reachability
    """
    checks: dict[str, HealthCheck] = {}

    db_start = time.time()
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = HealthCheck(
            status="healthy",
            latency_ms=round((time.time() - db_start) * 1000, 2),
            message="Connected",
        )
    except Exception as e:
        checks["database"] = HealthCheck(status="unhealthy", message=str(e))

    blob_start = time.time()
    try:
        await blob_store.list_blobs(settings.DOCTOR_IMAGES_BUCKET)
        checks["blob_storage"] = HealthCheck(
            status="healthy",
            latency_ms=round((time.time() - blob_start) * 1000, 2),
            message=f"Backend: {blob_store.backend.value}",
        )
    except BlobStoreError as e:
        checks["blob_storage"] = HealthCheck(status="degraded", message=e.message)

    overall_status = "healthy"
    if any(c.status == "unhealthy" for c in checks.values()):
        overall_status = "unhealthy"
    elif any(c.status == "degraded" for c in checks.values()):
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
        checks=checks,
    )


@router.get(
    "/ready",
    summary="Readiness probe",
    description="Returns 200 if the service is ready to accept traffic.",
)
async def readiness_probe(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict[str, str]:
    """Returns 200 only if the database answers."""
    await db.execute(text("SELECT 1"))
    return {"status": "ready"}


@router.get(
    "/live",
    summary="Liveness probe",
    description="Returns 200 if the service is alive.",
)
async def liveness_probe() -> dict[str, str]:
    return {"status": "alive"}
