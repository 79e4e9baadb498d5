"""
Health Check Routes - Liveness and readiness probes.

- GET /health       : the process is up
- GET /health/ready : the database answers
"""
from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from applyos import __version__
from applyos.core.config import get_settings
from applyos.core.logging_config import get_logger
from applyos.database.connection import get_database
from applyos.models.common import HealthResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check endpoint",
)
async def health_check() -> HealthResponse:
    """Liveness only; dependencies are not checked."""
    logger.debug("Health check requested")
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.utcnow(),
        ai_configured=get_settings().ai_enabled,
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness check endpoint",
    description="Returns 503 when the database cannot be reached.",
)
def readiness_check():
    connected = get_database().check_connection()
    body = HealthResponse(
        status="ready" if connected else "unavailable",
        version=__version__,
        timestamp=datetime.utcnow(),
        database="connected" if connected else "unreachable",
        ai_configured=get_settings().ai_enabled,
    )
    if not connected:
        logger.error("Readiness check failed: database unreachable")
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
    return body
