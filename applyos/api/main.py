"""
FastAPI Application Entry Point.

This module creates and configures the FastAPI application instance.
It handles:
1. Application initialization
2. Router registration
3. Middleware configuration (audit, security headers, CORS)
4. Exception handlers mapping ApplyOS errors onto JSON responses
5. Startup/shutdown events

Run with: uvicorn applyos.api.main:app --reload
"""
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from applyos import __version__
from applyos.api.dependencies import epoch_seconds
from applyos.api.routes import (
    ai_router,
    analytics_router,
    applications_router,
    capture_router,
    cron_router,
    documents_router,
    health_router,
    imports_router,
    notes_router,
    notifications_router,
    profile_router,
    questions_router,
)
from applyos.core.audit import AuditMiddleware, SecurityHeadersMiddleware
from applyos.core.config import get_settings
from applyos.core.exceptions import AIRateLimitError, ApplyOSException, RateLimitExceeded
from applyos.core.logging_config import get_logger, setup_logging
from applyos.models.common import ErrorResponse


# Initialize logging before anything else
settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: log configuration, create missing tables
    - Shutdown: dispose the engine
    """
    logger.info(f"Starting {settings.app_name} {__version__} in {settings.app_env} mode")
    logger.info(f"AI configured: {settings.ai_enabled}")
    logger.info(f"Rate limiting: {settings.rate_limit_enabled}")
    logger.info(f"Audit Logging: {settings.enable_audit_logging}")
    if settings.is_production() and not settings.cron_secret:
        logger.warning("CRON_SECRET is not set; every /cron call will be rejected")

    from applyos.database.init_db import init_tables
    try:
        init_tables()
    except Exception as e:
        logger.error(f"Failed to auto-init tables: {e}")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    from applyos.database.connection import get_database
    get_database().close()


app = FastAPI(
    title="ApplyOS API",
    description="""
    Job application tracker with Gemini-powered assistance.

    ## Features

    - **Applications**: status pipeline, history, notes, questions, linked documents
    - **AI**: answers to application questions, cover letters, resume matching
    - **Documents**: resume parsing and improvement reports
    - **Analytics**: metrics, funnel, timeline and Sankey status flow
    - **Import**: CSV validation with duplicate detection
    - **Quick capture**: job page detection and extraction for the browser extension
    - **Notifications**: deadline reminders and weekly digests
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ============================================================
# Middleware Configuration (Order matters!)
# ============================================================

app.add_middleware(SecurityHeadersMiddleware)

if settings.enable_audit_logging:
    app.add_middleware(AuditMiddleware)
    logger.info("Audit logging middleware enabled")

if settings.is_development():
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.warning("CORS configured for development (all origins allowed)")
else:
    # Browser extension and web app only
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.app_url],
        allow_origin_regex=r"chrome-extension://.*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ============================================================
# Exception Handlers
# ============================================================

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """429 with Retry-After and the tier's X-RateLimit-* headers."""
    headers = {
        "Retry-After": str(exc.retry_after),
        "X-RateLimit-Limit": str(exc.limit),
        "X-RateLimit-Remaining": "0",
    }
    if exc.reset_at is not None:
        headers["X-RateLimit-Reset"] = str(epoch_seconds(exc.reset_at))
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(AIRateLimitError)
async def ai_rate_limit_handler(request: Request, exc: AIRateLimitError):
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Retry-After": str(exc.retry_after)},
    )


@app.exception_handler(ApplyOSException)
async def applyos_exception_handler(request: Request, exc: ApplyOSException):
    """Handle all custom ApplyOS exceptions."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings use the validation_error shape with status 400."""
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    body = ErrorResponse(
        error="validation_error",
        message=first.get("msg", "Invalid request"),
        details=f"field={field}" if field else None,
    )
    return JSONResponse(status_code=400, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle uncaught exceptions globally.

    Detailed error information is only included in development mode.
    """
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": str(exc) if settings.is_development() else None,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


# ============================================================
# Routers
# ============================================================

app.include_router(health_router)
# Import routes sit under /applications, so they register before /applications/{id}
app.include_router(imports_router)
app.include_router(applications_router)
app.include_router(questions_router)
app.include_router(notes_router)
app.include_router(documents_router)
app.include_router(notifications_router)
app.include_router(profile_router)
app.include_router(ai_router)
app.include_router(analytics_router)
app.include_router(capture_router)
app.include_router(cron_router)


# ============================================================
# Root Endpoint
# ============================================================

@app.get("/", include_in_schema=False)
async def root():
    return {
        "message": "ApplyOS API",
        "version": __version__,
        "documentation": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "applyos.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development()
    )
