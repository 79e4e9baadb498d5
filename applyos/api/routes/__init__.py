"""API route modules."""
from applyos.api.routes.health import router as health_router
from applyos.api.routes.applications import router as applications_router
from applyos.api.routes.imports import router as imports_router
from applyos.api.routes.questions import router as questions_router
from applyos.api.routes.notes import router as notes_router
from applyos.api.routes.documents import router as documents_router
from applyos.api.routes.notifications import router as notifications_router
from applyos.api.routes.profile import router as profile_router
from applyos.api.routes.ai import router as ai_router
from applyos.api.routes.analytics import router as analytics_router
from applyos.api.routes.capture import router as capture_router
from applyos.api.routes.cron import router as cron_router

__all__ = [
    "health_router",
    "applications_router",
    "imports_router",
    "questions_router",
    "notes_router",
    "documents_router",
    "notifications_router",
    "profile_router",
    "ai_router",
    "analytics_router",
    "capture_router",
    "cron_router",
]
