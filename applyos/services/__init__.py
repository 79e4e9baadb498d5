"""
Services module - Business operations behind the API.

Each service scopes every query to the calling user and exposes a
module-level singleton accessor (get_*_service).
"""
from applyos.services.ai_service import AIService, get_ai_service
from applyos.services.analytics_service import AnalyticsService, get_analytics_service
from applyos.services.application_service import ApplicationService, get_application_service
from applyos.services.document_service import DocumentService, get_document_service
from applyos.services.note_service import NoteService, get_note_service
from applyos.services.notification_service import NotificationService, get_notification_service
from applyos.services.question_service import QuestionService, get_question_service
from applyos.services.retry_queue import RetryQueue, get_retry_queue
from applyos.services.user_service import UserService, get_user_service

__all__ = [
    "AIService",
    "get_ai_service",
    "AnalyticsService",
    "get_analytics_service",
    "ApplicationService",
    "get_application_service",
    "DocumentService",
    "get_document_service",
    "NoteService",
    "get_note_service",
    "NotificationService",
    "get_notification_service",
    "QuestionService",
    "get_question_service",
    "RetryQueue",
    "get_retry_queue",
    "UserService",
    "get_user_service",
]
