"""
Cron Routes - Scheduled jobs.

Every endpoint requires 'Authorization: Bearer <CRON_SECRET>'.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from applyos.api.dependencies import require_cron
from applyos.services.reminder_service import (
    NOTIFICATION_RETENTION_DAYS,
    cleanup_old_notifications,
    send_deadline_reminders,
    send_weekly_digests,
)
from applyos.services.retry_queue import get_retry_queue

router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(require_cron)])


@router.post("/deadline-reminders", summary="Daily deadline notifications")
def deadline_reminders() -> Dict[str, Any]:
    result = send_deadline_reminders()
    return {
        "success": True,
        "message": f"Processed {result['processed']} applications, sent {result['reminders_sent']} reminders",
        **result,
    }


@router.post("/cleanup-old-notifications")
def cleanup(days: int = Query(default=NOTIFICATION_RETENTION_DAYS, ge=1, le=365)) -> Dict[str, Any]:
    deleted = cleanup_old_notifications(days)
    return {"success": True, "deleted": deleted}


@router.post("/weekly-digest", summary="Weekly in-app summary")
def weekly_digest() -> Dict[str, Any]:
    return {"success": True, **send_weekly_digests()}


@router.post("/retry-ai-tasks", summary="Run due AI retry tasks")
def retry_ai_tasks() -> Dict[str, Any]:
    queue = get_retry_queue()
    result = queue.process_pending_tasks()
    return {**result, "queue": queue.get_queue_status()}
