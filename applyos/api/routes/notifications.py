"""
Notification Routes - In-app notifications.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, status

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.core.auth import AuthenticatedUser
from applyos.services.notification_service import get_notification_service

router = APIRouter(tags=["Notifications"], dependencies=[Depends(rate_limit("general"))])


@router.get("/notifications", summary="Newest first, with the unread count")
def list_notifications(
    limit: int = Query(default=10, ge=1, le=100),
    unread_only: bool = Query(default=False),
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    service = get_notification_service()
    return {
        "notifications": service.list_notifications(user.id, limit=limit, unread_only=unread_only),
        "unread_count": service.unread_count(user.id),
    }


@router.post("/notifications/read-all")
def mark_all_read(user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, int]:
    return {"updated": get_notification_service().mark_all_as_read(user.id)}


@router.post("/notifications/{notification_id}/read")
def mark_read(notification_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    return get_notification_service().mark_as_read(user.id, notification_id)


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(notification_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> None:
    get_notification_service().delete_notification(user.id, notification_id)
