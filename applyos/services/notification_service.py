"""
Notification Service - In-app notifications.

Notifications are created by status changes, deadline reminders, the
weekly digest and background AI jobs. Creation can be de-duplicated:
an identical message of the same type inside the suppression window is
not stored twice.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from applyos.core.exceptions import NotFoundError, ValidationError
from applyos.core.logging_config import get_logger
from applyos.database.connection import get_database
from applyos.database.models import NOTIFICATION_TYPES, Notification

logger = get_logger(__name__)

STATUS_NOTIFICATION_WINDOW = timedelta(seconds=60)


def find_recent_notification(
    session: Session,
    user_id: str,
    notification_type: str,
    since: datetime,
    *fragments: str,
) -> Optional[Notification]:
    """Newest notification of a type created after since whose message contains every fragment."""
    query = session.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.type == notification_type,
        Notification.created_at >= since,
    )
    for fragment in fragments:
        query = query.filter(Notification.message.contains(fragment, autoescape=True))
    return query.order_by(Notification.created_at.desc()).first()


def record_notification(
    session: Session,
    user_id: str,
    notification_type: str,
    message: str,
    suppress_within: Optional[timedelta] = None,
) -> Optional[Notification]:
    """
    Add a notification inside an open session.

    Returns None when an identical notification exists within suppress_within.
    """
    if notification_type not in NOTIFICATION_TYPES:
        raise ValidationError(f"Invalid notification type: {notification_type}", field="type")

    if suppress_within is not None:
        since = datetime.utcnow() - suppress_within
        existing = (
            session.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.type == notification_type,
                Notification.message == message,
                Notification.created_at >= since,
            )
            .first()
        )
        if existing is not None:
            logger.debug(f"Suppressed duplicate {notification_type} notification for {user_id[:8]}")
            return None

    notification = Notification(user_id=user_id, type=notification_type, message=message)
    session.add(notification)
    session.flush()
    return notification


def status_change_message(title: str, old_status: str, new_status: str) -> str:
    return f'Your application for "{title}" status changed from {old_status} to {new_status}'


class NotificationService:
    """Read and manage a user's notifications."""

    def __init__(self):
        self.db = get_database()

    def list_notifications(self, user_id: str, limit: int = 10, unread_only: bool = False) -> List[Dict[str, Any]]:
        with self.db.get_session() as session:
            query = session.query(Notification).filter(Notification.user_id == user_id)
            if unread_only:
                query = query.filter(Notification.is_read.is_(False))
            rows = query.order_by(Notification.created_at.desc()).limit(limit).all()
            return [row.to_dict() for row in rows]

    def unread_count(self, user_id: str) -> int:
        with self.db.get_session() as session:
            return (
                session.query(func.count(Notification.id))
                .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
                .scalar()
            ) or 0

    def create_notification(
        self,
        user_id: str,
        notification_type: str,
        message: str,
        suppress_within: Optional[timedelta] = None,
    ) -> Optional[Dict[str, Any]]:
        with self.db.get_session() as session:
            notification = record_notification(session, user_id, notification_type, message, suppress_within)
            return notification.to_dict() if notification else None

    def has_recent_notification(
        self,
        user_id: str,
        notification_type: str,
        *fragments: str,
        since: datetime,
    ) -> bool:
        with self.db.get_session() as session:
            return find_recent_notification(session, user_id, notification_type, since, *fragments) is not None

    def mark_as_read(self, user_id: str, notification_id: str) -> Dict[str, Any]:
        with self.db.get_session() as session:
            notification = self._get_owned(session, user_id, notification_id)
            notification.is_read = True
            return notification.to_dict()

    def mark_all_as_read(self, user_id: str) -> int:
        with self.db.get_session() as session:
            updated = (
                session.query(Notification)
                .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
                .update({Notification.is_read: True}, synchronize_session=False)
            )
        logger.info(f"Marked {updated} notifications read for {user_id[:8]}")
        return updated

    def delete_notification(self, user_id: str, notification_id: str) -> None:
        with self.db.get_session() as session:
            session.delete(self._get_owned(session, user_id, notification_id))

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete every user's notifications created before cutoff."""
        with self.db.get_session() as session:
            deleted = (
                session.query(Notification)
                .filter(Notification.created_at < cutoff)
                .delete(synchronize_session=False)
            )
        return deleted

    @staticmethod
    def _get_owned(session: Session, user_id: str, notification_id: str) -> Notification:
        notification = (
            session.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        return notification


_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
