"""
Reminder Service - Scheduled jobs run through the cron endpoints.

- Deadline reminders: one in-app notification per application whose
  deadline is today or 1, 3 or 7 days away (UTC calendar days)
- Old notification cleanup
- Weekly digest posted as an in-app notification
"""
import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from applyos.core.logging_config import get_logger
from applyos.database.connection import get_database
from applyos.database.models import Application, User
from applyos.services.notification_service import (
    find_recent_notification,
    get_notification_service,
    record_notification,
)

logger = get_logger(__name__)

REMIND_DAYS = (0, 1, 3, 7)
NOTIFICATION_RETENTION_DAYS = 30
DIGEST_WINDOW_DAYS = 7
DIGEST_DEADLINE_DAYS = 30


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def days_until(deadline: datetime, today: datetime) -> int:
    """Whole days from today's midnight to the deadline, rounded down."""
    return math.floor((deadline - today).total_seconds() / 86400)


def urgency_label(days: int) -> str:
    if days <= 1:
        return "TODAY"
    if days <= 3:
        return "SOON"
    return "UPCOMING"


def deadline_message(title: str, days: int) -> str:
    """
    >>> deadline_message("SWE Intern", 3)
    'Deadline SOON: SWE Intern due in 3 days'
    """
    plural = "" if days == 1 else "s"
    return f"Deadline {urgency_label(days)}: {title} due in {days} day{plural}"


def send_deadline_reminders(now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Create deadline notifications for every user.

    An application already reminded today (a deadline notification since
    midnight whose message names exactly its title) is skipped.
    """
    today = start_of_day(now or datetime.utcnow())
    db = get_database()
    sent = 0

    with db.get_session() as session:
        applications = session.query(Application).filter(Application.deadline.isnot(None)).all()

        for application in applications:
            days = days_until(application.deadline, today)
            if days not in REMIND_DAYS:
                continue

            if find_recent_notification(
                session, application.user_id, "deadline", today, f": {application.title} due in "
            ):
                logger.debug(f"Deadline reminder already sent today for {application.id}")
                continue

            record_notification(
                session,
                application.user_id,
                "deadline",
                deadline_message(application.title, days),
            )
            sent += 1

        processed = len(applications)

    logger.info(f"Deadline reminders: processed {processed} applications, sent {sent}")
    return {"processed": processed, "reminders_sent": sent}


def cleanup_old_notifications(days: int = NOTIFICATION_RETENTION_DAYS, now: Optional[datetime] = None) -> int:
    cutoff = (now or datetime.utcnow()) - timedelta(days=days)
    deleted = get_notification_service().delete_older_than(cutoff)
    logger.info(f"Deleted {deleted} notifications older than {days} days")
    return deleted


def build_weekly_digest(applications: List[Application], now: datetime) -> Dict[str, Any]:
    """
    Summary of one user's week.

    updated: applications updated since the start of the day 7 days ago.
    upcoming: deadlines between now and 30 days out, soonest first.
    """
    week_start = start_of_day(now - timedelta(days=DIGEST_WINDOW_DAYS))
    horizon = now + timedelta(days=DIGEST_DEADLINE_DAYS)

    updated = [
        {"title": app.title, "company": app.company or "Unknown", "status": app.status}
        for app in applications
        if app.updated_at and week_start <= app.updated_at <= now
    ]
    upcoming = sorted(
        (
            {
                "title": app.title,
                "company": app.company or "Unknown",
                "daysUntil": math.ceil((app.deadline - now).total_seconds() / 86400),
            }
            for app in applications
            if app.deadline and now <= app.deadline <= horizon
        ),
        key=lambda item: item["daysUntil"],
    )

    return {
        "weekStart": week_start.date().isoformat(),
        "weekEnd": now.date().isoformat(),
        "totalApplications": len(applications),
        "updatedThisWeek": updated,
        "upcomingDeadlines": upcoming,
        "statusCounts": dict(Counter(app.status for app in applications)),
    }


def digest_message(digest: Dict[str, Any]) -> str:
    parts = [
        f"Weekly summary ({digest['weekStart']} - {digest['weekEnd']}):",
        f"{digest['totalApplications']} applications tracked,",
        f"{len(digest['updatedThisWeek'])} updated this week,",
        f"{len(digest['upcomingDeadlines'])} deadlines in the next 30 days.",
    ]
    if digest["upcomingDeadlines"]:
        nearest = digest["upcomingDeadlines"][0]
        parts.append(f"Next up: {nearest['title']} in {nearest['daysUntil']} day(s).")
    return " ".join(parts)


def send_weekly_digests(now: Optional[datetime] = None) -> Dict[str, int]:
    """Post an info digest to each user with applications and notifications enabled."""
    now = now or datetime.utcnow()
    db = get_database()
    sent = 0
    skipped = 0

    with db.get_session() as session:
        user_ids = [row[0] for row in session.query(Application.user_id).distinct()]
        for user_id in user_ids:
            user = session.get(User, user_id)
            if user is not None and not user.email_notifications:
                skipped += 1
                continue

            applications = session.query(Application).filter(Application.user_id == user_id).all()
            digest = build_weekly_digest(applications, now)
            record_notification(session, user_id, "info", digest_message(digest))
            sent += 1

    logger.info(f"Weekly digests: sent {sent}, skipped {skipped}")
    return {"digests_sent": sent, "skipped": skipped}
