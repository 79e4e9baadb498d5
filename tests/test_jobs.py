"""
Tests for the scheduled jobs: deadline reminders, notification cleanup,
weekly digests and the AI retry queue.
"""
from datetime import datetime, timedelta

import pytest

from applyos.core.exceptions import AIRateLimitError, LLMError, ValidationError
from applyos.database import AIRetryTask, Application, Notification, get_database
from applyos.services.application_service import ApplicationService
from applyos.services.document_service import DocumentService
from applyos.services.notification_service import NotificationService
from applyos.services.reminder_service import (
    build_weekly_digest,
    cleanup_old_notifications,
    days_until,
    deadline_message,
    digest_message,
    send_deadline_reminders,
    send_weekly_digests,
    urgency_label,
)
from applyos.services.retry_queue import RetryQueue, backoff_delay
from applyos.services.user_service import get_user_service
from tests.conftest import OTHER_USER_ID, USER_ID

RESUME_TEXT = "Experienced Python engineer building data platforms and APIs for a decade."


def messages(user_id=USER_ID):
    return [n["message"] for n in NotificationService().list_notifications(user_id, limit=50)]


class TestDeadlineHelpers:

    def test_days_until_rounds_down(self):
        today = datetime(2025, 3, 1)
        assert days_until(datetime(2025, 3, 1, 23, 59), today) == 0
        assert days_until(datetime(2025, 3, 4, 9), today) == 3
        assert days_until(datetime(2025, 2, 28, 12), today) == -1

    @pytest.mark.parametrize("days,label", [(0, "TODAY"), (1, "TODAY"), (3, "SOON"), (7, "UPCOMING")])
    def test_urgency(self, days, label):
        assert urgency_label(days) == label

    def test_message(self):
        assert deadline_message("SWE", 1) == "Deadline TODAY: SWE due in 1 day"
        assert deadline_message("SWE", 7) == "Deadline UPCOMING: SWE due in 7 days"


class TestDeadlineReminders:

    def test_reminds_on_matching_days_only(self, users):
        now = datetime.utcnow().replace(hour=8, minute=0, second=0, microsecond=0)
        service = ApplicationService()
        for title, offset in [("Today", timedelta(hours=10)), ("Soon", timedelta(days=3, hours=2)),
                              ("Later", timedelta(days=5)), ("Week", timedelta(days=7, hours=1)),
                              ("Past", timedelta(days=-2))]:
            service.create_application(USER_ID, {"title": title, "deadline": now + offset})
        service.create_application(USER_ID, {"title": "No deadline"})

        result = send_deadline_reminders(now=now)

        assert result == {"processed": 5, "reminders_sent": 3}
        assert sorted(messages()) == [
            "Deadline SOON: Soon due in 3 days",
            "Deadline TODAY: Today due in 0 days",
            "Deadline UPCOMING: Week due in 7 days",
        ]

    def test_second_run_same_day_sends_nothing(self, users):
        now = datetime.utcnow()
        ApplicationService().create_application(USER_ID, {"title": "Soon", "deadline": now + timedelta(days=1)})

        assert send_deadline_reminders(now=now)["reminders_sent"] == 1
        assert send_deadline_reminders(now=now)["reminders_sent"] == 0
        assert len(messages()) == 1

    def test_title_contained_in_another_title_is_still_reminded(self, users):
        now = datetime.utcnow()
        service = ApplicationService()
        service.create_application(USER_ID, {"title": "Senior Engineer", "deadline": now + timedelta(days=3)})
        service.create_application(USER_ID, {"title": "Engineer", "deadline": now + timedelta(days=3)})

        assert send_deadline_reminders(now=now)["reminders_sent"] == 2
        assert sorted(messages()) == [
            "Deadline SOON: Engineer due in 3 days",
            "Deadline SOON: Senior Engineer due in 3 days",
        ]

    def test_each_user_gets_their_own(self, users):
        now = datetime.utcnow()
        service = ApplicationService()
        service.create_application(USER_ID, {"title": "Mine", "deadline": now + timedelta(days=3)})
        service.create_application(OTHER_USER_ID, {"title": "Theirs", "deadline": now + timedelta(days=3)})

        send_deadline_reminders(now=now)

        assert messages() == ["Deadline SOON: Mine due in 3 days"]
        assert messages(OTHER_USER_ID) == ["Deadline SOON: Theirs due in 3 days"]


class TestCleanup:

    def test_deletes_only_old_notifications(self, users):
        notifications = NotificationService()
        old = notifications.create_notification(USER_ID, "info", "Old news")
        notifications.create_notification(OTHER_USER_ID, "info", "Fresh")
        with get_database().get_session() as session:
            row = session.get(Notification, old["id"])
            row.created_at = datetime.utcnow() - timedelta(days=45)

        assert cleanup_old_notifications(days=30) == 1
        assert messages() == []
        assert messages(OTHER_USER_ID) == ["Fresh"]


class TestWeeklyDigest:

    NOW = datetime(2025, 3, 10, 12)

    def _app(self, **fields):
        defaults = {"title": "Role", "company": None, "status": "draft", "deadline": None,
                    "updated_at": self.NOW - timedelta(days=30)}
        defaults.update(fields)
        return Application(**defaults)

    def test_build(self):
        apps = [
            self._app(title="A", company="Acme", status="submitted", updated_at=self.NOW - timedelta(days=2)),
            self._app(title="B", deadline=self.NOW + timedelta(days=10)),
            self._app(title="C", status="submitted", deadline=self.NOW + timedelta(days=2, hours=1)),
            self._app(title="D", deadline=self.NOW + timedelta(days=45)),
        ]
        digest = build_weekly_digest(apps, self.NOW)

        assert digest["weekStart"] == "2025-03-03"
        assert digest["weekEnd"] == "2025-03-10"
        assert digest["totalApplications"] == 4
        assert digest["updatedThisWeek"] == [{"title": "A", "company": "Acme", "status": "submitted"}]
        assert [(d["title"], d["daysUntil"]) for d in digest["upcomingDeadlines"]] == [("C", 3), ("B", 10)]
        assert digest["upcomingDeadlines"][0]["company"] == "Unknown"
        assert digest["statusCounts"] == {"submitted": 2, "draft": 2}

    def test_message(self):
        digest = build_weekly_digest([self._app(title="C", deadline=self.NOW + timedelta(days=2))], self.NOW)
        assert digest_message(digest) == (
            "Weekly summary (2025-03-03 - 2025-03-10): 1 applications tracked, "
            "0 updated this week, 1 deadlines in the next 30 days. Next up: C in 2 day(s)."
        )

    def test_opted_out_users_are_skipped(self, users):
        ApplicationService().create_application(USER_ID, {"title": "Mine"})
        ApplicationService().create_application(OTHER_USER_ID, {"title": "Theirs"})
        get_user_service().update_preferences(OTHER_USER_ID, email_notifications=False)

        assert send_weekly_digests() == {"digests_sent": 1, "skipped": 1}
        assert messages()[0].startswith("Weekly summary")
        assert messages(OTHER_USER_ID) == []


class TestRetryQueue:

    @pytest.fixture
    def queue(self, users, mock_ai):
        return RetryQueue()

    def test_backoff(self):
        assert [backoff_delay(n) for n in (1, 2, 3, 4, 5)] == [
            timedelta(minutes=5), timedelta(minutes=10), timedelta(minutes=20),
            timedelta(minutes=30), timedelta(minutes=30),
        ]

    def test_unknown_task_type(self, queue):
        with pytest.raises(ValidationError):
            queue.queue_task(USER_ID, "send_fax", {})

    def test_only_due_tasks_are_pending(self, queue):
        queue.queue_task(USER_ID, "parse_document", {"document_id": "a"})
        queue.queue_task(USER_ID, "parse_document", {"document_id": "b"},
                         scheduled_for=datetime.utcnow() + timedelta(hours=1))
        pending = queue.get_pending_tasks()
        assert [t["task_data"] for t in pending] == [{"document_id": "a"}]
        assert queue.get_queue_status() == {"pending": 2, "completed": 0, "failed": 0}

    def test_parse_document_task_completes(self, queue, mock_ai):
        docs = DocumentService()
        doc = docs.register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)
        mock_ai.parse_document.return_value = {"skills": ["Python"]}
        queue.queue_task(USER_ID, "parse_document", {"document_id": doc["id"]})

        assert queue.process_pending_tasks() == {"tasksProcessed": 1, "succeeded": 1, "failed": 0}
        assert docs.get_document(USER_ID, doc["id"])["analysis_status"] == "success"
        assert queue.get_queue_status() == {"pending": 0, "completed": 1, "failed": 0}

    def test_rate_limited_task_is_rescheduled(self, queue, mock_ai):
        docs = DocumentService()
        doc = docs.register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)
        retry_at = datetime.utcnow() + timedelta(minutes=3)
        mock_ai.parse_document.side_effect = AIRateLimitError(retry_at)
        task_id = queue.queue_task(USER_ID, "parse_document", {"document_id": doc["id"]})

        assert queue.process_pending_tasks()["failed"] == 1

        with get_database().get_session() as session:
            task = session.get(AIRetryTask, task_id)
            assert task.attempt_count == 2
            assert task.scheduled_retry_time == retry_at
            assert task.completed_at is None

    def test_failure_backs_off(self, queue, mock_ai):
        docs = DocumentService()
        doc = docs.register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)
        mock_ai.parse_document.side_effect = LLMError("garbled")
        task_id = queue.queue_task(USER_ID, "parse_document", {"document_id": doc["id"]})

        before = datetime.utcnow()
        queue.process_pending_tasks()

        with get_database().get_session() as session:
            task = session.get(AIRetryTask, task_id)
            assert task.last_error == "garbled"
            assert task.scheduled_retry_time >= before + timedelta(minutes=5)

    def test_exhausted_attempts_fail_task(self, queue, mock_ai):
        mock_ai.parse_document.side_effect = LLMError("garbled")
        doc = DocumentService().register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)
        queue.queue_task(USER_ID, "parse_document", {"document_id": doc["id"]}, max_attempts=2)

        queue.process_pending_tasks()

        assert queue.get_queue_status() == {"pending": 0, "completed": 0, "failed": 1}

    def test_unexpected_error_does_not_stop_the_batch(self, queue, mock_ai):
        docs = DocumentService()
        broken = docs.register_document(USER_ID, "broken.pdf", extracted_text="BROKEN " + RESUME_TEXT)
        good = docs.register_document(USER_ID, "resume.pdf", extracted_text=RESUME_TEXT)

        def parse(text):
            if text.startswith("BROKEN"):
                raise AttributeError("'str' object has no attribute 'get'")
            return {"skills": {"technical": ["Python"]}}

        mock_ai.parse_document.side_effect = parse
        broken_task = queue.queue_task(USER_ID, "parse_document", {"document_id": broken["id"]})
        queue.queue_task(USER_ID, "parse_document", {"document_id": good["id"]})

        assert queue.process_pending_tasks() == {"tasksProcessed": 2, "succeeded": 1, "failed": 1}
        assert docs.get_document(USER_ID, good["id"])["analysis_status"] == "success"
        with get_database().get_session() as session:
            task = session.get(AIRetryTask, broken_task)
            assert task.completed_at is None
            assert "no attribute" in task.last_error

    def test_malformed_task_fails(self, queue):
        queue.queue_task(USER_ID, "generate_cover_letter", {})
        assert queue.process_pending_tasks()["failed"] == 1
        assert queue.get_queue_status()["failed"] == 1

    def test_cover_letter_task(self, queue, mock_ai):
        app = ApplicationService().create_application(USER_ID, {"title": "SWE"})
        mock_ai.generate_cover_letter.return_value = "Dear team"
        queue.queue_task(USER_ID, "generate_cover_letter", {"application_id": app["id"]})

        queue.process_pending_tasks()

        assert ApplicationService().get_application(USER_ID, app["id"])["ai_cover_letter"] == "Dear team"
