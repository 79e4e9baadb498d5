"""
AI Retry Queue - Deferred Gemini work.

When every model of a tier is rate limited the work is parked in
ai_retry_queue and picked up by the retry cron job. A task is:
- pending: not completed, due, attempt_count below max_attempts
- completed: completed_at set
- failed: not completed and out of attempts
"""
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from applyos.core.exceptions import AIRateLimitError, ApplyOSException, LLMError, ValidationError
from applyos.core.logging_config import get_logger
from applyos.database.connection import get_database
from applyos.database.models import RETRY_TASK_TYPES, AIRetryTask, Application, Question

logger = get_logger(__name__)

BASE_BACKOFF = timedelta(minutes=5)
MAX_BACKOFF = timedelta(minutes=30)
DEFAULT_MAX_ATTEMPTS = 5


def backoff_delay(attempt: int) -> timedelta:
    """5, 10, 20, 30, 30... minutes for attempt 1, 2, 3, 4, 5..."""
    return min(MAX_BACKOFF, BASE_BACKOFF * (2 ** (max(attempt, 1) - 1)))


class RetryQueue:
    """
    Persisted queue of AI tasks.

    Example:
        >>> queue = RetryQueue()
        >>> queue.queue_task(user_id, "parse_document", {"document_id": doc_id})
        >>> queue.process_pending_tasks()
    """

    def __init__(self, ai_service=None):
        self.db = get_database()
        self._ai_service = ai_service

    @property
    def ai(self):
        if self._ai_service is not None:
            return self._ai_service
        from applyos.services.ai_service import get_ai_service
        return get_ai_service()

    def queue_task(
        self,
        user_id: str,
        task_type: str,
        task_data: Dict[str, Any],
        scheduled_for: Optional[datetime] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        last_error: Optional[str] = None,
    ) -> str:
        if task_type not in RETRY_TASK_TYPES:
            raise ValidationError(f"Unknown retry task type: {task_type}", field="task_type")

        with self.db.get_session() as session:
            task = AIRetryTask(
                user_id=user_id,
                task_type=task_type,
                task_data=task_data,
                scheduled_retry_time=scheduled_for or datetime.utcnow(),
                attempt_count=1,
                max_attempts=max_attempts,
                last_error=last_error,
            )
            session.add(task)
            session.flush()
            task_id = task.id

        logger.info(f"Queued {task_type} retry task {task_id} for {user_id[:8]}")
        return task_id

    def get_pending_tasks(self, limit: int = 10, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Due tasks, earliest scheduled first."""
        now = now or datetime.utcnow()
        with self.db.get_session() as session:
            rows = (
                session.query(AIRetryTask)
                .filter(
                    AIRetryTask.completed_at.is_(None),
                    AIRetryTask.scheduled_retry_time <= now,
                    AIRetryTask.attempt_count < AIRetryTask.max_attempts,
                )
                .order_by(AIRetryTask.scheduled_retry_time)
                .limit(limit)
                .all()
            )
            return [row.to_dict() for row in rows]

    def retry_task(self, task_id: str, next_retry_time: datetime, error: Optional[str] = None) -> None:
        with self.db.get_session() as session:
            task = session.get(AIRetryTask, task_id)
            if task is None:
                return
            task.scheduled_retry_time = next_retry_time
            task.attempt_count = (task.attempt_count or 1) + 1
            task.last_error = error
            task.updated_at = datetime.utcnow()

    def complete_task(self, task_id: str) -> None:
        with self.db.get_session() as session:
            task = session.get(AIRetryTask, task_id)
            if task is not None:
                task.completed_at = datetime.utcnow()
        logger.info(f"Retry task {task_id} completed")

    def fail_task(self, task_id: str, error: str) -> None:
        """Give up on a task; it stays uncompleted with no attempts left."""
        with self.db.get_session() as session:
            task = session.get(AIRetryTask, task_id)
            if task is not None:
                task.last_error = error
                task.attempt_count = max(task.attempt_count or 0, task.max_attempts)
        logger.error(f"Retry task {task_id} failed: {error}")

    def get_queue_status(self) -> Dict[str, int]:
        with self.db.get_session() as session:
            base = session.query(AIRetryTask)
            pending = base.filter(
                AIRetryTask.completed_at.is_(None),
                AIRetryTask.attempt_count < AIRetryTask.max_attempts,
            ).count()
            completed = base.filter(AIRetryTask.completed_at.isnot(None)).count()
            failed = base.filter(
                AIRetryTask.completed_at.is_(None),
                AIRetryTask.attempt_count >= AIRetryTask.max_attempts,
            ).count()
        return {"pending": pending, "completed": completed, "failed": failed}

    # ------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------

    def process_pending_tasks(self, limit: int = 10) -> Dict[str, int]:
        """
        Run due tasks.

        Rate limited tasks are rescheduled for when a model frees up;
        other failures back off exponentially until max_attempts.
        """
        tasks = self.get_pending_tasks(limit)
        succeeded = 0
        failed = 0

        for task in tasks:
            handler = self._handlers().get(task["task_type"])
            if handler is None:
                self.fail_task(task["id"], f"Unknown task type: {task['task_type']}")
                failed += 1
                continue

            try:
                handler(task["user_id"], task["task_data"] or {})
            except AIRateLimitError as e:
                retry_at = e.next_available_time or datetime.utcnow() + timedelta(seconds=e.retry_after)
                self.retry_task(task["id"], retry_at, e.message)
                logger.warning(f"Retry task {task['id']} still rate limited, next try {retry_at.isoformat()}")
                failed += 1
                continue
            except ApplyOSException as e:
                self._back_off(task, e.message)
                failed += 1
                continue
            except KeyError as e:
                self.fail_task(task["id"], f"Malformed task data, missing {e}")
                failed += 1
                continue
            except Exception as e:
                logger.error(f"Retry task {task['id']} raised unexpectedly: {e}")
                self._back_off(task, str(e) or type(e).__name__)
                failed += 1
                continue

            self.complete_task(task["id"])
            succeeded += 1

        logger.info(f"Retry job: {len(tasks)} processed, {succeeded} succeeded, {failed} failed or re-queued")
        return {"tasksProcessed": len(tasks), "succeeded": succeeded, "failed": failed}

    def _back_off(self, task: Dict[str, Any], error: str) -> None:
        attempt = task["attempt_count"] or 1
        if attempt >= task["max_attempts"]:
            self.fail_task(task["id"], f"Max retry attempts exceeded: {error}")
            return
        self.retry_task(task["id"], datetime.utcnow() + backoff_delay(attempt), error)

    def _handlers(self) -> Dict[str, Callable[[str, Dict[str, Any]], None]]:
        return {
            "parse_document": self._parse_document,
            "generate_report": self._generate_report,
            "generate_answer": self._generate_answer,
            "generate_cover_letter": self._generate_cover_letter,
            "extract_questions": self._extract_questions,
        }

    def _parse_document(self, user_id: str, data: Dict[str, Any]) -> None:
        from applyos.services.document_service import DocumentService

        service = DocumentService(ai_service=self.ai)
        document = service.get_document(user_id, data["document_id"], include_text=True)
        parsed = self.ai.parse_document(document["extracted_text"] or "")
        service.save_analysis(user_id, data["document_id"], "success", parsed=parsed)

    def _generate_report(self, user_id: str, data: Dict[str, Any]) -> None:
        from applyos.services.document_service import DocumentService

        service = DocumentService(ai_service=self.ai)
        document = service.get_document(user_id, data["document_id"], include_text=True)
        report = self.ai.generate_document_report(document["extracted_text"] or "")
        service.save_report(user_id, data["document_id"], report)

    def _generate_answer(self, user_id: str, data: Dict[str, Any]) -> None:
        from applyos.services.application_service import ApplicationService
        from applyos.services.document_service import resolve_answer_context

        with self.db.get_session() as session:
            question = (
                session.query(Question)
                .join(Application, Application.id == Question.application_id)
                .filter(Question.id == data["question_id"], Application.user_id == user_id)
                .first()
            )
            if question is None:
                raise ValidationError("Question no longer exists", field="question_id")
            application = ApplicationService.get_owned(session, user_id, question.application_id)
            context = resolve_answer_context(session, application)
            text = question.question_text

        answer = self.ai.generate_answer(text, context)
        with self.db.get_session() as session:
            question = session.get(Question, data["question_id"])
            if question is not None:
                question.ai_answer = answer
                question.updated_at = datetime.utcnow()

    def _generate_cover_letter(self, user_id: str, data: Dict[str, Any]) -> None:
        from applyos.services.application_service import ApplicationService

        ApplicationService(ai_service=self.ai).generate_cover_letter(
            user_id, data["application_id"], data.get("instructions")
        )

    def _extract_questions(self, user_id: str, data: Dict[str, Any]) -> None:
        from applyos.services.question_service import QuestionService

        result = self.ai.extract_questions_from_url(data["url"])
        if result.error:
            raise LLMError(result.error)
        QuestionService(ai_service=self.ai).create_questions(user_id, data["application_id"], result.questions)


_retry_queue: Optional[RetryQueue] = None


def get_retry_queue() -> RetryQueue:
    global _retry_queue
    if _retry_queue is None:
        _retry_queue = RetryQueue()
    return _retry_queue
