"""
Question Service - Application questions and their AI answers.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from applyos.core.exceptions import AIRateLimitError, LLMError, NotFoundError, ValidationError
from applyos.core.logging_config import get_logger
from applyos.core.validators import sanitize_text
from applyos.database.connection import get_database
from applyos.database.models import Application, Question
from applyos.services.application_service import ApplicationService
from applyos.services.document_service import resolve_answer_context

logger = get_logger(__name__)

MAX_QUESTION_LENGTH = 5000
MAX_ANSWER_LENGTH = 20000


class QuestionService:

    def __init__(self, ai_service=None):
        self.db = get_database()
        self._ai_service = ai_service

    @property
    def ai(self):
        if self._ai_service is not None:
            return self._ai_service
        from applyos.services.ai_service import get_ai_service
        return get_ai_service()

    def list_questions(self, user_id: str, application_id: str) -> List[Dict[str, Any]]:
        """Oldest first."""
        with self.db.get_session() as session:
            application = ApplicationService.get_owned(session, user_id, application_id)
            return [q.to_dict() for q in application.questions]

    def create_question(
        self,
        user_id: str,
        application_id: str,
        question_text: str,
        ai_answer: Optional[str] = None,
    ) -> Dict[str, Any]:
        text = sanitize_text(question_text, max_length=MAX_QUESTION_LENGTH)
        if not text:
            raise ValidationError("Question text is required", field="question_text")

        with self.db.get_session() as session:
            ApplicationService.get_owned(session, user_id, application_id)
            question = Question(
                application_id=application_id,
                question_text=text,
                ai_answer=sanitize_text(ai_answer, max_length=MAX_ANSWER_LENGTH) or None,
            )
            session.add(question)
            session.flush()
            return question.to_dict()

    def create_questions(self, user_id: str, application_id: str, texts: List[str]) -> List[Dict[str, Any]]:
        """
        Bulk insert. Blank texts are skipped, as are texts already present
        on the application or repeated within the batch.
        """
        with self.db.get_session() as session:
            application = ApplicationService.get_owned(session, user_id, application_id)
            seen = {q.question_text.strip().lower() for q in application.questions}

            created = []
            for raw in texts:
                text = sanitize_text(raw, max_length=MAX_QUESTION_LENGTH)
                if not text or text.lower() in seen:
                    continue
                seen.add(text.lower())
                question = Question(application_id=application.id, question_text=text)
                session.add(question)
                created.append(question)

            session.flush()
            logger.info(f"Added {len(created)} questions to application {application_id}")
            return [q.to_dict() for q in created]

    def update_question(self, user_id: str, question_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with self.db.get_session() as session:
            question = self._get_owned(session, user_id, question_id)
            if "question_text" in data:
                text = sanitize_text(data["question_text"], max_length=MAX_QUESTION_LENGTH)
                if not text:
                    raise ValidationError("Question text is required", field="question_text")
                question.question_text = text
            for key in ("ai_answer", "manual_answer"):
                if key in data:
                    setattr(question, key, sanitize_text(data[key], max_length=MAX_ANSWER_LENGTH) or None)
            question.updated_at = datetime.utcnow()
            session.flush()
            return question.to_dict()

    def delete_question(self, user_id: str, question_id: str) -> None:
        with self.db.get_session() as session:
            session.delete(self._get_owned(session, user_id, question_id))

    def regenerate_answers(
        self,
        user_id: str,
        application_id: str,
        question_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Regenerate AI answers for one question or for all of them.

        For a single question any AI failure propagates. For all questions
        a failing question is skipped; an error is raised only when every
        question failed.

        Raises:
            NotFoundError: unknown application or question
            LLMError / AIRateLimitError: see above
        """
        with self.db.get_session() as session:
            application = ApplicationService.get_owned(session, user_id, application_id)
            context = resolve_answer_context(session, application)
            questions = [(q.id, q.question_text) for q in application.questions]

        if question_id is not None:
            questions = [q for q in questions if q[0] == question_id]
            if not questions:
                raise NotFoundError("Question", question_id)

        if not questions:
            return []

        answers: Dict[str, str] = {}
        last_error: Optional[Exception] = None
        for qid, text in questions:
            try:
                answers[qid] = self.ai.generate_answer(text, context)
            except (LLMError, AIRateLimitError) as e:
                if question_id is not None:
                    raise
                logger.warning(f"Answer generation failed for question {qid}: {e.message}")
                last_error = e

        if not answers:
            raise last_error

        with self.db.get_session() as session:
            rows = session.query(Question).filter(Question.id.in_(list(answers))).all()
            now = datetime.utcnow()
            for row in rows:
                row.ai_answer = answers[row.id]
                row.updated_at = now
            session.flush()
            result = [row.to_dict() for row in sorted(rows, key=lambda r: r.created_at)]

        logger.info(f"Regenerated {len(answers)}/{len(questions)} answers for application {application_id}")
        return result

    @staticmethod
    def _get_owned(session: Session, user_id: str, question_id: str) -> Question:
        question = (
            session.query(Question)
            .join(Application, Application.id == Question.application_id)
            .filter(Question.id == question_id, Application.user_id == user_id)
            .first()
        )
        if question is None:
            raise NotFoundError("Question", question_id)
        return question


_question_service: Optional[QuestionService] = None


def get_question_service() -> QuestionService:
    global _question_service
    if _question_service is None:
        _question_service = QuestionService()
    return _question_service
