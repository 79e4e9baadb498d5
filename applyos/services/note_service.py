"""
Note Service - Free-form notes attached to an application.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from applyos.core.exceptions import NotFoundError, ValidationError
from applyos.core.validators import sanitize_text
from applyos.database.connection import get_database
from applyos.database.models import ApplicationNote
from applyos.services.application_service import ApplicationService

MAX_NOTE_LENGTH = 10000
MAX_CATEGORY_LENGTH = 50


class NoteService:

    def __init__(self):
        self.db = get_database()

    def list_notes(self, user_id: str, application_id: str) -> List[Dict[str, Any]]:
        """Pinned notes first, newest first within each group."""
        with self.db.get_session() as session:
            ApplicationService.get_owned(session, user_id, application_id)
            rows = (
                session.query(ApplicationNote)
                .filter(
                    ApplicationNote.application_id == application_id,
                    ApplicationNote.user_id == user_id,
                )
                .order_by(ApplicationNote.is_pinned.desc(), ApplicationNote.created_at.desc())
                .all()
            )
            return [row.to_dict() for row in rows]

    def create_note(
        self,
        user_id: str,
        application_id: str,
        content: str,
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        content = sanitize_text(content, max_length=MAX_NOTE_LENGTH)
        if not content:
            raise ValidationError("Note content is required", field="content")

        with self.db.get_session() as session:
            ApplicationService.get_owned(session, user_id, application_id)
            note = ApplicationNote(
                application_id=application_id,
                user_id=user_id,
                content=content,
                category=sanitize_text(category, max_length=MAX_CATEGORY_LENGTH) or "general",
            )
            session.add(note)
            session.flush()
            return note.to_dict()

    def update_note(self, user_id: str, note_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        with self.db.get_session() as session:
            note = self._get_owned(session, user_id, note_id)
            if "content" in data:
                content = sanitize_text(data["content"], max_length=MAX_NOTE_LENGTH)
                if not content:
                    raise ValidationError("Note content is required", field="content")
                note.content = content
            if "category" in data:
                note.category = sanitize_text(data["category"], max_length=MAX_CATEGORY_LENGTH) or "general"
            if "is_pinned" in data and data["is_pinned"] is not None:
                note.is_pinned = bool(data["is_pinned"])
            note.updated_at = datetime.utcnow()
            session.flush()
            return note.to_dict()

    def toggle_pin(self, user_id: str, note_id: str) -> Dict[str, Any]:
        with self.db.get_session() as session:
            note = self._get_owned(session, user_id, note_id)
            note.is_pinned = not note.is_pinned
            note.updated_at = datetime.utcnow()
            session.flush()
            return note.to_dict()

    def delete_note(self, user_id: str, note_id: str) -> None:
        with self.db.get_session() as session:
            session.delete(self._get_owned(session, user_id, note_id))

    @staticmethod
    def _get_owned(session: Session, user_id: str, note_id: str) -> ApplicationNote:
        note = (
            session.query(ApplicationNote)
            .filter(ApplicationNote.id == note_id, ApplicationNote.user_id == user_id)
            .first()
        )
        if note is None:
            raise NotFoundError("Note", note_id)
        return note


_note_service: Optional[NoteService] = None


def get_note_service() -> NoteService:
    global _note_service
    if _note_service is None:
        _note_service = NoteService()
    return _note_service
