"""
Application Service - CRUD for tracked applications.

Status side effects live here:
- a non-draft application gets a creation entry in status_history
- every status change appends a history row and a status_update
  notification (identical notifications inside a minute are suppressed)

Also manages the application <-> document links and the AI features that
work on a single application (cover letters, resume matching).
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from applyos.core.exceptions import NotFoundError, ValidationError
from applyos.core.logging_config import get_logger
from applyos.core.validators import is_http_url, parse_timestamp, sanitize_text, validate_choice, validate_uuid
from applyos.database.connection import get_database
from applyos.database.models import (
    APPLICATION_PRIORITIES,
    APPLICATION_STATUSES,
    APPLICATION_TYPES,
    Application,
    ApplicationDocument,
    Document,
    StatusHistory,
)
from applyos.services.document_service import (
    MIN_DOCUMENT_TEXT,
    DocumentService,
    build_context_from_document,
    resolve_answer_context,
    resume_text_for,
)
from applyos.services.notification_service import (
    STATUS_NOTIFICATION_WINDOW,
    record_notification,
    status_change_message,
)

logger = get_logger(__name__)

UPCOMING_DEADLINE_DAYS = 7

# Columns a client may set directly
EDITABLE_FIELDS = (
    "title",
    "company",
    "url",
    "status",
    "priority",
    "type",
    "deadline",
    "job_description",
    "ai_cover_letter",
    "manual_cover_letter",
)
TEXT_LIMITS = {
    "title": 500,
    "company": 255,
    "url": 2000,
    "job_description": 50000,
    "ai_cover_letter": 20000,
    "manual_cover_letter": 20000,
}


def clean_application_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and normalise client supplied application fields.

    Unknown keys are ignored. Empty optional strings become None.

    Raises:
        ValidationError: bad enum value, URL or deadline
    """
    cleaned: Dict[str, Any] = {}
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]

        if key in TEXT_LIMITS:
            value = sanitize_text(value, max_length=TEXT_LIMITS[key]) or None
            if key == "url" and value and not is_http_url(value):
                raise ValidationError("Invalid URL format", field="url")

        elif key in ("status", "priority", "type"):
            allowed = {
                "status": APPLICATION_STATUSES,
                "priority": APPLICATION_PRIORITIES,
                "type": APPLICATION_TYPES,
            }[key]
            ok, message = validate_choice(value, allowed, key)
            if not ok:
                raise ValidationError(message, field=key)

        elif key == "deadline":
            try:
                value = parse_timestamp(value)
            except (TypeError, ValueError):
                raise ValidationError("Invalid deadline date", field="deadline")

        cleaned[key] = value

    if "title" in cleaned and not cleaned["title"]:
        raise ValidationError("Title is required", field="title")
    return cleaned


def record_status_change(
    session: Session,
    application: Application,
    old_status: Optional[str],
    new_status: str,
    changed_by: Optional[str],
) -> StatusHistory:
    """Append a history row; real transitions also notify the owner."""
    entry = StatusHistory(
        application_id=application.id,
        old_status=old_status,
        new_status=new_status,
        changed_by=changed_by,
    )
    session.add(entry)

    if old_status is not None:
        record_notification(
            session,
            application.user_id,
            "status_update",
            status_change_message(application.title, old_status, new_status),
            suppress_within=STATUS_NOTIFICATION_WINDOW,
        )
    return entry


class ApplicationService:
    """
    Application operations scoped to one user.

    Example:
        >>> service = ApplicationService()
        >>> app = service.create_application(user_id, {"title": "SWE Intern"})
        >>> service.update_application(user_id, app["id"], {"status": "submitted"})
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

    # ------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------

    def list_applications(
        self,
        user_id: str,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Newest first, optionally filtered by status and a title/company search."""
        with self.db.get_session() as session:
            query = session.query(Application).filter(Application.user_id == user_id)
            if status:
                ok, message = validate_choice(status, APPLICATION_STATUSES, "status")
                if not ok:
                    raise ValidationError(message, field="status")
                query = query.filter(Application.status == status)

            search = sanitize_text(search, max_length=200)
            if search:
                pattern = f"%{search.lower()}%"
                query = query.filter(
                    or_(
                        func.lower(Application.title).like(pattern),
                        func.lower(Application.company).like(pattern),
                    )
                )

            rows = query.order_by(Application.created_at.desc()).all()
            return [row.to_dict() for row in rows]

    def get_application(self, user_id: str, application_id: str) -> Dict[str, Any]:
        with self.db.get_session() as session:
            return self.get_owned(session, user_id, application_id).to_dict()

    def create_application(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = clean_application_fields(data)
        if not fields.get("title"):
            raise ValidationError("Title is required", field="title")

        with self.db.get_session() as session:
            application = Application(user_id=user_id, **fields)
            session.add(application)
            session.flush()

            if application.status != "draft":
                record_status_change(session, application, None, application.status, user_id)

            logger.info(f"Created application {application.id} ({application.status}) for {user_id[:8]}")
            return application.to_dict()

    def update_application(self, user_id: str, application_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = clean_application_fields(data)

        with self.db.get_session() as session:
            application = self.get_owned(session, user_id, application_id)
            old_status = application.status

            for key, value in fields.items():
                setattr(application, key, value)
            application.updated_at = datetime.utcnow()

            new_status = fields.get("status")
            if new_status and new_status != old_status:
                record_status_change(session, application, old_status, new_status, user_id)
                logger.info(f"Application {application_id}: {old_status} -> {new_status}")

            session.flush()
            return application.to_dict()

    def delete_application(self, user_id: str, application_id: str) -> None:
        with self.db.get_session() as session:
            session.delete(self.get_owned(session, user_id, application_id))
        logger.info(f"Deleted application {application_id}")

    def get_stats(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, int]:
        """Total, in-review count and deadlines within the coming week."""
        now = now or datetime.utcnow()
        with self.db.get_session() as session:
            base = session.query(func.count(Application.id)).filter(Application.user_id == user_id)
            total = base.scalar() or 0
            pending = base.filter(Application.status == "in_review").scalar() or 0
            upcoming = (
                base.filter(
                    Application.deadline.isnot(None),
                    Application.deadline >= now,
                    Application.deadline <= now + timedelta(days=UPCOMING_DEADLINE_DAYS),
                ).scalar()
                or 0
            )
        return {"total": total, "pending": pending, "upcomingDeadlines": upcoming}

    def get_status_history(self, user_id: str, application_id: str) -> List[Dict[str, Any]]:
        """Transitions oldest first."""
        with self.db.get_session() as session:
            application = self.get_owned(session, user_id, application_id)
            return [entry.to_dict() for entry in application.history]

    # ------------------------------------------------------------
    # Document links
    # ------------------------------------------------------------

    def get_documents(self, user_id: str, application_id: str) -> List[Dict[str, Any]]:
        with self.db.get_session() as session:
            application = self.get_owned(session, user_id, application_id)
            links = sorted(application.document_links, key=lambda l: l.id)
            return [link.document.to_dict() for link in links]

    def set_documents(self, user_id: str, application_id: str, document_ids: List[str]) -> List[str]:
        """
        Replace the application's linked documents.

        Raises:
            NotFoundError: a document id does not belong to the user
        """
        unique_ids = list(dict.fromkeys(validate_uuid(d, "document_ids") for d in document_ids))
        with self.db.get_session() as session:
            application = self.get_owned(session, user_id, application_id)
            owned = {
                row.id
                for row in session.query(Document.id).filter(
                    Document.user_id == user_id, Document.id.in_(unique_ids)
                )
            } if unique_ids else set()
            missing = [doc_id for doc_id in unique_ids if doc_id not in owned]
            if missing:
                raise NotFoundError("Document", missing[0])

            application.document_links.clear()
            session.flush()
            for doc_id in unique_ids:
                application.document_links.append(ApplicationDocument(document_id=doc_id))

        logger.info(f"Application {application_id} linked to {len(unique_ids)} documents")
        return unique_ids

    def add_document(self, user_id: str, application_id: str, document_id: str) -> List[str]:
        """Link one more document; linking an already linked document is a no-op."""
        document_id = validate_uuid(document_id, "document_id")
        with self.db.get_session() as session:
            application = self.get_owned(session, user_id, application_id)
            DocumentService.get_owned(session, user_id, document_id)
            linked = [link.document_id for link in sorted(application.document_links, key=lambda l: l.id)]
            if document_id not in linked:
                application.document_links.append(ApplicationDocument(document_id=document_id))
                linked.append(document_id)
        return linked

    def remove_document(self, user_id: str, application_id: str, document_id: str) -> List[str]:
        with self.db.get_session() as session:
            application = self.get_owned(session, user_id, application_id)
            for link in list(application.document_links):
                if link.document_id == document_id:
                    application.document_links.remove(link)
            session.flush()
            return [link.document_id for link in sorted(application.document_links, key=lambda l: l.id)]

    # ------------------------------------------------------------
    # AI features
    # ------------------------------------------------------------

    def generate_cover_letter(
        self,
        user_id: str,
        application_id: str,
        instructions: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Write a cover letter from the linked documents and save it as ai_cover_letter."""
        with self.db.get_session() as session:
            application = self.get_owned(session, user_id, application_id)
            context = resolve_answer_context(session, application)
            title, company = application.title, application.company

        letter = self.ai.generate_cover_letter(
            title, company, context, sanitize_text(instructions, max_length=2000) or None
        )

        with self.db.get_session() as session:
            application = self.get_owned(session, user_id, application_id)
            application.ai_cover_letter = letter
            application.updated_at = datetime.utcnow()
        logger.info(f"Cover letter generated for application {application_id}")
        return {"coverLetter": letter}

    def analyze_resume_match(self, user_id: str, application_id: str, document_id: str) -> Dict[str, Any]:
        """
        Score a resume against the application's job description.

        Raises:
            ValidationError: no job description, or the resume has too little text
        """
        with self.db.get_session() as session:
            application = self.get_owned(session, user_id, application_id)
            job_description = (application.job_description or "").strip()
            if not job_description:
                raise ValidationError(
                    "Application has no job description to compare against",
                    field="job_description",
                )
            document = DocumentService.get_owned(session, user_id, document_id)
            resume_text = resume_text_for(document).strip()

        if len(resume_text) < MIN_DOCUMENT_TEXT:
            raise ValidationError("Resume has too little content to analyze", field="document_id")

        return self.ai.analyze_resume_match(resume_text, job_description)

    def check_compatibility(
        self,
        user_id: str,
        job_description: str,
        document_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Quick fit check of a pasted job description against a resume."""
        job_description = sanitize_text(job_description, max_length=20000)
        if not job_description:
            raise ValidationError("Job description is required", field="job_description")

        with self.db.get_session() as session:
            if document_id:
                document = DocumentService.get_owned(session, user_id, document_id)
                resume_text = resume_text_for(document)
            else:
                latest = (
                    session.query(Document)
                    .filter(Document.user_id == user_id, Document.analysis_status == "success")
                    .order_by(Document.created_at.desc())
                    .first()
                )
                if latest is None:
                    raise ValidationError("Upload and analyze a resume first", field="document_id")
                resume_text = build_context_from_document(latest.parsed_data).get("resume") or ""
                resume_text = resume_text or latest.extracted_text or ""

        if len(resume_text.strip()) < MIN_DOCUMENT_TEXT:
            raise ValidationError("Resume has too little content to analyze", field="document_id")

        return self.ai.check_compatibility(job_description, resume_text)

    @staticmethod
    def get_owned(session: Session, user_id: str, application_id: str) -> Application:
        application = (
            session.query(Application)
            .filter(Application.id == application_id, Application.user_id == user_id)
            .first()
        )
        if application is None:
            raise NotFoundError("Application", application_id)
        return application


_application_service: Optional[ApplicationService] = None


def get_application_service() -> ApplicationService:
    global _application_service
    if _application_service is None:
        _application_service = ApplicationService()
    return _application_service
