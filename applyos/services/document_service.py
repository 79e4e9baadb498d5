"""
Document Service - Resume/transcript metadata, parsing and reports.

Files live in object storage; this service keeps the metadata, the text
extracted by the client, and the AI-derived parsed_data and report.
It also turns parsed documents into the candidate context used when
generating answers and cover letters.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from applyos.core.exceptions import AIRateLimitError, LLMError, NotFoundError, ValidationError
from applyos.core.logging_config import get_logger
from applyos.core.validators import sanitize_text
from applyos.database.connection import get_database
from applyos.database.models import ANALYSIS_STATUSES, Application, ApplicationDocument, Document

logger = get_logger(__name__)

MIN_DOCUMENT_TEXT = 50


def _format_span(start: Optional[str], end: Optional[str]) -> str:
    if not start and not end:
        return ""
    return f" ({start or '?'} - {end or 'Present'})"


def format_experience(entry: Dict[str, Any]) -> str:
    """'Engineer at Acme (2020 - 2023): Built things'; missing parts are left out."""
    line = entry.get("role") or "Role"
    if entry.get("company"):
        line += f" at {entry['company']}"
    line += _format_span(entry.get("start_date"), entry.get("end_date"))
    if entry.get("description"):
        line += f": {entry['description']}"
    return line


def format_education(entry: Dict[str, Any]) -> str:
    """'BSc in CS from MIT (2016 - 2020): Honours'; missing parts are left out."""
    line = entry.get("degree") or "Degree"
    if entry.get("field"):
        line += f" in {entry['field']}"
    if entry.get("institution"):
        line += f" from {entry['institution']}"
    line += _format_span(entry.get("start_date"), entry.get("end_date"))
    if entry.get("description"):
        line += f": {entry['description']}"
    return line


def build_context_from_document(parsed_data: Optional[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    """
    Candidate context from a document's parsed_data.

    Returns resume, experience and education strings (None when absent).
    The resume joins "Experience:", "Education:" and "Skills:" sections
    with blank lines.
    """
    context: Dict[str, Optional[str]] = {"resume": None, "experience": None, "education": None}
    if not parsed_data:
        return context

    experience = [e for e in parsed_data.get("experience") or [] if isinstance(e, dict)]
    if experience:
        context["experience"] = "\n".join(format_experience(e) for e in experience)

    education = [e for e in parsed_data.get("education") or [] if isinstance(e, dict)]
    if education:
        context["education"] = "\n".join(format_education(e) for e in education)

    parts = []
    if context["experience"]:
        parts.append(f"Experience:\n{context['experience']}")
    if context["education"]:
        parts.append(f"Education:\n{context['education']}")

    skills = parsed_data.get("skills") or {}
    if isinstance(skills, list):
        all_skills = skills
    else:
        all_skills = [
            *(skills.get("technical") or []),
            *(skills.get("soft") or []),
            *(skills.get("other") or []),
        ]
    if all_skills:
        parts.append(f"Skills: {', '.join(all_skills)}")

    context["resume"] = "\n\n".join(parts) if parts else None
    return context


def _is_analyzed(document: Document) -> bool:
    return document.analysis_status == "success" and bool(document.parsed_data)


def resolve_answer_context(session: Session, application: Application) -> Dict[str, Optional[str]]:
    """
    Context for AI answers about one application.

    Analyzed documents linked to the application are merged in link order.
    Without links, the user's most recently created analyzed document is
    used. The application's job description is always included.
    """
    context: Dict[str, Optional[str]] = {"resume": None, "experience": None, "education": None}

    linked = (
        session.query(Document)
        .join(ApplicationDocument, ApplicationDocument.document_id == Document.id)
        .filter(
            ApplicationDocument.application_id == application.id,
            Document.user_id == application.user_id,
        )
        .order_by(ApplicationDocument.id)
        .all()
    )

    if linked:
        for document in linked:
            if not _is_analyzed(document):
                continue
            for key, value in build_context_from_document(document.parsed_data).items():
                if value:
                    context[key] = value
    else:
        latest = _latest_analyzed(session, application.user_id)
        if latest is not None:
            context = build_context_from_document(latest.parsed_data)

    context["jobDescription"] = application.job_description or None
    return context


def _latest_analyzed(session: Session, user_id: str) -> Optional[Document]:
    return (
        session.query(Document)
        .filter(
            Document.user_id == user_id,
            Document.analysis_status == "success",
            Document.parsed_data.isnot(None),
        )
        .order_by(Document.created_at.desc())
        .first()
    )


def resume_text_for(document: Document) -> str:
    """Structured resume context when rich enough, else the raw extracted text."""
    resume = build_context_from_document(document.parsed_data).get("resume") or ""
    if len(resume) > MIN_DOCUMENT_TEXT:
        return resume
    return document.extracted_text or resume


class DocumentService:
    """Manage a user's documents and their AI analysis."""

    def __init__(self, ai_service=None):
        self.db = get_database()
        self._ai_service = ai_service

    @property
    def ai(self):
        if self._ai_service is not None:
            return self._ai_service
        from applyos.services.ai_service import get_ai_service
        return get_ai_service()

    def register_document(
        self,
        user_id: str,
        file_name: str,
        file_url: Optional[str] = None,
        file_type: Optional[str] = None,
        file_size: Optional[int] = None,
        extracted_text: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Store metadata (and text) for a file already uploaded to storage."""
        file_name = sanitize_text(file_name, max_length=500)
        if not file_name:
            raise ValidationError("File name is required", field="file_name")

        with self.db.get_session() as session:
            document = Document(
                user_id=user_id,
                file_name=file_name,
                file_url=file_url,
                file_type=file_type,
                file_size=file_size,
                extracted_text=sanitize_text(extracted_text, max_length=200000) or None,
                analysis_status="not_analyzed",
            )
            session.add(document)
            session.flush()
            logger.info(f"Registered document {document.id} ({file_name}) for {user_id[:8]}")
            return document.to_dict()

    def list_documents(self, user_id: str) -> List[Dict[str, Any]]:
        with self.db.get_session() as session:
            rows = (
                session.query(Document)
                .filter(Document.user_id == user_id)
                .order_by(Document.created_at.desc())
                .all()
            )
            return [row.to_dict() for row in rows]

    def get_analyzed_documents(self, user_id: str) -> List[Dict[str, Any]]:
        with self.db.get_session() as session:
            rows = (
                session.query(Document)
                .filter(
                    Document.user_id == user_id,
                    Document.analysis_status == "success",
                    Document.parsed_data.isnot(None),
                )
                .order_by(Document.created_at.desc())
                .all()
            )
            return [row.to_dict() for row in rows]

    def get_document(self, user_id: str, document_id: str, include_text: bool = True) -> Dict[str, Any]:
        with self.db.get_session() as session:
            return self.get_owned(session, user_id, document_id).to_dict(include_text=include_text)

    def delete_document(self, user_id: str, document_id: str) -> None:
        with self.db.get_session() as session:
            document = self.get_owned(session, user_id, document_id)
            session.query(ApplicationDocument).filter(
                ApplicationDocument.document_id == document.id
            ).delete(synchronize_session=False)
            session.delete(document)
        logger.info(f"Deleted document {document_id}")

    def analyze_document(self, user_id: str, document_id: str) -> Dict[str, Any]:
        """
        Parse the document text with Gemini and store parsed_data.

        When Gemini is rate limited the document is marked rate_limited and
        a parse_document retry task is queued; the document is returned.

        Raises:
            ValidationError: the document has too little text to analyze
            LLMError: the AI call failed (the document is marked failed)
        """
        with self.db.get_session() as session:
            document = self.get_owned(session, user_id, document_id)
            text = (document.extracted_text or "").strip()
            if len(text) < MIN_DOCUMENT_TEXT:
                raise ValidationError("Document has no extracted text to analyze", field="extracted_text")
            document.analysis_status = "pending"
            document.analysis_error = None

        try:
            parsed = self.ai.parse_document(text)
        except AIRateLimitError as e:
            from applyos.services.retry_queue import get_retry_queue
            get_retry_queue().queue_task(
                user_id, "parse_document", {"document_id": document_id},
                scheduled_for=e.next_available_time,
            )
            return self.save_analysis(user_id, document_id, "rate_limited", error=e.message)
        except LLMError as e:
            self.save_analysis(user_id, document_id, "failed", error=e.message)
            raise
        except Exception as e:
            logger.error(f"Document {document_id} analysis failed on unexpected output: {e}")
            self.save_analysis(user_id, document_id, "failed", error="Unusable AI response")
            raise LLMError("Could not parse document data from AI response") from e

        logger.info(f"Document {document_id} analyzed")
        return self.save_analysis(user_id, document_id, "success", parsed=parsed)

    def generate_report(self, user_id: str, document_id: str) -> Dict[str, Any]:
        """
        Produce and store a scored DocumentReport.

        Raises:
            AIRateLimitError: after queueing a generate_report retry task
        """
        with self.db.get_session() as session:
            document = self.get_owned(session, user_id, document_id)
            text = (document.extracted_text or "").strip() or (
                build_context_from_document(document.parsed_data).get("resume") or ""
            )
        if len(text) < MIN_DOCUMENT_TEXT:
            raise ValidationError("Document has no content to review", field="extracted_text")

        try:
            report = self.ai.generate_document_report(text)
        except AIRateLimitError as e:
            from applyos.services.retry_queue import get_retry_queue
            get_retry_queue().queue_task(
                user_id, "generate_report", {"document_id": document_id},
                scheduled_for=e.next_available_time,
            )
            raise

        self.save_report(user_id, document_id, report)
        logger.info(f"Report generated for document {document_id}: score={report['overallScore']}")
        return report

    def save_analysis(
        self,
        user_id: str,
        document_id: str,
        status: str,
        parsed: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        if status not in ANALYSIS_STATUSES:
            raise ValidationError(f"Invalid analysis status: {status}", field="analysis_status")
        with self.db.get_session() as session:
            document = self.get_owned(session, user_id, document_id)
            document.analysis_status = status
            document.analysis_error = error
            if parsed is not None:
                document.parsed_data = parsed
                document.parsed_at = datetime.utcnow()
            return document.to_dict()

    def save_report(self, user_id: str, document_id: str, report: Dict[str, Any]) -> None:
        with self.db.get_session() as session:
            document = self.get_owned(session, user_id, document_id)
            document.report = report
            document.report_generated_at = datetime.utcnow()

    @staticmethod
    def get_owned(session: Session, user_id: str, document_id: str) -> Document:
        document = (
            session.query(Document)
            .filter(Document.id == document_id, Document.user_id == user_id)
            .first()
        )
        if document is None:
            raise NotFoundError("Document", document_id)
        return document


_document_service: Optional[DocumentService] = None


def get_document_service() -> DocumentService:
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service
