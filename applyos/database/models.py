"""
Database Models - SQLAlchemy ORM models for ApplyOS.

Tables:
- users, applications, questions, documents
- application_documents (application <-> document links)
- notifications, status_history, application_notes
- ai_retry_queue (deferred Gemini work)

Ownership is enforced by the services: every query filters on user_id,
directly or through the owning application.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

APPLICATION_STATUSES = ("draft", "submitted", "in_review", "interview", "offer", "rejected")
APPLICATION_PRIORITIES = ("low", "medium", "high")
APPLICATION_TYPES = ("job", "scholarship", "internship", "other")
NOTIFICATION_TYPES = ("info", "success", "warning", "error", "deadline", "status_update")
ANALYSIS_STATUSES = ("not_analyzed", "pending", "rate_limited", "success", "failed")
RETRY_TASK_TYPES = (
    "parse_document",
    "generate_report",
    "generate_answer",
    "extract_questions",
    "generate_cover_letter",
)


def _uuid() -> str:
    return str(uuid.uuid4())


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class User(Base):
    """Profile row mirrored from the auth provider on first request."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(320), nullable=True)
    name = Column(String(255), nullable=True)
    avatar_url = Column(Text, nullable=True)
    email_notifications = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "avatar_url": self.avatar_url,
            "email_notifications": self.email_notifications,
            "created_at": _iso(self.created_at),
        }


class Application(Base):
    """A tracked job or scholarship opportunity."""
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    company = Column(String(255), nullable=True)
    url = Column(Text, nullable=True)
    status = Column(String(20), default="draft", nullable=False)
    priority = Column(String(10), default="medium", nullable=False)
    type = Column(String(20), default="job", nullable=False)
    deadline = Column(DateTime, nullable=True)
    job_description = Column(Text, nullable=True)
    ai_cover_letter = Column(Text, nullable=True)
    manual_cover_letter = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    questions = relationship(
        "Question",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="Question.created_at",
    )
    history = relationship(
        "StatusHistory",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="StatusHistory.changed_at",
    )
    notes = relationship("ApplicationNote", cascade="all, delete-orphan")
    document_links = relationship("ApplicationDocument", cascade="all, delete-orphan")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "company": self.company,
            "url": self.url,
            "status": self.status,
            "priority": self.priority,
            "type": self.type,
            "deadline": _iso(self.deadline),
            "job_description": self.job_description,
            "ai_cover_letter": self.ai_cover_letter,
            "manual_cover_letter": self.manual_cover_letter,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Question(Base):
    """An application question with its AI and manual answers."""
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=_uuid)
    application_id = Column(String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    ai_answer = Column(Text, nullable=True)
    manual_answer = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    application = relationship("Application", back_populates="questions")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "application_id": self.application_id,
            "question_text": self.question_text,
            "ai_answer": self.ai_answer,
            "manual_answer": self.manual_answer,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Document(Base):
    """Metadata and extracted text for a file kept in object storage."""
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(500), nullable=False)
    file_url = Column(Text, nullable=True)
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    extracted_text = Column(Text, nullable=True)
    parsed_data = Column(JSON, nullable=True)
    analysis_status = Column(String(20), default="not_analyzed", nullable=False)
    analysis_error = Column(Text, nullable=True)
    parsed_at = Column(DateTime, nullable=True)
    report = Column(JSON, nullable=True)
    report_generated_at = Column(DateTime, nullable=True)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self, include_text: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "parsed_data": self.parsed_data,
            "analysis_status": self.analysis_status,
            "analysis_error": self.analysis_error,
            "parsed_at": _iso(self.parsed_at),
            "report": self.report,
            "report_generated_at": _iso(self.report_generated_at),
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_text:
            data["extracted_text"] = self.extracted_text
        return data


class ApplicationDocument(Base):
    """Link between an application and a document used for its answers."""
    __tablename__ = "application_documents"
    __table_args__ = (UniqueConstraint("application_id", "document_id", name="uq_application_document"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    document = relationship("Document")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), default="info", nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "message": self.message,
            "is_read": self.is_read,
            "created_at": _iso(self.created_at),
        }


class StatusHistory(Base):
    """One status transition of an application. old_status is NULL on creation."""
    __tablename__ = "status_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    application_id = Column(String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(String(36), nullable=True)
    changed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    application = relationship("Application", back_populates="history")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "application_id": self.application_id,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "changed_by": self.changed_by,
            "changed_at": _iso(self.changed_at),
        }


class ApplicationNote(Base):
    __tablename__ = "application_notes"

    id = Column(String(36), primary_key=True, default=_uuid)
    application_id = Column(String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(50), default="general", nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "application_id": self.application_id,
            "content": self.content,
            "category": self.category,
            "is_pinned": self.is_pinned,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class AIRetryTask(Base):
    """Gemini work deferred because of rate limits or transient failures."""
    __tablename__ = "ai_retry_queue"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_type = Column(String(40), nullable=False)
    task_data = Column(JSON, nullable=False)
    scheduled_retry_time = Column(DateTime, nullable=False, index=True)
    attempt_count = Column(Integer, default=1, nullable=False)
    max_attempts = Column(Integer, default=5, nullable=False)
    last_error = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "task_type": self.task_type,
            "task_data": self.task_data,
            "scheduled_retry_time": _iso(self.scheduled_retry_time),
            "attempt_count": self.attempt_count,
            "max_attempts": self.max_attempts,
            "last_error": self.last_error,
            "completed_at": _iso(self.completed_at),
            "created_at": _iso(self.created_at),
        }
