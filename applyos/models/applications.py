"""
Request models for applications, questions and notes.

Update models are partial: routes pass model_dump(exclude_unset=True) to
the services so omitted fields stay untouched and an explicit null clears
an optional field.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ApplicationStatus = Literal["draft", "submitted", "in_review", "interview", "offer", "rejected"]
ApplicationPriority = Literal["low", "medium", "high"]
ApplicationType = Literal["job", "scholarship", "internship", "other"]


class ApplicationCreate(BaseModel):
    """
    Request model for POST /applications.

    Attributes:
        title: Position or scholarship name (required).
        status: Initial status; anything past draft is recorded in the history.
    """
    title: str = Field(..., min_length=1, max_length=500, examples=["Software Engineer Intern"])
    company: Optional[str] = Field(default=None, max_length=255)
    url: Optional[str] = Field(default=None, max_length=2000, description="Posting URL (http/https)")
    status: ApplicationStatus = "draft"
    priority: ApplicationPriority = "medium"
    type: ApplicationType = "job"
    deadline: Optional[datetime] = None
    job_description: Optional[str] = Field(default=None, max_length=50000)


class ApplicationUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    company: Optional[str] = Field(default=None, max_length=255)
    url: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[ApplicationStatus] = None
    priority: Optional[ApplicationPriority] = None
    type: Optional[ApplicationType] = None
    deadline: Optional[datetime] = None
    job_description: Optional[str] = Field(default=None, max_length=50000)
    ai_cover_letter: Optional[str] = Field(default=None, max_length=20000)
    manual_cover_letter: Optional[str] = Field(default=None, max_length=20000)


class ApplicationDocumentsUpdate(BaseModel):
    document_ids: List[str] = Field(default_factory=list, description="Replaces every linked document")


class QuestionCreate(BaseModel):
    question_text: Optional[str] = Field(default=None, max_length=5000)
    questions: Optional[List[str]] = Field(default=None, description="Bulk insert; blanks and duplicates skipped")
    ai_answer: Optional[str] = Field(default=None, max_length=20000)


class QuestionUpdate(BaseModel):
    question_text: Optional[str] = Field(default=None, max_length=5000)
    ai_answer: Optional[str] = Field(default=None, max_length=20000)
    manual_answer: Optional[str] = Field(default=None, max_length=20000)


class ExtractQuestionsRequest(BaseModel):
    url: str = Field(..., description="Posting URL to read questions from")
    application_id: Optional[str] = Field(
        default=None,
        description="When given, extracted questions are saved on this application",
    )


class RegenerateAnswersRequest(BaseModel):
    application_id: str
    question_id: Optional[str] = Field(default=None, description="Omit to regenerate every question")


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    category: Optional[str] = Field(default="general", max_length=50)


class NoteUpdate(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    category: Optional[str] = Field(default=None, max_length=50)
    is_pinned: Optional[bool] = None


class ImportValidateRequest(BaseModel):
    csv: str = Field(..., description="Raw CSV text")


class ImportExecuteRequest(BaseModel):
    applications: List[dict] = Field(..., description="Rows returned by the validate step")
    skip_duplicates: bool = True
