"""
Request models for documents, AI features, notifications and capture.
"""
from typing import Optional

from pydantic import BaseModel, Field


class DocumentCreate(BaseModel):
    """
    Metadata for a file already uploaded to object storage.

    The client extracts the text (PDF/DOCX) and sends it along.
    """
    file_name: str = Field(..., min_length=1, max_length=500, examples=["resume.pdf"])
    file_url: Optional[str] = Field(default=None, max_length=2000)
    file_type: Optional[str] = Field(default=None, max_length=100)
    file_size: Optional[int] = Field(default=None, ge=0)
    extracted_text: Optional[str] = None
    analyze: bool = Field(default=False, description="Run AI parsing right after registering")


class CoverLetterRequest(BaseModel):
    application_id: str
    instructions: Optional[str] = Field(default=None, max_length=2000)


class CompatibilityRequest(BaseModel):
    job_description: str = Field(..., min_length=1, max_length=20000)
    document_id: Optional[str] = None


class ResumeAnalysisRequest(BaseModel):
    application_id: str
    document_id: str


class PreferencesUpdate(BaseModel):
    email_notifications: bool


class CaptureRequest(BaseModel):
    url: str = Field(..., description="URL of the page the extension is on")
    html: str = Field(default="", description="Serialized page DOM")


class CaptureSaveRequest(CaptureRequest):
    status: str = Field(default="draft")
    include_questions: bool = Field(default=True, description="Also save labelled form fields as questions")
