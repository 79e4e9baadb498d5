"""
Models module - Pydantic schemas for request validation.

- common.py       : health, error and message bodies
- applications.py : applications, questions, notes, CSV import
- documents.py    : documents, AI requests, preferences, quick capture
"""
from applyos.models.common import ErrorResponse, HealthResponse
from applyos.models.applications import (
    ApplicationCreate,
    ApplicationUpdate,
    ApplicationDocumentsUpdate,
    QuestionCreate,
    QuestionUpdate,
    ExtractQuestionsRequest,
    RegenerateAnswersRequest,
    NoteCreate,
    NoteUpdate,
    ImportValidateRequest,
    ImportExecuteRequest,
)
from applyos.models.documents import (
    DocumentCreate,
    CoverLetterRequest,
    CompatibilityRequest,
    ResumeAnalysisRequest,
    PreferencesUpdate,
    CaptureRequest,
    CaptureSaveRequest,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "ApplicationCreate",
    "ApplicationUpdate",
    "ApplicationDocumentsUpdate",
    "QuestionCreate",
    "QuestionUpdate",
    "ExtractQuestionsRequest",
    "RegenerateAnswersRequest",
    "NoteCreate",
    "NoteUpdate",
    "ImportValidateRequest",
    "ImportExecuteRequest",
    "DocumentCreate",
    "CoverLetterRequest",
    "CompatibilityRequest",
    "ResumeAnalysisRequest",
    "PreferencesUpdate",
    "CaptureRequest",
    "CaptureSaveRequest",
]
