"""
Capture Routes - Browser extension quick capture.

The extension posts the page URL and serialized DOM; the server detects
the board, extracts the posting and (on save) creates a draft
application with any labelled form questions.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.capture import detect_page, extract_form_questions, extract_posting
from applyos.core.auth import AuthenticatedUser
from applyos.core.exceptions import ValidationError
from applyos.core.logging_config import get_logger
from applyos.core.validators import validate_http_url
from applyos.models.documents import CaptureRequest, CaptureSaveRequest
from applyos.services.application_service import get_application_service
from applyos.services.question_service import get_question_service

logger = get_logger(__name__)

router = APIRouter(prefix="/capture", tags=["Capture"], dependencies=[Depends(rate_limit("general"))])


@router.post("/detect", summary="Is this page a job posting?")
def detect(body: CaptureRequest, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    return detect_page(validate_http_url(body.url), body.html).to_dict()


@router.post("/extract", summary="Extract posting details and form questions")
def extract(body: CaptureRequest, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    url = validate_http_url(body.url)
    detection = detect_page(url, body.html)
    return {
        "detection": detection.to_dict(),
        "posting": extract_posting(url, body.html, detection).to_dict(),
        "questions": [q.to_dict() for q in extract_form_questions(body.html)],
    }


@router.post("/save", status_code=status.HTTP_201_CREATED, summary="Create an application from the page")
def save(body: CaptureSaveRequest, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    url = validate_http_url(body.url)
    detection = detect_page(url, body.html)
    posting = extract_posting(url, body.html, detection)
    if not posting.title:
        raise ValidationError("Could not find a job title on this page", field="html")

    application = get_application_service().create_application(
        user.id,
        {
            "title": posting.title,
            "company": posting.company,
            "url": url,
            "status": body.status,
            "job_description": posting.description,
        },
    )

    questions = []
    if body.include_questions:
        texts = [q.text for q in extract_form_questions(body.html) if q.type in ("text", "textarea")]
        if texts:
            questions = get_question_service().create_questions(user.id, application["id"], texts)

    logger.info(f"Captured {posting.platform} posting as application {application['id']}")
    return {"application": application, "questions": questions, "platform": posting.platform}
