"""
AI Routes - Cover letters and resume matching.

All endpoints use the "ai" rate-limit tier. Gemini rate limits surface
as 429 with Retry-After set to the next model availability.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.core.auth import AuthenticatedUser
from applyos.models.documents import CompatibilityRequest, CoverLetterRequest, ResumeAnalysisRequest
from applyos.services.application_service import get_application_service

router = APIRouter(prefix="/ai", tags=["AI"], dependencies=[Depends(rate_limit("ai"))])


@router.post("/cover-letter", summary="Generate and save a cover letter")
def cover_letter(body: CoverLetterRequest, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    return get_application_service().generate_cover_letter(user.id, body.application_id, body.instructions)


@router.post("/compatibility", summary="Quick resume vs job description check")
def compatibility(
    body: CompatibilityRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_application_service().check_compatibility(user.id, body.job_description, body.document_id)


@router.post("/analyze-resume", summary="Detailed resume match for an application")
def analyze_resume(
    body: ResumeAnalysisRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_application_service().analyze_resume_match(user.id, body.application_id, body.document_id)
