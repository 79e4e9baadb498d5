"""
Question Routes - Application questions and AI answers.

Endpoints:
- GET/POST /applications/{id}/questions
- PATCH/DELETE /questions/{id}
- POST /questions/extract-from-url
- POST /questions/regenerate
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.core.auth import AuthenticatedUser
from applyos.core.exceptions import ValidationError
from applyos.models.applications import (
    ExtractQuestionsRequest,
    QuestionCreate,
    QuestionUpdate,
    RegenerateAnswersRequest,
)
from applyos.services.ai_service import get_ai_service
from applyos.services.question_service import get_question_service

router = APIRouter(tags=["Questions"], dependencies=[Depends(rate_limit("general"))])


@router.get("/applications/{application_id}/questions")
def list_questions(
    application_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    return get_question_service().list_questions(user.id, application_id)


@router.post("/applications/{application_id}/questions", status_code=status.HTTP_201_CREATED)
def create_questions(
    application_id: str,
    body: QuestionCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    """Add one question (question_text) or many (questions)."""
    service = get_question_service()
    if body.questions is not None:
        return service.create_questions(user.id, application_id, body.questions)
    if not body.question_text:
        raise ValidationError("Question text is required", field="question_text")
    return [service.create_question(user.id, application_id, body.question_text, body.ai_answer)]


@router.patch("/questions/{question_id}")
def update_question(
    question_id: str,
    body: QuestionUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_question_service().update_question(user.id, question_id, body.model_dump(exclude_unset=True))


@router.delete("/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_question(question_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> None:
    get_question_service().delete_question(user.id, question_id)


@router.post(
    "/questions/extract-from-url",
    summary="Extract questions from a posting",
    description="""
    Fetches the posting and asks Gemini for its open-ended questions.

    Only an invalid URL or a non-HTML page is rejected (400). Every other
    problem returns 200 with an empty list and an `error` message so the
    user can fall back to adding questions manually.
    """,
    dependencies=[Depends(rate_limit("ai"))],
)
def extract_questions_from_url(
    body: ExtractQuestionsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    result = get_ai_service().extract_questions_from_url(body.url)
    payload = result.to_dict()

    if body.application_id and result.questions:
        saved = get_question_service().create_questions(user.id, body.application_id, result.questions)
        payload["saved"] = saved
    return payload


@router.post(
    "/questions/regenerate",
    summary="Regenerate AI answers",
    dependencies=[Depends(rate_limit("ai"))],
)
def regenerate_answers(
    body: RegenerateAnswersRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    questions = get_question_service().regenerate_answers(user.id, body.application_id, body.question_id)
    return {"questions": questions, "regenerated": len(questions)}
