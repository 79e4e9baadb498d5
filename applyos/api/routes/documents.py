"""
Document Routes - Resume/transcript metadata, parsing and reports.

Files are uploaded straight to object storage by the client; these
endpoints register the metadata and extracted text and run AI analysis.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query, status

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.core.auth import AuthenticatedUser
from applyos.models.documents import DocumentCreate
from applyos.services.document_service import get_document_service

router = APIRouter(prefix="/documents", tags=["Documents"])


@router.get("", dependencies=[Depends(rate_limit("general"))])
def list_documents(
    analyzed_only: bool = Query(default=False),
    user: AuthenticatedUser = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    service = get_document_service()
    if analyzed_only:
        return service.get_analyzed_documents(user.id)
    return service.list_documents(user.id)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Register an uploaded document",
    dependencies=[Depends(rate_limit("upload"))],
)
def register_document(
    body: DocumentCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    """Store metadata and text; with analyze=true the document is parsed right away."""
    service = get_document_service()
    document = service.register_document(
        user.id,
        body.file_name,
        file_url=body.file_url,
        file_type=body.file_type,
        file_size=body.file_size,
        extracted_text=body.extracted_text,
    )
    if body.analyze and document.get("id"):
        document = service.analyze_document(user.id, document["id"])
    return document


@router.get("/{document_id}", dependencies=[Depends(rate_limit("general"))])
def get_document(document_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    return get_document_service().get_document(user.id, document_id)


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(rate_limit("general"))],
)
def delete_document(document_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> None:
    get_document_service().delete_document(user.id, document_id)


@router.post(
    "/{document_id}/analyze",
    summary="Parse a document with AI",
    description="""
    Extracts education, experience and skills. When Gemini is rate limited
    the document comes back with analysis_status=rate_limited and the work
    is retried by the retry job.
    """,
    dependencies=[Depends(rate_limit("ai"))],
)
def analyze_document(document_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    return get_document_service().analyze_document(user.id, document_id)


@router.post(
    "/{document_id}/report",
    summary="Scored review of a document",
    dependencies=[Depends(rate_limit("ai"))],
)
def document_report(document_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    return get_document_service().generate_report(user.id, document_id)
