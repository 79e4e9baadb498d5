"""
Application Routes - Tracked applications and their history/documents.

Endpoints:
- GET/POST /applications
- GET /applications/stats
- GET/PATCH/DELETE /applications/{id}
- GET /applications/{id}/history
- GET/PUT /applications/{id}/documents
- POST/DELETE /applications/{id}/documents/{document_id}
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.core.auth import AuthenticatedUser
from applyos.models.applications import ApplicationCreate, ApplicationDocumentsUpdate, ApplicationUpdate
from applyos.services.application_service import get_application_service

router = APIRouter(
    prefix="/applications",
    tags=["Applications"],
    dependencies=[Depends(rate_limit("general"))],
)


@router.get("", summary="List applications")
def list_applications(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None, max_length=200),
    user: AuthenticatedUser = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    """Newest first; filter by status and search title/company."""
    return get_application_service().list_applications(user.id, status_filter, search)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create an application")
def create_application(
    body: ApplicationCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_application_service().create_application(user.id, body.model_dump())


@router.get("/stats", summary="Dashboard counters")
def application_stats(user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, int]:
    return get_application_service().get_stats(user.id)


@router.get("/{application_id}")
def get_application(application_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    return get_application_service().get_application(user.id, application_id)


@router.patch("/{application_id}", summary="Update an application")
def update_application(
    application_id: str,
    body: ApplicationUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    """
    Partial update. A status change is recorded in the history and
    notifies the user.
    """
    return get_application_service().update_application(
        user.id, application_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_application(application_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> None:
    get_application_service().delete_application(user.id, application_id)


@router.get("/{application_id}/history", summary="Status transitions, oldest first")
def application_history(
    application_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    return get_application_service().get_status_history(user.id, application_id)


@router.get("/{application_id}/documents", summary="Documents linked to an application")
def application_documents(
    application_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    return get_application_service().get_documents(user.id, application_id)


@router.put("/{application_id}/documents", summary="Replace linked documents")
def set_application_documents(
    application_id: str,
    body: ApplicationDocumentsUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, List[str]]:
    ids = get_application_service().set_documents(user.id, application_id, body.document_ids)
    return {"document_ids": ids}


@router.post("/{application_id}/documents/{document_id}", summary="Link one document")
def link_application_document(
    application_id: str,
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, List[str]]:
    return {"document_ids": get_application_service().add_document(user.id, application_id, document_id)}


@router.delete("/{application_id}/documents/{document_id}", summary="Unlink one document")
def unlink_application_document(
    application_id: str,
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, List[str]]:
    return {"document_ids": get_application_service().remove_document(user.id, application_id, document_id)}
