"""
Note Routes - Notes attached to an application.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.core.auth import AuthenticatedUser
from applyos.models.applications import NoteCreate, NoteUpdate
from applyos.services.note_service import get_note_service

router = APIRouter(tags=["Notes"], dependencies=[Depends(rate_limit("general"))])


@router.get("/applications/{application_id}/notes", summary="Pinned first, then newest")
def list_notes(application_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> List[Dict[str, Any]]:
    return get_note_service().list_notes(user.id, application_id)


@router.post("/applications/{application_id}/notes", status_code=status.HTTP_201_CREATED)
def create_note(
    application_id: str,
    body: NoteCreate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_note_service().create_note(user.id, application_id, body.content, body.category)


@router.patch("/notes/{note_id}")
def update_note(
    note_id: str,
    body: NoteUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_note_service().update_note(user.id, note_id, body.model_dump(exclude_unset=True))


@router.post("/notes/{note_id}/pin", summary="Toggle pin")
def toggle_pin(note_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    return get_note_service().toggle_pin(user.id, note_id)


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(note_id: str, user: AuthenticatedUser = Depends(get_current_user)) -> None:
    get_note_service().delete_note(user.id, note_id)
