"""
Profile Routes - The signed-in user's row and preferences.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from applyos.api.dependencies import get_current_user, rate_limit
from applyos.core.auth import AuthenticatedUser
from applyos.models.documents import PreferencesUpdate
from applyos.services.user_service import get_user_service

router = APIRouter(prefix="/me", tags=["Profile"], dependencies=[Depends(rate_limit("general"))])


@router.get("", summary="Current user's profile")
def get_profile(user: AuthenticatedUser = Depends(get_current_user)) -> Dict[str, Any]:
    return get_user_service().get_user(user.id)


@router.patch("/preferences", summary="Notification preferences")
def update_preferences(
    body: PreferencesUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Dict[str, Any]:
    return get_user_service().update_preferences(user.id, body.email_notifications)
