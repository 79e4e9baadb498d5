"""
User profiles mirrored from the auth provider.

The first authenticated request of a new user creates their users row,
the same way the provider's sign-up hook does for the web app.
"""
from typing import Any, Dict, Optional

from applyos.core.exceptions import NotFoundError
from applyos.core.logging_config import get_logger
from applyos.database.connection import get_database
from applyos.database.models import User

logger = get_logger(__name__)


class UserService:

    def __init__(self):
        self.db = get_database()

    def ensure_user(self, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> Dict[str, Any]:
        """Return the user's row, creating it on first sight."""
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if user is None:
                user = User(id=user_id, email=email, name=name)
                session.add(user)
                session.flush()
                logger.info(f"Created profile for new user {user_id[:8]}")
            elif email and user.email != email:
                user.email = email
            return user.to_dict()

    def get_user(self, user_id: str) -> Dict[str, Any]:
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return user.to_dict()

    def update_preferences(self, user_id: str, email_notifications: bool) -> Dict[str, Any]:
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            user.email_notifications = email_notifications
            return user.to_dict()


_user_service: Optional[UserService] = None


def get_user_service() -> UserService:
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
