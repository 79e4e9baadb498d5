"""
Token verification for Supabase-issued access tokens and cron calls.

Sign-up, login and password flows happen at Supabase. This service only
checks the HS256 access token the client forwards and reads the user id
(sub) and email from it.
"""
import hmac
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt

from applyos.core.config import get_settings
from applyos.core.exceptions import AuthenticationError, ForbiddenError
from applyos.core.logging_config import get_logger

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"
USER_ROLE = "authenticated"


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity extracted from a verified access token."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token part of an 'Authorization: Bearer <token>' header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a Supabase JWT, returning the payload."""
    secret = get_settings().supabase_jwt_secret
    if not secret:
        logger.error("SUPABASE_JWT_SECRET is not configured; rejecting token")
        raise AuthenticationError("Authentication is not configured")

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected access token: {e}")
        raise AuthenticationError("Invalid token")


def authenticate(authorization: Optional[str]) -> AuthenticatedUser:
    """Verify the Authorization header and return the caller."""
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    if payload.get("role", USER_ROLE) != USER_ROLE:
        raise ForbiddenError("Token role may not call the user API")

    metadata = payload.get("user_metadata") or {}
    return AuthenticatedUser(
        id=str(user_id),
        email=payload.get("email"),
        name=metadata.get("full_name") or metadata.get("name"),
    )


def verify_cron_secret(authorization: Optional[str]) -> None:
    """Cron endpoints require 'Authorization: Bearer <CRON_SECRET>'."""
    expected = get_settings().cron_secret
    token = extract_bearer_token(authorization)
    if not expected or not token or not hmac.compare_digest(token, expected):
        raise AuthenticationError("Unauthorized")
