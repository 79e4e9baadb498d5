"""
Request dependencies shared by the routers.

- get_current_user : verifies the Supabase access token and mirrors the user row
- rate_limit(tier) : per-caller, per-route sliding window limit
- require_cron     : Bearer CRON_SECRET check for scheduled jobs
"""
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import Depends, Header, Request, Response

from applyos.core.auth import AuthenticatedUser, authenticate, verify_cron_secret
from applyos.core.config import get_settings
from applyos.core.exceptions import RateLimitExceeded
from applyos.core.logging_config import get_logger
from applyos.core.rate_limiter import build_identifier, get_rate_limiter
from applyos.services.user_service import get_user_service

logger = get_logger(__name__)


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> AuthenticatedUser:
    """Authenticated caller; the users row is created on first sight."""
    user = authenticate(authorization)
    get_user_service().ensure_user(user.id, user.email, user.name)
    request.state.user_id = user.id
    return user


def epoch_seconds(moment: datetime) -> int:
    """Unix time of a naive UTC datetime."""
    return int(moment.replace(tzinfo=timezone.utc).timestamp())


def _route_path(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def rate_limit(tier: str = "general") -> Callable:
    """
    Build a dependency enforcing a rate-limit tier.

    Authenticated callers are counted by user id, everyone else by IP.
    Sets X-RateLimit-* headers on allowed responses.
    """
    def dependency(
        request: Request,
        response: Response,
        user: AuthenticatedUser = Depends(get_current_user),
    ) -> None:
        if not get_settings().rate_limit_enabled:
            return

        limiter = get_rate_limiter(tier)
        identifier = build_identifier(
            user_id=user.id,
            forwarded_for=request.headers.get("x-forwarded-for"),
            real_ip=request.headers.get("x-real-ip"),
            client_host=request.client.host if request.client else None,
        )
        key = limiter.make_key(identifier, _route_path(request))
        allowed, remaining = limiter.is_allowed(key)
        reset_at = limiter.get_reset_time(key)

        if not allowed:
            retry_after = limiter.retry_after(key)
            logger.warning(f"Rate limit [{tier}] exceeded for {identifier} on {_route_path(request)}")
            raise RateLimitExceeded(
                retry_after=retry_after,
                message=limiter.tier.message,
                limit=limiter.limit,
                reset_at=reset_at,
            )

        response.headers["X-RateLimit-Limit"] = str(limiter.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(epoch_seconds(reset_at))

    return dependency


def require_cron(authorization: Optional[str] = Header(default=None)) -> None:
    verify_cron_secret(authorization)
