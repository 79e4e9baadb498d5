"""
Audit Middleware - Request/response logging.

Each request is logged with method, path, status code, duration, client
address and the caller's user id when one was resolved. Responses get an
X-Response-Time header. Security headers are added by a separate middleware.
"""
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from applyos.core.logging_config import get_logger

logger = get_logger(__name__)

QUIET_PATHS = ("/health", "/health/ready")


class AuditMiddleware(BaseHTTPMiddleware):
    """Log every request with its timing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"REQUEST FAILED: {method} {path} "
                f"client={client_ip} duration={duration:.3f}s error={e}"
            )
            raise

        duration = time.time() - start_time
        # Set by the auth dependency once the bearer token is verified
        user_id = getattr(request.state, "user_id", None) or "-"

        self._log_request(method, path, response.status_code, duration, client_ip, user_id)
        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response

    def _log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration: float,
        client_ip: str,
        user_id: str
    ) -> None:
        if path in QUIET_PATHS:
            logger.debug(f"HEALTH: {path} status={status_code} duration={duration:.3f}s")
            return

        if status_code >= 500:
            log_fn = logger.error
        elif status_code >= 400:
            log_fn = logger.warning
        else:
            log_fn = logger.info

        log_fn(
            f"REQUEST: {method} {path} "
            f"status={status_code} duration={duration:.3f}s "
            f"client={client_ip} user={user_id[:8]}"
        )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add standard security headers to every response."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers[name] = value
        return response
