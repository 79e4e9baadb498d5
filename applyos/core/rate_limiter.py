"""
Rate Limiter - Control request frequency per caller and route.

In-memory sliding-window counters, one limiter per named tier:
- general: ordinary API traffic
- upload:  document registration
- ai:      Gemini-backed endpoints
- auth:    token-sensitive endpoints
- email:   digest/notification fan-out

Counters live in process memory, so limits are per worker. Running
several workers multiplies the effective limit.
"""
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from applyos.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitTier:
    """Limit configuration for one class of endpoints."""
    name: str
    max_requests: int
    window_seconds: int
    message: str


RATE_LIMIT_TIERS: Dict[str, RateLimitTier] = {
    "general": RateLimitTier(
        "general", 100, 15 * 60,
        "Too many requests, please try again later.",
    ),
    "upload": RateLimitTier(
        "upload", 10, 15 * 60,
        "Too many upload requests. Please wait before uploading more files.",
    ),
    "ai": RateLimitTier(
        "ai", 20, 15 * 60,
        "Too many AI requests. Please wait before generating more content.",
    ),
    "auth": RateLimitTier(
        "auth", 5, 15 * 60,
        "Too many authentication attempts. Please try again later.",
    ),
    "email": RateLimitTier(
        "email", 10, 60 * 60,
        "Too many email requests. Please try again later.",
    ),
}


def build_identifier(
    user_id: Optional[str] = None,
    forwarded_for: Optional[str] = None,
    real_ip: Optional[str] = None,
    client_host: Optional[str] = None,
) -> str:
    """
    Identify the caller: the user id when authenticated, else the best IP guess.

    >>> build_identifier(forwarded_for="1.2.3.4, 10.0.0.1")
    'ip:1.2.3.4'
    """
    if user_id:
        return f"user:{user_id}"

    ip = None
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip() or None
    ip = ip or real_ip or client_host or "unknown"
    return f"ip:{ip}"


class RateLimiter:
    """
    Sliding window rate limiter for a single tier.

    Keys are "<identifier>:<path>", so each route is counted separately.

    Example:
        >>> limiter = RateLimiter(RATE_LIMIT_TIERS["ai"])
        >>> limiter.is_allowed("user:42:/ai/cover-letter")
        (True, 19)
    """

    def __init__(self, tier: RateLimitTier, cleanup_interval_minutes: int = 5):
        self.tier = tier
        self.limit = tier.max_requests
        self.window = timedelta(seconds=tier.window_seconds)
        self.cleanup_interval = timedelta(minutes=cleanup_interval_minutes)

        self._requests: Dict[str, List[datetime]] = {}
        self._lock = threading.RLock()
        self._last_cleanup = datetime.utcnow()

        logger.info(
            f"RateLimiter[{tier.name}] initialized: "
            f"{tier.max_requests} requests/{tier.window_seconds}s"
        )

    @staticmethod
    def make_key(identifier: str, path: str) -> str:
        return f"{identifier}:{path}"

    def is_allowed(self, key: str) -> Tuple[bool, int]:
        """
        Record a request for key if it fits in the window.

        Returns:
            Tuple of (is_allowed, remaining_requests)
        """
        with self._lock:
            self._maybe_cleanup()

            now = datetime.utcnow()
            recent = self._recent(key, now)

            if len(recent) >= self.limit:
                logger.warning(f"Rate limit [{self.tier.name}] exceeded for: {key}")
                return False, 0

            recent.append(now)
            self._requests[key] = recent
            return True, self.limit - len(recent)

    def get_remaining(self, key: str) -> int:
        """Requests left in the current window."""
        with self._lock:
            return max(0, self.limit - len(self._recent(key, datetime.utcnow())))

    def get_reset_time(self, key: str) -> datetime:
        """When the oldest counted request leaves the window."""
        with self._lock:
            recent = self._recent(key, datetime.utcnow())
            if not recent:
                return datetime.utcnow()
            return min(recent) + self.window

    def retry_after(self, key: str) -> int:
        """Whole seconds until another request would be allowed."""
        seconds = (self.get_reset_time(key) - datetime.utcnow()).total_seconds()
        return max(1, math.ceil(seconds))

    def clear(self, identifier: Optional[str] = None, path: Optional[str] = None) -> None:
        """Forget counters for one identifier (one path or all), or everything."""
        with self._lock:
            if identifier is None:
                self._requests.clear()
                return
            if path is not None:
                self._requests.pop(self.make_key(identifier, path), None)
                return
            prefix = f"{identifier}:"
            for key in [k for k in self._requests if k.startswith(prefix)]:
                del self._requests[key]

    def store_size(self) -> int:
        with self._lock:
            return len(self._requests)

    def _recent(self, key: str, now: datetime) -> List[datetime]:
        cutoff = now - self.window
        return [t for t in self._requests.get(key, []) if t > cutoff]

    def _maybe_cleanup(self) -> None:
        """Drop expired timestamps and empty keys every cleanup interval."""
        now = datetime.utcnow()

        if now - self._last_cleanup < self.cleanup_interval:
            return

        for key in list(self._requests.keys()):
            self._requests[key] = self._recent(key, now)
            if not self._requests[key]:
                del self._requests[key]

        self._last_cleanup = now
        logger.debug(f"Rate limiter [{self.tier.name}] cleanup: {len(self._requests)} active keys")


# One limiter per tier, created on first use
_rate_limiters: Dict[str, RateLimiter] = {}
_registry_lock = threading.Lock()


def get_rate_limiter(tier: str = "general") -> RateLimiter:
    """Get or create the global limiter for a tier."""
    if tier not in RATE_LIMIT_TIERS:
        raise KeyError(f"Unknown rate limit tier: {tier}")
    with _registry_lock:
        if tier not in _rate_limiters:
            _rate_limiters[tier] = RateLimiter(RATE_LIMIT_TIERS[tier])
        return _rate_limiters[tier]


def reset_rate_limiters() -> None:
    """Drop every limiter (used by tests)."""
    with _registry_lock:
        _rate_limiters.clear()
