"""
Gemini model tiers and per-model rate-limit tracking.

Each task is assigned a complexity tier; the client tries the tier's
models in order and skips any model that recently returned a quota error.
"""
import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional

from applyos.core.logging_config import LoggerMixin


DEFAULT_RETRY_AFTER_SECONDS = 60


class TaskComplexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


MODEL_TIERS: Dict[TaskComplexity, List[str]] = {
    # Question extraction, short classification
    TaskComplexity.SIMPLE: ["gemini-2.5-flash-lite", "gemini-2.0-flash-lite"],
    # Answers, cover letters, document parsing
    TaskComplexity.MEDIUM: ["gemini-2.0-flash", "gemini-2.5-flash"],
    # Document reports and resume analysis
    TaskComplexity.COMPLEX: ["gemini-2.5-pro", "gemini-2.0-flash", "gemini-2.5-flash"],
}


class ModelManager(LoggerMixin):
    """
    Tracks which Gemini models are temporarily rate limited.

    Example:
        >>> manager = ModelManager()
        >>> manager.mark_rate_limited("gemini-2.0-flash", retry_after_seconds=30)
        >>> manager.get_available_models(TaskComplexity.MEDIUM)
        ['gemini-2.5-flash']
    """

    def __init__(self):
        self._limited_until: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def get_available_models(self, complexity: TaskComplexity) -> List[str]:
        """Models of the tier that are not currently limited, in tier order."""
        now = datetime.utcnow()
        with self._lock:
            self._expire(now)
            return [m for m in MODEL_TIERS[complexity] if m not in self._limited_until]

    def get_available_model(self, complexity: TaskComplexity) -> Optional[str]:
        models = self.get_available_models(complexity)
        return models[0] if models else None

    def mark_rate_limited(self, model: str, retry_after_seconds: Optional[int] = None) -> datetime:
        """Take a model out of rotation; returns when it becomes available again."""
        seconds = retry_after_seconds or DEFAULT_RETRY_AFTER_SECONDS
        until = datetime.utcnow() + timedelta(seconds=seconds)
        with self._lock:
            self._limited_until[model] = until
        self.logger.warning(f"Model {model} rate limited for {seconds}s")
        return until

    def is_available(self, model: str) -> bool:
        with self._lock:
            self._expire(datetime.utcnow())
            return model not in self._limited_until

    def all_limited(self, complexity: TaskComplexity) -> bool:
        return not self.get_available_models(complexity)

    def next_available_time(self, complexity: Optional[TaskComplexity] = None) -> Optional[datetime]:
        """Earliest time a limited model (of the tier, if given) comes back."""
        models = MODEL_TIERS[complexity] if complexity else None
        with self._lock:
            self._expire(datetime.utcnow())
            times = [
                until for model, until in self._limited_until.items()
                if models is None or model in models
            ]
        return min(times) if times else None

    def status(self) -> Dict[str, Dict[str, object]]:
        """Availability of every known model, for health/debug output."""
        now = datetime.utcnow()
        with self._lock:
            self._expire(now)
            known = {m for models in MODEL_TIERS.values() for m in models}
            return {
                model: {
                    "available": model not in self._limited_until,
                    "limited_until": (
                        self._limited_until[model].isoformat()
                        if model in self._limited_until else None
                    ),
                }
                for model in sorted(known)
            }

    def reset(self, model: Optional[str] = None) -> None:
        with self._lock:
            if model is None:
                self._limited_until.clear()
            else:
                self._limited_until.pop(model, None)

    def _expire(self, now: datetime) -> None:
        for model in [m for m, until in self._limited_until.items() if until <= now]:
            del self._limited_until[model]
            self.logger.info(f"Model {model} available again")


_model_manager: Optional[ModelManager] = None


def get_model_manager() -> ModelManager:
    global _model_manager
    if _model_manager is None:
        _model_manager = ModelManager()
    return _model_manager
