"""
Core module - Configuration and cross-cutting concerns.

- config.py         : Environment-based configuration
- logging_config.py : Centralized logging setup
- exceptions.py     : Error hierarchy mapped to HTTP responses
- rate_limiter.py   : In-memory sliding-window limits per tier
- auth.py           : Supabase token and cron secret verification
"""
from applyos.core.config import get_settings, Settings
from applyos.core.logging_config import setup_logging, get_logger, LoggerMixin

__all__ = [
    "get_settings",
    "Settings",
    "setup_logging",
    "get_logger",
    "LoggerMixin",
]
