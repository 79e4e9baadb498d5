"""
API module - FastAPI app and routers.

This module handles:
- Authentication and rate limiting dependencies
- Route definitions
- Error responses
"""
from applyos.api.main import app

__all__ = ["app"]
