"""
Shared response models: health and error bodies.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(..., description="Overall service status", examples=["healthy"])
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str = Field(..., description="API version")
    database: Optional[str] = Field(default=None, description="Database connectivity")
    ai_configured: bool = Field(default=False, description="Whether a Gemini key is present")


class ErrorResponse(BaseModel):
    """Body returned for every handled error."""
    error: str = Field(..., description="Machine readable error code", examples=["not_found"])
    message: str = Field(..., description="Human readable message")
    details: Optional[str] = Field(default=None, description="Extra context (field name, hint)")
