"""
Common API Response Schemas
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Error body returned by every exception handler.

    Error Codes:
        - VALIDATION_ERROR: Request validation failed (400 / 422)
        - INVALID_STATE / ORDER_VIOLATION: Step out of sequence (400)
        - PERMISSION_DENIED / NOT_LOCK_OWNER: Not allowed (403)
        - NOT_FOUND: Resource not found (404)
        - DUPLICATE_ERROR / ALREADY_RESOLVED / STALE_EDIT_REQUEST: Conflict (409)
        - BUSINESS_RULE_ERROR: Business rule violation (422)
        - ALREADY_LOCKED: Order locked by another user (423)
        - DATABASE_ERROR / INTERNAL_ERROR: Server error (500)
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional context")
    timestamp: datetime = Field(..., description="When the error occurred (UTC)")


class MessageResponse(BaseModel):
    message: str
