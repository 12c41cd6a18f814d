"""Common schemas used across multiple endpoints."""

from typing import List, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Response model for errors."""
    success: bool = False
    message: str
    error: str
    code: str
    fingerprint: Optional[str] = None
    index: Optional[int] = None
    missing: Optional[List[int]] = None
