"""
Standard API response wrappers.
"""

from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import Field

from review_dashboard.schemas.common.base import BaseSchema

T = TypeVar("T")

__all__ = [
    "SuccessResponse",
    "ErrorResponse",
]


class SuccessResponse(BaseSchema, Generic[T]):
    """Standard success response."""

    success: bool = Field(default=True, description="Success flag")
    message: Optional[str] = Field(default=None, description="Response message")
    data: Optional[T] = Field(default=None, description="Response data")

    @classmethod
    def create(cls, data: Optional[T] = None, message: Optional[str] = None):
        """Create success response."""
        return cls(success=True, message=message, data=data)


class ErrorResponse(BaseSchema):
    """Standard error response."""

    success: bool = Field(default=False, description="Success flag")
    message: str = Field(..., description="Error message")
    error: Optional[Dict[str, Any]] = Field(default=None, description="Error code and details")
