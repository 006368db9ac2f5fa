"""
Common schema types used across the API.

Every endpoint answers with the same envelope:
``{"success": bool, "data": ..., "error": ..., "message": ...}``.
"""

from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope."""

    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None
    code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ApiResponse":
        return cls(success=True, data=data, message=message)


class ErrorResponse(BaseModel):
    """Envelope for failed requests."""

    success: bool = False
    error: str
    code: Optional[str] = None
    details: Optional[Any] = None


class PaginatedResponse(BaseModel, Generic[T]):
    """Paginated list payload."""

    items: List[T]
    total: int
    limit: int
    offset: int = 0
    has_more: bool = False

    @classmethod
    def create(
        cls,
        items: List[T],
        total: int,
        limit: int,
        offset: int = 0,
    ) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            limit=limit,
            offset=offset,
            has_more=(offset + len(items)) < total,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    database: str = "connected"
