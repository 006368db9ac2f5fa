"""
Pydantic schemas for API request/response validation.
"""

from eduscope.schemas.common import (
    ApiResponse,
    ErrorResponse,
    HealthResponse,
    PaginatedResponse,
)
from eduscope.schemas.auth import (
    RoleChangeRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from eduscope.schemas.moderation import (
    ChangeKindName,
    DegreeChangeRequest,
    PaperChanges,
    PendingChangeResponse,
    ResearchPaperResponse,
    ReviewAction,
    YearChangeRequest,
)
from eduscope.schemas.audit import AuditLogResponse

__all__ = [
    # Common
    "ApiResponse",
    "ErrorResponse",
    "HealthResponse",
    "PaginatedResponse",
    # Auth
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "TokenResponse",
    "RoleChangeRequest",
    # Moderation
    "ChangeKindName",
    "PaperChanges",
    "YearChangeRequest",
    "DegreeChangeRequest",
    "ReviewAction",
    "PendingChangeResponse",
    "ResearchPaperResponse",
    # Audit
    "AuditLogResponse",
]
