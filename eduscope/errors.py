"""Exception taxonomy for the moderation core.

Authentication, authorization, conflict and state errors are expected
outcomes; the API layer renders them as structured ``{success, error}``
responses. Storage errors mean the primary write did not commit.
"""

from typing import Optional

from fastapi import status


class PortalError(Exception):
    """Base exception for EduScope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "error"

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(PortalError):
    """No actor/session present."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_required"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(PortalError):
    """Actor lacks a capability or fails a resource condition."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "access_denied"

    def __init__(
        self,
        message: str = "Access denied",
        required: Optional[str] = None,
        actor_role: Optional[str] = None,
    ):
        self.required = required
        self.actor_role = actor_role
        super().__init__(message)


class NotFoundError(PortalError):
    """A requested entity or pending change does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(PortalError):
    """An open pending change already exists for the host and change type."""

    status_code = status.HTTP_409_CONFLICT
    code = "already_pending"

    def __init__(self, message: str = "A change request is already pending", existing_id=None):
        self.existing_id = existing_id
        super().__init__(message)


class DuplicateError(PortalError):
    """A unique account attribute (email, student id) is already taken."""

    status_code = status.HTTP_409_CONFLICT
    code = "duplicate"


class StateError(PortalError):
    """Transition attempted from a terminal or already-resolved state."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"

    def __init__(self, message: str = "This request has already been processed"):
        super().__init__(message)


class InvalidChangeError(PortalError):
    """Proposed payload is not acceptable for the change kind."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_change"


class StorageError(PortalError):
    """Underlying store unavailable or the operation failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "storage_error"

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message)
