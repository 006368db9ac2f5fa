"""
Actor - the authenticated identity behind a request.
"""

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from eduscope.kernel.models.user import User


@dataclass(frozen=True)
class Actor:
    """
    Who is performing an action.

    ``role`` is kept as the raw string supplied by the identity provider; an
    unknown or missing role is representable here and denied by the
    permission evaluator.
    """

    id: uuid.UUID
    email: str
    role: Optional[str]
    faculty: Optional[str] = None

    @classmethod
    def from_user(cls, user: "User") -> "Actor":
        role = user.role.value if hasattr(user.role, "value") else user.role
        return cls(id=user.id, email=user.email, role=role, faculty=user.faculty)
