"""
User model for identity management.
"""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from eduscope.kernel.models.base import Base, TimestampMixin, generate_uuid


class UserRole(str, Enum):
    """User roles in the system, lowest privilege first."""
    STUDENT = "student"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class Faculty(str, Enum):
    """University faculties."""
    ENGINEERING = "Faculty of Engineering"
    BUSINESS = "Faculty of Business"
    COMPUTING = "Faculty of Computing"
    SCIENCE = "Faculty of Applied Sciences"
    MANAGEMENT = "Faculty of Management"


class User(Base, TimestampMixin):
    """User account model. Also the host entity for year and degree changes."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    student_id: Mapped[Optional[str]] = mapped_column(
        String(50),
        unique=True,
        nullable=True,
    )
    role: Mapped[UserRole] = mapped_column(
        String(50),
        default=UserRole.STUDENT.value,
        nullable=False,
    )
    faculty: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    year: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    degree_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("degrees.id", ondelete="SET NULL"),
        nullable=True,
    )
    bio: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"
