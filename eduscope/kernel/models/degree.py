"""
Degree programmes and student ideas.

Both are plain entity collections; degrees are the target of degree-change
requests, ideas are moderated content owned by students.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from eduscope.kernel.models.base import Base, TimestampMixin, generate_uuid


class Degree(Base, TimestampMixin):
    """A degree programme offered by a faculty."""

    __tablename__ = "degrees"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    degree_name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    faculty: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    affiliated_university: Mapped[str] = mapped_column(String(100), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Degree {self.degree_name}>"


class Idea(Base, TimestampMixin):
    """A research idea submitted by a student."""

    __tablename__ = "ideas"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    field: Mapped[str] = mapped_column(String(50), nullable=False)
    submitted_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(50), default="pending", nullable=False)

    def __repr__(self) -> str:
        return f"<Idea {self.title!r}>"
