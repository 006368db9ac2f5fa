"""
Research paper model.

Owners never edit a paper in place; updates and deletions go through the
pending-change ledger and are applied when a reviewer approves them.
"""

import uuid
from enum import Enum
from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, JSON, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from eduscope.kernel.models.base import Base, TimestampMixin, generate_uuid


class AcademicField(str, Enum):
    ENGINEERING = "engineering"
    BUSINESS = "business"
    COMPUTING = "computing"
    SCIENCE = "science"
    MANAGEMENT = "management"
    OTHER = "other"


class ContentStatus(str, Enum):
    """Publication status of user-submitted content."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"


# Fields an owner may propose to change; everything else is system-managed.
EDITABLE_PAPER_FIELDS = frozenset({
    "title",
    "authors",
    "abstract",
    "field",
    "faculty",
    "year",
    "keywords",
    "tags",
    "supervisor",
    "department",
})


class ResearchPaper(Base, TimestampMixin):
    """An uploaded research paper. The file itself lives in the blob store."""

    __tablename__ = "research_papers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    authors: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    abstract: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    field: Mapped[AcademicField] = mapped_column(
        String(50),
        nullable=False,
    )
    faculty: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Opaque blob-store reference
    file_id: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)

    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    keywords: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    supervisor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[ContentStatus] = mapped_column(
        String(50),
        default=ContentStatus.PENDING.value,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<ResearchPaper {self.id} {self.title!r}>"
