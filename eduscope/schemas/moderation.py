"""
Moderation schemas: change payloads, review actions and responses.

The payload models double as validation for the moderation workflow, so a
proposal is checked the same way whether it arrives over HTTP or from code.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eduscope.kernel.models.research_paper import AcademicField


class PaperChanges(BaseModel):
    """Partial update proposed for a research paper. Unset fields are untouched."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    authors: Optional[List[str]] = Field(None, min_length=1)
    abstract: Optional[str] = Field(None, min_length=1)
    field: Optional[AcademicField] = None
    faculty: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    keywords: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    supervisor: Optional[str] = Field(None, max_length=255)
    department: Optional[str] = Field(None, max_length=255)

    @field_validator("title", "authors", "abstract", "field", "year", "keywords", "tags")
    @classmethod
    def required_column_not_null(cls, v, info):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if v is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return v


class YearChangeRequest(BaseModel):
    """Academic year change request."""

    model_config = ConfigDict(extra="forbid")

    year: int = Field(..., ge=1, le=4)


class DegreeChangeRequest(BaseModel):
    """Degree change request."""

    model_config = ConfigDict(extra="forbid")

    degree_id: uuid.UUID


class ReviewAction(BaseModel):
    """Reviewer decision on a pending change."""

    action: Literal["approve", "reject"]
    reason: Optional[str] = Field(None, max_length=500)


class PendingChangeResponse(BaseModel):
    """A pending-change ledger record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    host_type: str
    host_id: uuid.UUID
    change_type: str
    payload: Optional[Dict[str, Any]] = None
    requested_by: uuid.UUID
    requested_at: datetime
    status: str
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    reason: Optional[str] = None


class ResearchPaperResponse(BaseModel):
    """Research paper as shown to readers."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    authors: List[str]
    abstract: str
    field: str
    faculty: Optional[str] = None
    year: int
    file_id: str
    file_name: str
    file_size: int
    mime_type: str
    uploaded_by: uuid.UUID
    tags: List[str] = []
    keywords: List[str] = []
    supervisor: Optional[str] = None
    department: Optional[str] = None
    status: str


class ChangeKindName(str, Enum):
    """Change kinds selectable in the review queue."""

    PAPER_UPDATE = "PAPER_UPDATE"
    PAPER_DELETE = "PAPER_DELETE"
    YEAR_CHANGE = "YEAR_CHANGE"
    DEGREE_CHANGE = "DEGREE_CHANGE"
