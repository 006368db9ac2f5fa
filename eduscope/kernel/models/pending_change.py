"""
Pending-change ledger records.

A PendingChange is a proposal attached to a host entity (paper, user) that
leaves the live entity untouched until a reviewer resolves it.

``open_key`` carries ``host_type:host_id:change_type`` while the change is
pending and is cleared on resolution. Its unique index makes "at most one
open proposal per host and change type" an atomic insert-if-absent.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Index, JSON, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from eduscope.kernel.models.base import Base, generate_uuid


class HostType(str, Enum):
    """Entity collections that can carry pending changes."""
    RESEARCH_PAPER = "research_paper"
    USER = "user"


class ChangeType(str, Enum):
    UPDATE = "update"
    DELETE = "delete"
    YEAR_CHANGE = "year_change"
    DEGREE_CHANGE = "degree_change"


class ChangeStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not ChangeStatus.PENDING


def make_open_key(host_type: str, host_id: uuid.UUID, change_type: str) -> str:
    return f"{host_type}:{host_id}:{change_type}"


class PendingChange(Base):
    """A proposed mutation or deletion awaiting review."""

    __tablename__ = "pending_changes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )

    # Host entity (polymorphic, no FK so history survives host deletion)
    host_type: Mapped[HostType] = mapped_column(String(50), nullable=False)
    host_id: Mapped[uuid.UUID] = mapped_column(Uuid(), nullable=False)
    change_type: Mapped[ChangeType] = mapped_column(String(50), nullable=False)

    # Proposed field values; NULL for deletions
    payload: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    requested_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    status: Mapped[ChangeStatus] = mapped_column(
        String(20),
        default=ChangeStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    open_key: Mapped[Optional[str]] = mapped_column(
        String(200),
        unique=True,
        nullable=True,
    )

    # Review metadata
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_pending_changes_host", "host_type", "host_id", "change_type"),
    )

    @property
    def is_open(self) -> bool:
        return self.status == ChangeStatus.PENDING

    def __repr__(self) -> str:
        return (
            f"<PendingChange {self.id} {self.host_type}:{self.host_id} "
            f"{self.change_type} status={self.status}>"
        )
