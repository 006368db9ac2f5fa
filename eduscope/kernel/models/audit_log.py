"""
Immutable audit log.

This table is append-only. The ORM refuses to flush an update or delete of
an existing entry, so no application path can rewrite history.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Index, JSON, String, Text, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from eduscope.kernel.models.base import Base, generate_uuid


class AuditAction(str, Enum):
    """All actions recorded in the audit trail."""

    # Accounts
    USER_REGISTER = "USER_REGISTER"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGIN_FAILED = "USER_LOGIN_FAILED"
    USER_VIEW = "USER_VIEW"
    USER_ROLE_CHANGE = "USER_ROLE_CHANGE"

    # Research papers
    PAPER_VIEW = "PAPER_VIEW"
    PAPER_UPDATE_REQUEST = "PAPER_UPDATE_REQUEST"
    PAPER_UPDATE = "PAPER_UPDATE"
    PAPER_UPDATE_REJECT = "PAPER_UPDATE_REJECT"
    PAPER_DELETE_REQUEST = "PAPER_DELETE_REQUEST"
    PAPER_DELETE = "PAPER_DELETE"
    PAPER_DELETE_REJECT = "PAPER_DELETE_REJECT"

    # Profile change requests
    YEAR_CHANGE_REQUEST = "YEAR_CHANGE_REQUEST"
    YEAR_CHANGE_APPROVE = "YEAR_CHANGE_APPROVE"
    YEAR_CHANGE_REJECT = "YEAR_CHANGE_REJECT"
    DEGREE_CHANGE_REQUEST = "DEGREE_CHANGE_REQUEST"
    DEGREE_CHANGE_APPROVE = "DEGREE_CHANGE_APPROVE"
    DEGREE_CHANGE_REJECT = "DEGREE_CHANGE_REJECT"

    # Review of a change whose kind cannot be determined
    CHANGE_REVIEW = "CHANGE_REVIEW"

    # Review queue and audit trail access
    PENDING_REQUESTS_VIEW = "PENDING_REQUESTS_VIEW"
    AUDIT_LOG_READ = "AUDIT_LOG_READ"


class AuditResource(str, Enum):
    USER = "USER"
    RESEARCH_PAPER = "RESEARCH_PAPER"
    IDEA = "IDEA"
    DEGREE = "DEGREE"
    PENDING_CHANGE = "PENDING_CHANGE"
    AUDIT_LOG = "AUDIT_LOG"
    SYSTEM = "SYSTEM"


class AuditOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    DENIED = "denied"


class AuditLogEntry(Base):
    """Immutable record of a sensitive action."""

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )

    # Actor (nullable for anonymous attempts)
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True, index=True)
    actor_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    actor_role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    action: Mapped[AuditAction] = mapped_column(String(100), nullable=False, index=True)
    resource: Mapped[AuditResource] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    outcome: Mapped[AuditOutcome] = mapped_column(
        String(20),
        default=AuditOutcome.SUCCESS.value,
        nullable=False,
    )

    details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Request metadata
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)  # IPv6 max length
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    request_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Stamped by the sink, never by callers
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_audit_logs_actor_time", "actor_id", "timestamp"),
        Index("ix_audit_logs_action_time", "action", "timestamp"),
        Index("ix_audit_logs_resource", "resource", "resource_id"),
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.action} {self.resource}:{self.resource_id} {self.outcome}>"


class ImmutableAuditLogError(RuntimeError):
    """Raised when code tries to modify or delete a written audit entry."""


@event.listens_for(AuditLogEntry, "before_update")
def _reject_update(mapper, connection, target):
    raise ImmutableAuditLogError(f"Audit log entry {target.id} is append-only")


@event.listens_for(AuditLogEntry, "before_delete")
def _reject_delete(mapper, connection, target):
    raise ImmutableAuditLogError(f"Audit log entry {target.id} cannot be deleted")
