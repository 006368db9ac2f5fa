"""
Kernel Data Models

SQLAlchemy models for the entity stores, the pending-change ledger and the
audit trail.
"""

from eduscope.kernel.models.base import Base, TimestampMixin, generate_uuid
from eduscope.kernel.models.degree import Degree, Idea
from eduscope.kernel.models.user import User, UserRole, Faculty
from eduscope.kernel.models.research_paper import (
    ResearchPaper,
    AcademicField,
    ContentStatus,
    EDITABLE_PAPER_FIELDS,
)
from eduscope.kernel.models.pending_change import (
    PendingChange,
    HostType,
    ChangeType,
    ChangeStatus,
    make_open_key,
)
from eduscope.kernel.models.audit_log import (
    AuditLogEntry,
    AuditAction,
    AuditResource,
    AuditOutcome,
    ImmutableAuditLogError,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    # Entities
    "User",
    "UserRole",
    "Faculty",
    "ResearchPaper",
    "AcademicField",
    "ContentStatus",
    "EDITABLE_PAPER_FIELDS",
    "Degree",
    "Idea",
    # Ledger
    "PendingChange",
    "HostType",
    "ChangeType",
    "ChangeStatus",
    "make_open_key",
    # Audit
    "AuditLogEntry",
    "AuditAction",
    "AuditResource",
    "AuditOutcome",
    "ImmutableAuditLogError",
]
