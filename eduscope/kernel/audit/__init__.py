"""
Audit Core - append-only audit trail.
"""

from eduscope.kernel.audit.audit_sink import AuditQuery, AuditRecord, AuditSink, RequestContext
from eduscope.kernel.audit.details import (
    AccountDetails,
    AuditDetails,
    AuditQueryDetails,
    DeniedDetails,
    FailureDetails,
    ProposalDetails,
    ResolutionDetails,
    RoleChangeDetails,
    parse_details,
)

__all__ = [
    "AuditSink",
    "AuditRecord",
    "AuditQuery",
    "RequestContext",
    "AuditDetails",
    "ProposalDetails",
    "ResolutionDetails",
    "DeniedDetails",
    "FailureDetails",
    "AuditQueryDetails",
    "RoleChangeDetails",
    "AccountDetails",
    "parse_details",
]
