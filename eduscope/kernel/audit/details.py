"""
Typed payloads for the ``details`` column of audit entries.

Each model carries a ``kind`` literal so a stored entry can be parsed back
into the right shape with ``parse_details``.
"""

import uuid
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError


class ProposalDetails(BaseModel):
    """A change was proposed against a host entity."""

    kind: Literal["proposal"] = "proposal"
    change_id: Optional[uuid.UUID] = None
    host_type: str
    host_id: uuid.UUID
    change_type: str
    payload: Optional[Dict[str, Any]] = None
    current: Optional[Dict[str, Any]] = None


class ResolutionDetails(BaseModel):
    """A pending change was approved or rejected."""

    kind: Literal["resolution"] = "resolution"
    change_id: uuid.UUID
    host_type: str
    host_id: uuid.UUID
    change_type: str
    outcome: str
    requested_by: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None


class DeniedDetails(BaseModel):
    """An actor attempted something they are not allowed to do."""

    kind: Literal["denied"] = "denied"
    operation: str
    required: Optional[str] = None
    actor_role: Optional[str] = None
    reason: Optional[str] = None


class FailureDetails(BaseModel):
    """An allowed operation failed (conflict, stale state, storage)."""

    kind: Literal["failure"] = "failure"
    operation: str
    error: str
    message: str
    change_id: Optional[uuid.UUID] = None


class AuditQueryDetails(BaseModel):
    """The audit trail itself was read."""

    kind: Literal["audit_query"] = "audit_query"
    filters: Dict[str, Any] = Field(default_factory=dict)
    result_count: Optional[int] = None


class RoleChangeDetails(BaseModel):
    kind: Literal["role_change"] = "role_change"
    target_email: Optional[str] = None
    old_role: Optional[str] = None
    new_role: str


class AccountDetails(BaseModel):
    """Registration and login events."""

    kind: Literal["account"] = "account"
    email: Optional[str] = None
    method: str = "password"
    reason: Optional[str] = None


AuditDetails = Annotated[
    Union[
        ProposalDetails,
        ResolutionDetails,
        DeniedDetails,
        FailureDetails,
        AuditQueryDetails,
        RoleChangeDetails,
        AccountDetails,
    ],
    Field(discriminator="kind"),
]

_details_adapter: TypeAdapter = TypeAdapter(AuditDetails)


def parse_details(raw: Optional[Dict[str, Any]]) -> Union[BaseModel, Dict[str, Any]]:
    """Parse a stored ``details`` dict back into its typed model.

    Entries written with a free-form dict come back unchanged.
    """
    if not raw:
        return {}
    try:
        return _details_adapter.validate_python(raw)
    except ValidationError:
        return dict(raw)
