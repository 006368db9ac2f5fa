"""
Admin endpoints: review queue, audit trail and role management.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query

from eduscope.api.deps import AuditSinkDep, Context, Identity, OptionalActor, Workflow
from eduscope.api.middleware.capability_check import require_capability
from eduscope.kernel.audit import AuditQuery, AuditQueryDetails, AuditRecord
from eduscope.kernel.identity.actor import Actor
from eduscope.kernel.models.audit_log import AuditAction, AuditOutcome, AuditResource
from eduscope.kernel.models.pending_change import ChangeStatus
from eduscope.kernel.permissions import Capability
from eduscope.orchestration import CHANGE_KINDS
from eduscope.schemas.audit import AuditLogResponse
from eduscope.schemas.auth import RoleChangeRequest, UserResponse
from eduscope.schemas.common import ApiResponse, PaginatedResponse
from eduscope.schemas.moderation import ChangeKindName, PendingChangeResponse, ReviewAction

router = APIRouter()


@router.get("/pending-requests", response_model=ApiResponse[List[PendingChangeResponse]])
async def list_pending_requests(
    actor: OptionalActor,
    workflow: Workflow,
    context: Context,
    kind: Optional[ChangeKindName] = None,
    limit: int = Query(100, ge=1, le=500),
):
    """Open change requests the caller may review, oldest first."""
    changes = await workflow.list_open(
        actor,
        CHANGE_KINDS[kind.value] if kind else None,
        context=context,
        limit=limit,
    )
    return ApiResponse.ok([PendingChangeResponse.model_validate(c) for c in changes])


@router.post("/pending-requests/{change_id}", response_model=ApiResponse[PendingChangeResponse])
async def review_pending_request(
    change_id: uuid.UUID,
    data: ReviewAction,
    actor: OptionalActor,
    workflow: Workflow,
    context: Context,
):
    """Approve or reject a pending change request."""
    outcome = ChangeStatus.APPROVED if data.action == "approve" else ChangeStatus.REJECTED
    change = await workflow.resolve(actor, change_id, outcome, data.reason, context=context)
    message = (
        "Change request approved and applied"
        if outcome is ChangeStatus.APPROVED
        else "Change request rejected"
    )
    return ApiResponse.ok(PendingChangeResponse.model_validate(change), message=message)


@router.get("/audit-logs", response_model=ApiResponse[PaginatedResponse[AuditLogResponse]])
async def get_audit_logs(
    audit_sink: AuditSinkDep,
    context: Context,
    actor_id: Optional[uuid.UUID] = None,
    action: Optional[AuditAction] = None,
    resource: Optional[AuditResource] = None,
    resource_id: Optional[str] = None,
    outcome: Optional[AuditOutcome] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    actor: Actor = require_capability(
        Capability.ADMIN_AUDIT_LOGS,
        AuditAction.AUDIT_LOG_READ,
        AuditResource.AUDIT_LOG,
    ),
):
    """
    Query the audit trail, newest first.

    ``limit`` is clamped to 1..1000. Reading the trail is itself audited.
    """
    query = AuditQuery(
        actor_id=actor_id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        outcome=outcome,
        start_date=start_date,
        end_date=end_date,
        offset=offset,
        **({"limit": limit} if limit is not None else {}),
    )
    entries = await audit_sink.query(query)
    total = await audit_sink.count(query)

    await audit_sink.record(AuditRecord.for_actor(
        actor,
        context,
        action=AuditAction.AUDIT_LOG_READ,
        resource=AuditResource.AUDIT_LOG,
        details=AuditQueryDetails(filters=query.active_filters(), result_count=len(entries)),
    ))

    return ApiResponse.ok(PaginatedResponse.create(
        items=[AuditLogResponse.model_validate(e) for e in entries],
        total=total,
        limit=query.limit,
        offset=query.offset,
    ))


@router.patch("/users/{user_id}/role", response_model=ApiResponse[UserResponse])
async def change_user_role(
    user_id: uuid.UUID,
    data: RoleChangeRequest,
    identity: Identity,
    context: Context,
    actor: Actor = require_capability(
        Capability.USER_UPDATE,
        AuditAction.USER_ROLE_CHANGE,
        AuditResource.USER,
    ),
):
    """Change a user's role within the caller's authority."""
    user = await identity.change_role(actor, user_id, data.role, context=context)
    return ApiResponse.ok(UserResponse.model_validate(user), message="Role updated successfully")
