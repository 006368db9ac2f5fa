"""
Capability enforcement for admin routes.

Denied attempts, anonymous ones included, are written to the audit trail
before the error is raised.
"""

from fastapi import Depends

from eduscope.api.deps import AuditSinkDep, Context, OptionalActor
from eduscope.errors import AuthenticationError, AuthorizationError
from eduscope.kernel.audit import AuditRecord, DeniedDetails
from eduscope.kernel.identity.actor import Actor
from eduscope.kernel.models.audit_log import AuditAction, AuditOutcome, AuditResource
from eduscope.kernel.permissions import Capability, evaluate


def require_capability(
    capability: Capability,
    action: AuditAction,
    resource: AuditResource,
):
    """
    Dependency that requires the current actor to hold ``capability``.

    Returns the actor. Raises 401 without a session and 403 without the
    capability; both are audited under ``action``.
    """

    async def _check(
        actor: OptionalActor,
        audit_sink: AuditSinkDep,
        context: Context,
    ) -> Actor:
        if actor is not None and evaluate(actor, capability):
            return actor

        reason = "Authentication required" if actor is None else "Access denied"
        await audit_sink.record(AuditRecord.for_actor(
            actor,
            context,
            action=action,
            resource=resource,
            outcome=AuditOutcome.DENIED,
            details=DeniedDetails(
                operation=action.value.lower(),
                required=capability.value,
                actor_role=actor.role if actor else None,
                reason=reason,
            ),
        ))
        if actor is None:
            raise AuthenticationError()
        raise AuthorizationError(
            f"{reason}: requires {capability.value}",
            required=capability.value,
            actor_role=actor.role,
        )

    return Depends(_check)
