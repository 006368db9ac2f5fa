"""
Moderation workflow for pending changes.

States per host and change kind:

    NONE --propose--> PENDING --approve--> APPROVED
                              --reject---> REJECTED

APPROVED and REJECTED are terminal; the host returns to NONE for that
change kind and a new proposal may be opened.

Each operation runs in its own transaction. On approval the host mutation
and the ledger resolution share that transaction, so if applying the change
fails the change stays pending and can be retried. Every operation records
exactly one audit entry after its transaction has finished, including
denied and failed attempts. Audit failures never undo a committed change.
"""

import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eduscope.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PortalError,
    StateError,
    StorageError,
)
from eduscope.kernel.audit import (
    AuditQueryDetails,
    AuditRecord,
    AuditSink,
    DeniedDetails,
    FailureDetails,
    ProposalDetails,
    RequestContext,
    ResolutionDetails,
)
from eduscope.kernel.identity.actor import Actor
from eduscope.kernel.ledger import PendingChangeLedger
from eduscope.kernel.models.audit_log import AuditAction, AuditOutcome, AuditResource
from eduscope.kernel.models.pending_change import ChangeStatus, PendingChange
from eduscope.kernel.permissions import evaluate, has_any
from eduscope.kernel.stores import EntityStore
from eduscope.logging_config import get_diagnostics_logger, get_logger
from eduscope.orchestration.change_kinds import (
    CHANGE_KINDS,
    REVIEWER_CAPABILITIES,
    ChangeKind,
    kind_for,
)

logger = get_logger(__name__)
diagnostics = get_diagnostics_logger()

NONE = "none"

# Valid transitions: (from_state, to_state) -> operation
_TRANSITIONS: Dict[Tuple[str, str], str] = {
    (NONE, ChangeStatus.PENDING.value): "propose",
    (ChangeStatus.PENDING.value, ChangeStatus.APPROVED.value): "approve",
    (ChangeStatus.PENDING.value, ChangeStatus.REJECTED.value): "reject",
}


def valid_transitions(from_state: str) -> List[str]:
    """Return list of valid target states from given state."""
    return sorted({t for (f, t) in _TRANSITIONS if f == from_state})


def can_transition(from_state: str, to_state: str) -> bool:
    return (from_state, to_state) in _TRANSITIONS


class ModerationWorkflow:
    """
    Propose, review and apply changes to host entities.

    Usage:
        workflow = ModerationWorkflow(async_session_maker, audit_sink)
        change = await workflow.propose(student, PAPER_UPDATE, paper.id, {"title": "New"})
        await workflow.approve(admin, change.id)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        audit_sink: AuditSink,
    ):
        self._session_factory = session_factory
        self.audit_sink = audit_sink

    # ------------------------------------------------------------------
    # NONE -> PENDING
    # ------------------------------------------------------------------

    async def propose(
        self,
        actor: Optional[Actor],
        kind: ChangeKind,
        host_id: uuid.UUID,
        payload: Optional[Dict[str, Any]] = None,
        context: Optional[RequestContext] = None,
    ) -> PendingChange:
        """
        Open a pending change on a host the actor owns.

        Raises:
            AuthenticationError: No actor
            NotFoundError: Host does not exist
            AuthorizationError: Actor neither owns the host nor reviews this kind
            InvalidChangeError: Payload not acceptable for this kind
            ConflictError: A change of this kind is already pending on the host
            StorageError: The proposal could not be stored
        """
        record = self._record_factory(actor, kind.request_action, kind.resource, host_id, context)

        if actor is None:
            await self._record_unauthenticated(record, "propose")
            raise AuthenticationError()

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    host = await kind.store(session).find_by_id(host_id)
                    if host is None:
                        raise NotFoundError(f"{kind.resource.value.replace('_', ' ').capitalize()} not found")

                    if kind.owner_of(host) != actor.id and not evaluate(actor, kind.reviewer_capability):
                        raise AuthorizationError(
                            "Only the owner can request this change",
                            required="owner",
                            actor_role=actor.role,
                        )

                    normalized = await kind.validate(session, host, payload)
                    current = EntityStore.snapshot(host, kind.fields_for(normalized))
                    change = await PendingChangeLedger(session).propose(
                        kind.host_type,
                        host_id,
                        kind.change_type,
                        requested_by=actor.id,
                        payload=normalized,
                    )
        except AuthorizationError as exc:
            await self._record_denied(record, "propose", exc)
            raise
        except ConflictError as exc:
            exc.existing_id = await self._existing_open_id(kind, host_id)
            await self._record_failure(record, "propose", exc, change_id=exc.existing_id)
            raise
        except PortalError as exc:
            await self._record_failure(record, "propose", exc)
            raise
        except SQLAlchemyError as exc:
            error = StorageError("Failed to submit change request")
            diagnostics.exception(
                "Proposal storage failure",
                extra={"kind": kind.name, "host_id": str(host_id)},
            )
            await self._record_failure(record, "propose", error)
            raise error from exc

        await self.audit_sink.record(record(
            details=ProposalDetails(
                change_id=change.id,
                host_type=kind.host_type.value,
                host_id=host_id,
                change_type=kind.change_type.value,
                payload=change.payload,
                current=current,
            ),
        ))
        logger.info(
            "Change proposed",
            extra={"change_id": str(change.id), "kind": kind.name, "host_id": str(host_id)},
        )
        return change

    # ------------------------------------------------------------------
    # PENDING -> APPROVED | REJECTED
    # ------------------------------------------------------------------

    async def approve(
        self,
        actor: Optional[Actor],
        change_id: uuid.UUID,
        reason: Optional[str] = None,
        context: Optional[RequestContext] = None,
    ) -> PendingChange:
        """Approve a pending change and apply it to the host."""
        return await self.resolve(actor, change_id, ChangeStatus.APPROVED, reason, context)

    async def reject(
        self,
        actor: Optional[Actor],
        change_id: uuid.UUID,
        reason: Optional[str] = None,
        context: Optional[RequestContext] = None,
    ) -> PendingChange:
        """Reject a pending change. The host is left untouched."""
        return await self.resolve(actor, change_id, ChangeStatus.REJECTED, reason, context)

    async def resolve(
        self,
        actor: Optional[Actor],
        change_id: uuid.UUID,
        outcome: ChangeStatus,
        reason: Optional[str] = None,
        context: Optional[RequestContext] = None,
    ) -> PendingChange:
        """
        Move a pending change to a terminal state.

        Raises:
            AuthenticationError: No actor
            AuthorizationError: Actor lacks the reviewer capability for this kind
            NotFoundError: No such change, or the host disappeared before approval
            StateError: Change already resolved
            InvalidChangeError: The change can no longer be applied
            StorageError: The resolution could not be stored
        """
        outcome = ChangeStatus(outcome)
        if not can_transition(ChangeStatus.PENDING.value, outcome.value):
            raise ValueError(f"Cannot resolve a change to {outcome.value}")
        operation = "approve" if outcome is ChangeStatus.APPROVED else "reject"

        # Replaced with the kind-specific factory once the change is loaded
        record = self._record_factory(
            actor, AuditAction.CHANGE_REVIEW, AuditResource.PENDING_CHANGE, change_id, context,
        )

        if actor is None:
            await self._record_unauthenticated(record, operation)
            raise AuthenticationError()

        kind: Optional[ChangeKind] = None
        before = after = None
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    ledger = PendingChangeLedger(session)
                    change = await ledger.get(change_id)
                    if change is None:
                        if not has_any(actor, REVIEWER_CAPABILITIES):
                            raise AuthorizationError(
                                "Access denied",
                                required=" or ".join(sorted(c.value for c in REVIEWER_CAPABILITIES)),
                                actor_role=actor.role,
                            )
                        raise NotFoundError("Change request not found")

                    kind = kind_for(change.host_type, change.change_type)
                    if kind is None:
                        raise StateError("Change request has an unknown type")
                    action = kind.approve_action if outcome is ChangeStatus.APPROVED else kind.reject_action
                    record = self._record_factory(actor, action, kind.resource, change.host_id, context)

                    if not evaluate(actor, kind.reviewer_capability):
                        raise AuthorizationError(
                            f"Reviewing {kind.label} requests requires {kind.reviewer_capability.value}",
                            required=kind.reviewer_capability.value,
                            actor_role=actor.role,
                        )
                    if not can_transition(change.status, outcome.value):
                        raise StateError()

                    fields = kind.fields_for(change.payload)
                    store = kind.store(session)
                    before = EntityStore.snapshot(await store.find_by_id(change.host_id), fields)

                    # Claim the change first; a concurrent reviewer gets StateError here
                    resolved = await ledger.resolve(change_id, outcome, actor.id, reason)

                    if outcome is ChangeStatus.APPROVED:
                        host = await kind.apply(session, resolved)
                        after = EntityStore.snapshot(host, fields)
                    else:
                        after = before
        except AuthorizationError as exc:
            await self._record_denied(record, operation, exc, change_id=change_id)
            raise
        except PortalError as exc:
            await self._record_failure(record, operation, exc, change_id=change_id)
            raise
        except SQLAlchemyError as exc:
            error = StorageError("Failed to process change request")
            diagnostics.exception(
                "Resolution storage failure",
                extra={"change_id": str(change_id), "outcome": outcome.value},
            )
            await self._record_failure(record, operation, error, change_id=change_id)
            raise error from exc

        await self.audit_sink.record(record(
            details=ResolutionDetails(
                change_id=resolved.id,
                host_type=kind.host_type.value,
                host_id=resolved.host_id,
                change_type=kind.change_type.value,
                outcome=outcome.value,
                requested_by=resolved.requested_by,
                reason=reason,
                before=before,
                after=after,
            ),
        ))
        logger.info(
            "Change resolved",
            extra={"change_id": str(change_id), "kind": kind.name, "outcome": outcome.value},
        )
        return resolved

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_open(
        self,
        actor: Optional[Actor],
        kind: Optional[ChangeKind] = None,
        context: Optional[RequestContext] = None,
        limit: int = 100,
    ) -> List[PendingChange]:
        """
        Open changes the actor may review, oldest first.

        Without ``kind``, every kind the actor can review is included.
        """
        record = self._record_factory(
            actor, AuditAction.PENDING_REQUESTS_VIEW, AuditResource.PENDING_CHANGE, None, context,
        )
        if actor is None:
            await self._record_unauthenticated(record, "list_open")
            raise AuthenticationError()

        candidates = [kind] if kind is not None else list(CHANGE_KINDS.values())
        reviewable = [k for k in candidates if evaluate(actor, k.reviewer_capability)]
        if not reviewable:
            required = " or ".join(sorted({k.reviewer_capability.value for k in candidates}))
            error = AuthorizationError("Access denied", required=required, actor_role=actor.role)
            await self._record_denied(record, "list_open", error)
            raise error

        changes: List[PendingChange] = []
        try:
            async with self._session_factory() as session:
                ledger = PendingChangeLedger(session)
                for k in reviewable:
                    changes.extend(await ledger.list_open(k.host_type, k.change_type, limit=limit))
        except SQLAlchemyError as exc:
            diagnostics.exception("Listing open changes failed")
            raise StorageError("Failed to load pending requests") from exc

        changes.sort(key=lambda c: c.requested_at)
        changes = changes[:limit]

        await self.audit_sink.record(record(
            details=AuditQueryDetails(
                filters={"kinds": [k.name for k in reviewable]},
                result_count=len(changes),
            ),
        ))
        return changes

    async def get_open_for_host(
        self,
        actor: Optional[Actor],
        kind: ChangeKind,
        host_id: uuid.UUID,
        context: Optional[RequestContext] = None,
    ) -> Optional[PendingChange]:
        """The open change of ``kind`` on a host, visible to its owner and reviewers."""
        record = self._record_factory(actor, kind.request_action, kind.resource, host_id, context)
        if actor is None:
            await self._record_unauthenticated(record, "get_open")
            raise AuthenticationError()

        try:
            async with self._session_factory() as session:
                host = await kind.store(session).find_by_id(host_id)
                if host is None:
                    raise NotFoundError(f"{kind.resource.value.replace('_', ' ').capitalize()} not found")
                if kind.owner_of(host) != actor.id and not evaluate(actor, kind.reviewer_capability):
                    raise AuthorizationError(
                        "Access denied",
                        required=kind.reviewer_capability.value,
                        actor_role=actor.role,
                    )
                return await PendingChangeLedger(session).get_open(
                    kind.host_type, host_id, kind.change_type,
                )
        except AuthorizationError as exc:
            await self._record_denied(record, "get_open", exc)
            raise
        except SQLAlchemyError as exc:
            diagnostics.exception("Loading open change failed", extra={"host_id": str(host_id)})
            raise StorageError("Failed to load change request") from exc

    # ------------------------------------------------------------------
    # Audit helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _record_factory(
        actor: Optional[Actor],
        action: AuditAction,
        resource: AuditResource,
        resource_id: Optional[uuid.UUID],
        context: Optional[RequestContext],
    ):
        def build(**fields: Any) -> AuditRecord:
            return AuditRecord.for_actor(
                actor,
                context,
                action=action,
                resource=resource,
                resource_id=resource_id,
                **fields,
            )
        return build

    async def _record_unauthenticated(self, record, operation: str) -> None:
        await self.audit_sink.record(record(
            outcome=AuditOutcome.DENIED,
            details=DeniedDetails(operation=operation, reason="Authentication required"),
        ))

    async def _record_denied(
        self,
        record,
        operation: str,
        exc: AuthorizationError,
        change_id: Optional[uuid.UUID] = None,
    ) -> None:
        await self.audit_sink.record(record(
            outcome=AuditOutcome.DENIED,
            details=DeniedDetails(
                operation=operation,
                required=exc.required,
                actor_role=exc.actor_role,
                reason=exc.message,
            ),
        ))
        logger.warning(
            "Moderation action denied",
            extra={
                "operation": operation,
                "required": exc.required,
                "actor_role": exc.actor_role,
                "change_id": str(change_id) if change_id else None,
            },
        )

    async def _record_failure(
        self,
        record,
        operation: str,
        exc: PortalError,
        change_id: Optional[uuid.UUID] = None,
    ) -> None:
        await self.audit_sink.record(record(
            outcome=AuditOutcome.FAILURE,
            details=FailureDetails(
                operation=operation,
                error=exc.code,
                message=exc.message,
                change_id=change_id,
            ),
        ))

    async def _existing_open_id(self, kind: ChangeKind, host_id: uuid.UUID) -> Optional[uuid.UUID]:
        """Id of the change that blocked a proposal, for the caller to inspect."""
        try:
            async with self._session_factory() as session:
                existing = await PendingChangeLedger(session).get_open(
                    kind.host_type, host_id, kind.change_type,
                )
        except SQLAlchemyError:
            diagnostics.exception("Lookup of conflicting change failed", extra={"host_id": str(host_id)})
            return None
        return existing.id if existing else None
