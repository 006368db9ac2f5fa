"""
Change kinds handled by the moderation workflow.

A ChangeKind bundles everything that differs between paper updates, paper
deletions, academic-year changes and degree changes: which store holds the
host, who owns it, who may review, how a payload is validated and what
approval does to the host. The workflow itself is the same for all of them.
"""

import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from eduscope.errors import InvalidChangeError, NotFoundError
from eduscope.kernel.models.audit_log import AuditAction, AuditResource
from eduscope.kernel.models.pending_change import ChangeType, HostType, PendingChange
from eduscope.kernel.permissions import Capability
from eduscope.kernel.stores import DegreeStore, EntityStore, ResearchPaperStore, UserStore
from eduscope.schemas.moderation import DegreeChangeRequest, PaperChanges, YearChangeRequest

Validator = Callable[[AsyncSession, Any, Optional[Dict[str, Any]]], Awaitable[Optional[Dict[str, Any]]]]
Applier = Callable[[AsyncSession, PendingChange], Awaitable[Optional[Any]]]

# Paper fields captured in the audit trail when a paper is deleted
_DELETED_PAPER_FIELDS = ("title", "authors", "file_id", "uploaded_by", "status")


def _parse(model: Type[BaseModel], payload: Optional[Dict[str, Any]]) -> BaseModel:
    if not payload:
        raise InvalidChangeError("No changes were proposed")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
            for err in exc.errors()
        )
        raise InvalidChangeError(f"Invalid change request: {problems}") from exc


async def _validate_paper_update(session, paper, payload):
    changes = _parse(PaperChanges, payload).model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise InvalidChangeError("No changes were proposed")
    if all(getattr(paper, name) == value for name, value in changes.items()):
        raise InvalidChangeError("The proposed values are identical to the current paper")
    return changes


async def _validate_deletion(session, host, payload):
    if payload:
        raise InvalidChangeError("Deletion requests do not carry field changes")
    return None


async def _validate_year_change(session, user, payload):
    request = _parse(YearChangeRequest, payload)
    if user.year == request.year:
        raise InvalidChangeError("Cannot request a change to your current academic year")
    return {"year": request.year}


async def _validate_degree_change(session, user, payload):
    request = _parse(DegreeChangeRequest, payload)
    if user.degree_id == request.degree_id:
        raise InvalidChangeError("Cannot request a change to your current degree")
    if await DegreeStore(session).find_active(request.degree_id) is None:
        raise InvalidChangeError("Requested degree does not exist")
    return {"degree_id": str(request.degree_id)}


async def _apply_paper_update(session, change):
    paper = await ResearchPaperStore(session).update_by_id(change.host_id, change.payload)
    if paper is None:
        raise NotFoundError("Research paper no longer exists")
    return paper


async def _apply_paper_delete(session, change):
    if not await ResearchPaperStore(session).delete_by_id(change.host_id):
        raise NotFoundError("Research paper no longer exists")
    return None


async def _apply_year_change(session, change):
    user = await UserStore(session).update_by_id(change.host_id, {"year": change.payload["year"]})
    if user is None:
        raise NotFoundError("User no longer exists")
    return user


async def _apply_degree_change(session, change):
    degree_id = uuid.UUID(change.payload["degree_id"])
    # The degree may have been retired while the request waited
    if await DegreeStore(session).find_active(degree_id) is None:
        raise InvalidChangeError("Requested degree is no longer available")
    user = await UserStore(session).update_by_id(change.host_id, {"degree_id": degree_id})
    if user is None:
        raise NotFoundError("User no longer exists")
    return user


@dataclass(frozen=True)
class ChangeKind:
    """Configuration of the generic moderation workflow for one change type."""

    name: str
    host_type: HostType
    change_type: ChangeType
    resource: AuditResource
    store: Type[EntityStore]
    owner_of: Callable[[Any], uuid.UUID]
    reviewer_capability: Capability
    request_action: AuditAction
    approve_action: AuditAction
    reject_action: AuditAction
    validate: Validator
    apply: Applier
    tracked_fields: Optional[Tuple[str, ...]] = None

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", " ")

    def fields_for(self, payload: Optional[Dict[str, Any]]) -> Tuple[str, ...]:
        """Host fields worth recording before and after a change."""
        if self.tracked_fields is not None:
            return self.tracked_fields
        return tuple(sorted(payload or ()))


PAPER_UPDATE = ChangeKind(
    name="PAPER_UPDATE",
    host_type=HostType.RESEARCH_PAPER,
    change_type=ChangeType.UPDATE,
    resource=AuditResource.RESEARCH_PAPER,
    store=ResearchPaperStore,
    owner_of=lambda paper: paper.uploaded_by,
    reviewer_capability=Capability.PAPER_MODERATE,
    request_action=AuditAction.PAPER_UPDATE_REQUEST,
    approve_action=AuditAction.PAPER_UPDATE,
    reject_action=AuditAction.PAPER_UPDATE_REJECT,
    validate=_validate_paper_update,
    apply=_apply_paper_update,
)

PAPER_DELETE = ChangeKind(
    name="PAPER_DELETE",
    host_type=HostType.RESEARCH_PAPER,
    change_type=ChangeType.DELETE,
    resource=AuditResource.RESEARCH_PAPER,
    store=ResearchPaperStore,
    owner_of=lambda paper: paper.uploaded_by,
    reviewer_capability=Capability.PAPER_MODERATE,
    request_action=AuditAction.PAPER_DELETE_REQUEST,
    approve_action=AuditAction.PAPER_DELETE,
    reject_action=AuditAction.PAPER_DELETE_REJECT,
    validate=_validate_deletion,
    apply=_apply_paper_delete,
    tracked_fields=_DELETED_PAPER_FIELDS,
)

YEAR_CHANGE = ChangeKind(
    name="YEAR_CHANGE",
    host_type=HostType.USER,
    change_type=ChangeType.YEAR_CHANGE,
    resource=AuditResource.USER,
    store=UserStore,
    owner_of=lambda user: user.id,
    reviewer_capability=Capability.USER_REVIEW_REQUESTS,
    request_action=AuditAction.YEAR_CHANGE_REQUEST,
    approve_action=AuditAction.YEAR_CHANGE_APPROVE,
    reject_action=AuditAction.YEAR_CHANGE_REJECT,
    validate=_validate_year_change,
    apply=_apply_year_change,
    tracked_fields=("year",),
)

DEGREE_CHANGE = ChangeKind(
    name="DEGREE_CHANGE",
    host_type=HostType.USER,
    change_type=ChangeType.DEGREE_CHANGE,
    resource=AuditResource.USER,
    store=UserStore,
    owner_of=lambda user: user.id,
    reviewer_capability=Capability.USER_REVIEW_REQUESTS,
    request_action=AuditAction.DEGREE_CHANGE_REQUEST,
    approve_action=AuditAction.DEGREE_CHANGE_APPROVE,
    reject_action=AuditAction.DEGREE_CHANGE_REJECT,
    validate=_validate_degree_change,
    apply=_apply_degree_change,
    tracked_fields=("degree_id",),
)

CHANGE_KINDS: Mapping[str, ChangeKind] = MappingProxyType({
    kind.name: kind for kind in (PAPER_UPDATE, PAPER_DELETE, YEAR_CHANGE, DEGREE_CHANGE)
})

_BY_KEY: Mapping[Tuple[str, str], ChangeKind] = MappingProxyType({
    (kind.host_type.value, kind.change_type.value): kind for kind in CHANGE_KINDS.values()
})

REVIEWER_CAPABILITIES = frozenset(kind.reviewer_capability for kind in CHANGE_KINDS.values())


def kind_for(host_type: str, change_type: str) -> Optional[ChangeKind]:
    """Look up the kind of a stored change. None for unknown combinations."""
    key = (getattr(host_type, "value", host_type), getattr(change_type, "value", change_type))
    return _BY_KEY.get(key)
