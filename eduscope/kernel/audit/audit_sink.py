"""
Audit sink for the append-only audit trail.

The sink is handed to every component that audits; there is no module
level instance. Each entry is written in its own short transaction so a
failed audit write never touches the caller's unit of work, and a failed
caller transaction never loses the audit entry describing it.

Usage:
    sink = AuditSink(async_session_maker)
    await sink.record(AuditRecord.for_actor(
        actor,
        action=AuditAction.PAPER_UPDATE_REQUEST,
        resource=AuditResource.RESEARCH_PAPER,
        resource_id=paper.id,
        details=ProposalDetails(...),
    ))
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import to_jsonable_python
from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eduscope.config import get_settings
from eduscope.kernel.audit.details import AuditDetails
from eduscope.kernel.identity.actor import Actor
from eduscope.kernel.models.audit_log import (
    AuditAction,
    AuditLogEntry,
    AuditOutcome,
    AuditResource,
)
from eduscope.logging_config import get_audit_logger, get_diagnostics_logger, get_request_id

audit_logger = get_audit_logger()
diagnostics = get_diagnostics_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RequestContext:
    """Request metadata copied onto every audit entry of a request."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: Optional[str] = None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc)


class AuditRecord(BaseModel):
    """
    What a caller submits to the sink.

    There is no timestamp field: the sink stamps entries itself and any
    caller-supplied timestamp is dropped along with other unknown keys.
    """

    model_config = ConfigDict(extra="ignore")

    actor_id: Optional[uuid.UUID] = None
    actor_email: Optional[str] = None
    actor_role: Optional[str] = None
    action: AuditAction
    resource: AuditResource
    resource_id: Optional[str] = None
    outcome: AuditOutcome = AuditOutcome.SUCCESS
    details: Union[AuditDetails, Dict[str, Any]] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: Optional[str] = None

    @field_validator("resource_id", mode="before")
    @classmethod
    def _stringify_resource_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @classmethod
    def for_actor(
        cls,
        actor: Optional[Actor],
        context: Optional[RequestContext] = None,
        **fields: Any,
    ) -> "AuditRecord":
        """Build a record with actor and request columns filled in."""
        if actor is not None:
            fields.setdefault("actor_id", actor.id)
            fields.setdefault("actor_email", actor.email)
            fields.setdefault("actor_role", actor.role)
        if context is not None:
            fields.setdefault("ip_address", context.ip_address)
            fields.setdefault("user_agent", context.user_agent)
            fields.setdefault("request_id", context.request_id)
        return cls(**fields)

    def details_json(self) -> Dict[str, Any]:
        if isinstance(self.details, BaseModel):
            return self.details.model_dump(mode="json")
        return to_jsonable_python(self.details)


class AuditQuery(BaseModel):
    """Filters for reading the trail. Dates are inclusive bounds."""

    actor_id: Optional[uuid.UUID] = None
    action: Optional[AuditAction] = None
    resource: Optional[AuditResource] = None
    resource_id: Optional[str] = None
    outcome: Optional[AuditOutcome] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(default_factory=lambda: get_settings().audit_query_default_limit)
    offset: int = 0

    @field_validator("limit")
    @classmethod
    def _clamp_limit(cls, value: int) -> int:
        return min(max(value, 1), get_settings().audit_query_max_limit)

    @field_validator("offset")
    @classmethod
    def _clamp_offset(cls, value: int) -> int:
        return max(value, 0)

    def active_filters(self) -> Dict[str, Any]:
        """Filters that were actually set, for recording who read what."""
        return self.model_dump(mode="json", exclude_none=True)


class AuditSink:
    """Append-only writer and reader for the audit trail."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def record(self, record: AuditRecord) -> None:
        """
        Append one entry. Never raises.

        Storage failures are reported on the diagnostics channel; the
        operation being audited is not affected.
        """
        try:
            entry = AuditLogEntry(
                actor_id=record.actor_id,
                actor_email=record.actor_email,
                actor_role=record.actor_role,
                action=record.action.value,
                resource=record.resource.value,
                resource_id=record.resource_id,
                outcome=record.outcome.value,
                details=record.details_json(),
                ip_address=record.ip_address,
                user_agent=record.user_agent,
                request_id=record.request_id or get_request_id(),
                timestamp=self._clock(),
            )
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(entry)
        except Exception:
            diagnostics.exception(
                "Audit write failed",
                extra={
                    "audit_action": record.action.value,
                    "audit_resource": record.resource.value,
                    "audit_resource_id": record.resource_id,
                    "audit_actor_id": str(record.actor_id) if record.actor_id else None,
                    "audit_outcome": record.outcome.value,
                },
            )
            return

        audit_logger.info(
            "%s %s %s",
            entry.action,
            entry.resource,
            entry.outcome,
            extra={
                "audit_id": str(entry.id),
                "audit_action": entry.action,
                "audit_resource": entry.resource,
                "audit_resource_id": entry.resource_id,
                "audit_actor_id": str(entry.actor_id) if entry.actor_id else None,
                "audit_actor_role": entry.actor_role,
                "audit_outcome": entry.outcome,
                "audit_details": entry.details,
                "ip_address": entry.ip_address,
            },
        )

    async def query(self, query: AuditQuery) -> List[AuditLogEntry]:
        """
        Read entries matching ``query``, newest first.

        Returns an empty list if the store cannot be read.
        """
        stmt = select(AuditLogEntry)
        conditions = self._conditions(query)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = (
            stmt.order_by(desc(AuditLogEntry.timestamp))
            .offset(query.offset)
            .limit(query.limit)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except Exception:
            diagnostics.exception(
                "Audit query failed",
                extra={"audit_filters": query.active_filters()},
            )
            return []

    async def count(self, query: Optional[AuditQuery] = None) -> int:
        """Count entries matching the filters of ``query`` (paging ignored)."""
        stmt = select(func.count(AuditLogEntry.id))
        conditions = self._conditions(query) if query else []
        if conditions:
            stmt = stmt.where(and_(*conditions))
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return result.scalar() or 0
        except Exception:
            diagnostics.exception("Audit count failed")
            return 0

    async def user_activity(
        self,
        user_id: uuid.UUID,
        limit: int = 50,
    ) -> List[AuditLogEntry]:
        """Entries performed by one user, newest first."""
        return await self.query(AuditQuery(actor_id=user_id, limit=limit))

    async def recent_activity(
        self,
        since: Optional[datetime] = None,
        limit: int = 50,
    ) -> List[AuditLogEntry]:
        """Most recent entries across all actors."""
        return await self.query(AuditQuery(start_date=since, limit=limit))

    @staticmethod
    def _conditions(query: AuditQuery) -> list:
        conditions = []
        if query.actor_id is not None:
            conditions.append(AuditLogEntry.actor_id == query.actor_id)
        if query.action is not None:
            conditions.append(AuditLogEntry.action == query.action.value)
        if query.resource is not None:
            conditions.append(AuditLogEntry.resource == query.resource.value)
        if query.resource_id is not None:
            conditions.append(AuditLogEntry.resource_id == query.resource_id)
        if query.outcome is not None:
            conditions.append(AuditLogEntry.outcome == query.outcome.value)
        if query.start_date is not None:
            conditions.append(AuditLogEntry.timestamp >= _as_utc(query.start_date))
        if query.end_date is not None:
            conditions.append(AuditLogEntry.timestamp <= _as_utc(query.end_date))
        return conditions
