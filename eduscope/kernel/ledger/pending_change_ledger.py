"""
Pending-change ledger.

Records proposed mutations and deletions against host entities without
touching the hosts. The ledger works inside the caller's session and never
commits or rolls back; the moderation workflow owns the transaction so a
host mutation and the resolution that caused it land together.

Both writes are single guarded statements:
- ``propose`` is one INSERT; the unique ``open_key`` rejects a second open
  change for the same host and change type.
- ``resolve`` is one UPDATE conditioned on ``status = 'pending'``; the row
  count tells whether this caller won.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eduscope.errors import ConflictError, NotFoundError, StateError
from eduscope.kernel.models.pending_change import (
    ChangeStatus,
    ChangeType,
    HostType,
    PendingChange,
    make_open_key,
)
from eduscope.logging_config import get_logger

logger = get_logger(__name__)


def _value(member: Any) -> Any:
    return member.value if hasattr(member, "value") else member


class PendingChangeLedger:
    """
    Ledger of pending changes bound to one session.

    Usage:
        async with session_maker() as session:
            async with session.begin():
                ledger = PendingChangeLedger(session)
                change = await ledger.propose(
                    HostType.RESEARCH_PAPER, paper.id, ChangeType.UPDATE,
                    requested_by=actor.id, payload={"title": "New"},
                )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def propose(
        self,
        host_type: HostType,
        host_id: uuid.UUID,
        change_type: ChangeType,
        requested_by: uuid.UUID,
        payload: Optional[Dict[str, Any]] = None,
    ) -> PendingChange:
        """
        Attach a new pending change to a host.

        Raises:
            ConflictError: An open change already exists for this host and
                change type. The session's transaction is unusable after
                this and must be rolled back by the caller.
        """
        host_type_value = _value(host_type)
        change_type_value = _value(change_type)

        change = PendingChange(
            host_type=host_type_value,
            host_id=host_id,
            change_type=change_type_value,
            payload=payload,
            requested_by=requested_by,
            requested_at=datetime.now(timezone.utc),
            status=ChangeStatus.PENDING.value,
            open_key=make_open_key(host_type_value, host_id, change_type_value),
        )
        self.session.add(change)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            logger.info(
                "Duplicate open change rejected",
                extra={
                    "host_type": host_type_value,
                    "host_id": str(host_id),
                    "change_type": change_type_value,
                },
            )
            raise ConflictError(
                f"A {change_type_value} request is already pending for this {host_type_value}"
            ) from exc

        return change

    async def resolve(
        self,
        change_id: uuid.UUID,
        outcome: ChangeStatus,
        reviewed_by: uuid.UUID,
        reason: Optional[str] = None,
    ) -> PendingChange:
        """
        Move a pending change to a terminal status.

        Raises:
            NotFoundError: No change with this id.
            StateError: The change was already resolved (possibly by a
                concurrent reviewer).
        """
        outcome = ChangeStatus(_value(outcome))
        if not outcome.is_terminal:
            raise ValueError("A change can only be resolved to approved or rejected")

        stmt = (
            update(PendingChange)
            .where(
                and_(
                    PendingChange.id == change_id,
                    PendingChange.status == ChangeStatus.PENDING.value,
                )
            )
            .values(
                status=outcome.value,
                open_key=None,
                reviewed_by=reviewed_by,
                reviewed_at=datetime.now(timezone.utc),
                reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)

        if result.rowcount == 0:
            if await self.get(change_id) is None:
                raise NotFoundError("Change request not found")
            raise StateError()

        resolved = await self.get(change_id)
        return resolved

    async def get(self, change_id: uuid.UUID) -> Optional[PendingChange]:
        """Fetch a change by id, bypassing any stale identity-map copy."""
        query = (
            select(PendingChange)
            .where(PendingChange.id == change_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_open(
        self,
        host_type: HostType,
        host_id: uuid.UUID,
        change_type: ChangeType,
    ) -> Optional[PendingChange]:
        """The open change for a host and change type, if any."""
        query = select(PendingChange).where(
            PendingChange.open_key == make_open_key(_value(host_type), host_id, _value(change_type))
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_open(
        self,
        host_type: Optional[HostType] = None,
        change_type: Optional[ChangeType] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[PendingChange]:
        """Open changes, oldest first (review queue order)."""
        query = select(PendingChange).where(
            PendingChange.status == ChangeStatus.PENDING.value
        )
        if host_type is not None:
            query = query.where(PendingChange.host_type == _value(host_type))
        if change_type is not None:
            query = query.where(PendingChange.change_type == _value(change_type))

        query = query.order_by(PendingChange.requested_at).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_requester(
        self,
        requested_by: uuid.UUID,
        status: Optional[ChangeStatus] = None,
        limit: int = 100,
    ) -> List[PendingChange]:
        """Changes a user has requested, newest first."""
        query = select(PendingChange).where(PendingChange.requested_by == requested_by)
        if status is not None:
            query = query.where(PendingChange.status == _value(status))

        query = query.order_by(PendingChange.requested_at.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
