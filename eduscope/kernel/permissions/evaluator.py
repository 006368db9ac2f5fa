"""
Permission evaluator for RBAC access control.

All functions here are pure: they read the static grant tables and the
actor passed in, and never touch storage. Anything that cannot be resolved
to a known role is denied.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, time
from typing import FrozenSet, Iterable, Optional

from eduscope.kernel.identity.actor import Actor
from eduscope.kernel.models.user import UserRole
from eduscope.kernel.permissions.capabilities import (
    ASSIGNABLE_ROLES,
    FACULTY_CAPABILITIES,
    ROLE_CAPABILITIES,
    Capability,
)


# Accounts an admin may modify; superadmin may modify anyone
_ADMIN_MANAGEABLE = frozenset({UserRole.STUDENT, UserRole.MODERATOR})


def _resolve_role(actor: Optional[Actor]) -> Optional[UserRole]:
    if actor is None or not actor.role:
        return None
    try:
        return UserRole(actor.role)
    except ValueError:
        return None


def evaluate(actor: Optional[Actor], capability: Capability) -> bool:
    """
    Check whether the actor holds a capability.

    Args:
        actor: The acting identity, or None for anonymous callers
        capability: Capability required

    Returns:
        True if granted. Missing or unknown roles are always False.
    """
    role = _resolve_role(actor)
    if role is None:
        return False
    if role is UserRole.SUPERADMIN:
        return True
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def has_all(actor: Optional[Actor], capabilities: Iterable[Capability]) -> bool:
    return all(evaluate(actor, capability) for capability in capabilities)


def has_any(actor: Optional[Actor], capabilities: Iterable[Capability]) -> bool:
    return any(evaluate(actor, capability) for capability in capabilities)


def all_capabilities(actor: Optional[Actor]) -> FrozenSet[Capability]:
    """Role grants merged with any faculty-scoped grants."""
    role = _resolve_role(actor)
    if role is None:
        return frozenset()
    granted = ROLE_CAPABILITIES.get(role, frozenset())
    if actor.faculty:
        granted = granted | FACULTY_CAPABILITIES.get(actor.faculty, frozenset())
    return granted


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive time-of-day window. Either bound may be open."""

    start: Optional[time] = None
    end: Optional[time] = None

    @classmethod
    def parse(cls, start: Optional[str] = None, end: Optional[str] = None) -> "TimeWindow":
        """Build from ``HH:MM`` strings."""
        return cls(
            start=time.fromisoformat(start) if start else None,
            end=time.fromisoformat(end) if end else None,
        )

    def contains(self, moment: time) -> bool:
        current = moment.replace(second=0, microsecond=0, tzinfo=None)
        if self.start is not None and current < self.start:
            return False
        if self.end is not None and current > self.end:
            return False
        return True


@dataclass(frozen=True)
class ResourcePermission:
    """A capability check narrowed by optional resource conditions."""

    capability: Capability
    owner_id: Optional[uuid.UUID] = None
    require_ownership: bool = False
    faculties: Optional[FrozenSet[str]] = None
    roles: Optional[FrozenSet[str]] = None
    time_window: Optional[TimeWindow] = None


def evaluate_resource(
    actor: Optional[Actor],
    permission: ResourcePermission,
    now: Optional[datetime] = None,
) -> bool:
    """
    Check a capability plus every condition attached to the resource.

    The base capability is evaluated first; conditions only narrow it.
    """
    if not evaluate(actor, permission.capability):
        return False

    if permission.require_ownership and permission.owner_id != actor.id:
        return False

    if permission.faculties is not None and actor.faculty not in permission.faculties:
        return False

    if permission.roles is not None and actor.role not in permission.roles:
        return False

    if permission.time_window is not None:
        moment = (now or datetime.now()).time()
        if not permission.time_window.contains(moment):
            return False

    return True


def can_assign_role(actor: Optional[Actor], role: str) -> bool:
    """Whether the actor may grant ``role`` to an account."""
    actor_role = _resolve_role(actor)
    if actor_role is None:
        return False
    try:
        target = UserRole(role)
    except ValueError:
        return False
    return target in ASSIGNABLE_ROLES.get(actor_role, frozenset())


def can_manage_user(actor: Optional[Actor], target_role: Optional[str]) -> bool:
    """Whether the actor may modify an account currently holding ``target_role``."""
    actor_role = _resolve_role(actor)
    if actor_role is UserRole.SUPERADMIN:
        return True
    if actor_role is not UserRole.ADMIN:
        return False
    try:
        return UserRole(target_role) in _ADMIN_MANAGEABLE
    except ValueError:
        return False
