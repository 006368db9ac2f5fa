"""
Permission Core - RBAC access control.
"""

from eduscope.kernel.permissions.capabilities import (
    ASSIGNABLE_ROLES,
    FACULTY_CAPABILITIES,
    ROLE_CAPABILITIES,
    Capability,
)
from eduscope.kernel.permissions.evaluator import (
    ResourcePermission,
    TimeWindow,
    all_capabilities,
    can_assign_role,
    can_manage_user,
    evaluate,
    evaluate_resource,
    has_all,
    has_any,
)

__all__ = [
    "Capability",
    "ROLE_CAPABILITIES",
    "FACULTY_CAPABILITIES",
    "ASSIGNABLE_ROLES",
    "ResourcePermission",
    "TimeWindow",
    "evaluate",
    "evaluate_resource",
    "all_capabilities",
    "has_all",
    "has_any",
    "can_assign_role",
    "can_manage_user",
]
