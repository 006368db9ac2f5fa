"""
Capability catalogue and the static role/faculty grant tables.

Each role's set is built from the role below it, so
superadmin ⊇ admin ⊇ moderator ⊇ student holds by construction. The tables
are read-only mappings of frozensets; there is no runtime mutation path.
"""

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping

from eduscope.kernel.models.user import Faculty, UserRole


class Capability(str, Enum):
    """Named rights granted through roles."""

    # User management
    USER_VIEW = "user:view"
    USER_CREATE = "user:create"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"
    USER_IMPERSONATE = "user:impersonate"
    USER_REVIEW_REQUESTS = "user:review_requests"

    # Research papers
    PAPER_VIEW_ALL = "paper:view_all"
    PAPER_MODERATE = "paper:moderate"
    PAPER_APPROVE = "paper:approve"
    PAPER_REJECT = "paper:reject"
    PAPER_DELETE_ANY = "paper:delete_any"
    PAPER_ANALYTICS = "paper:analytics"

    # Ideas
    IDEA_VIEW_ALL = "idea:view_all"
    IDEA_MODERATE = "idea:moderate"
    IDEA_DELETE_ANY = "idea:delete_any"
    IDEA_FEATURE = "idea:feature"

    # Degree programmes
    DEGREE_VIEW = "degree:view"
    DEGREE_CREATE = "degree:create"
    DEGREE_UPDATE = "degree:update"
    DEGREE_DELETE = "degree:delete"
    DEGREE_MANAGE_REQUESTS = "degree:manage_requests"

    # System administration
    ADMIN_PANEL_ACCESS = "admin:panel_access"
    ADMIN_AUDIT_LOGS = "admin:audit_logs"
    ADMIN_SETTINGS = "admin:settings"
    ADMIN_SYSTEM_HEALTH = "admin:system_health"
    ADMIN_BACKUP_RESTORE = "admin:backup_restore"
    ADMIN_USER_SESSIONS = "admin:user_sessions"

    # Content moderation
    MODERATE_CONTENT = "moderate:content"
    MODERATE_COMMENTS = "moderate:comments"
    MODERATE_REPORTS = "moderate:reports"

    # Files
    FILE_UPLOAD = "file:upload"
    FILE_DOWNLOAD_ANY = "file:download_any"
    FILE_DELETE_ANY = "file:delete_any"
    FILE_VIRUS_SCAN = "file:virus_scan"

    # Analytics and reporting
    ANALYTICS_VIEW = "analytics:view"
    ANALYTICS_EXPORT = "analytics:export"
    REPORTS_GENERATE = "reports:generate"

    # Faculty scoped
    FACULTY_MANAGE_STUDENTS = "faculty:manage_students"
    FACULTY_VIEW_ANALYTICS = "faculty:view_analytics"

    SUPER_ADMIN_ALL = "super_admin:all"


_STUDENT: FrozenSet[Capability] = frozenset({
    Capability.FILE_UPLOAD,
})

_MODERATOR: FrozenSet[Capability] = _STUDENT | {
    Capability.PAPER_VIEW_ALL,
    Capability.PAPER_MODERATE,
    Capability.IDEA_VIEW_ALL,
    Capability.IDEA_MODERATE,
    Capability.MODERATE_CONTENT,
    Capability.MODERATE_COMMENTS,
    Capability.MODERATE_REPORTS,
    Capability.DEGREE_VIEW,
    Capability.USER_REVIEW_REQUESTS,
}

_ADMIN: FrozenSet[Capability] = _MODERATOR | {
    Capability.USER_VIEW,
    Capability.USER_CREATE,
    Capability.USER_UPDATE,
    Capability.USER_DELETE,
    Capability.PAPER_APPROVE,
    Capability.PAPER_REJECT,
    Capability.PAPER_DELETE_ANY,
    Capability.PAPER_ANALYTICS,
    Capability.IDEA_DELETE_ANY,
    Capability.IDEA_FEATURE,
    Capability.ADMIN_PANEL_ACCESS,
    Capability.ADMIN_AUDIT_LOGS,
    Capability.ADMIN_SETTINGS,
    Capability.ADMIN_SYSTEM_HEALTH,
    Capability.ADMIN_USER_SESSIONS,
    Capability.DEGREE_CREATE,
    Capability.DEGREE_UPDATE,
    Capability.DEGREE_DELETE,
    Capability.DEGREE_MANAGE_REQUESTS,
    Capability.ANALYTICS_VIEW,
    Capability.ANALYTICS_EXPORT,
    Capability.REPORTS_GENERATE,
    Capability.FACULTY_MANAGE_STUDENTS,
    Capability.FACULTY_VIEW_ANALYTICS,
    Capability.FILE_DOWNLOAD_ANY,
    Capability.FILE_DELETE_ANY,
    Capability.FILE_VIRUS_SCAN,
}

_SUPERADMIN: FrozenSet[Capability] = _ADMIN | {
    Capability.USER_IMPERSONATE,
    Capability.ADMIN_BACKUP_RESTORE,
    Capability.SUPER_ADMIN_ALL,
}

ROLE_CAPABILITIES: Mapping[UserRole, FrozenSet[Capability]] = MappingProxyType({
    UserRole.STUDENT: _STUDENT,
    UserRole.MODERATOR: _MODERATOR,
    UserRole.ADMIN: _ADMIN,
    UserRole.SUPERADMIN: _SUPERADMIN,
})

# Extra grants by faculty membership, merged into all_capabilities()
FACULTY_CAPABILITIES: Mapping[str, FrozenSet[Capability]] = MappingProxyType({
    Faculty.COMPUTING.value: frozenset({Capability.FACULTY_VIEW_ANALYTICS}),
    Faculty.ENGINEERING.value: frozenset({Capability.FACULTY_VIEW_ANALYTICS}),
    Faculty.BUSINESS.value: frozenset({Capability.FACULTY_VIEW_ANALYTICS}),
    Faculty.SCIENCE.value: frozenset({Capability.FACULTY_VIEW_ANALYTICS}),
})

# Roles each role may hand out when creating or editing accounts
ASSIGNABLE_ROLES: Mapping[UserRole, FrozenSet[UserRole]] = MappingProxyType({
    UserRole.ADMIN: frozenset({UserRole.STUDENT, UserRole.MODERATOR, UserRole.ADMIN}),
    UserRole.SUPERADMIN: frozenset(UserRole),
})
