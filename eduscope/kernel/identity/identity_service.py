"""
Identity service for user management operations.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from eduscope.errors import AuthorizationError, DuplicateError, NotFoundError
from eduscope.kernel.audit import (
    AccountDetails,
    AuditRecord,
    AuditSink,
    DeniedDetails,
    RequestContext,
    RoleChangeDetails,
)
from eduscope.kernel.identity.actor import Actor
from eduscope.kernel.identity.jwt import JWTManager
from eduscope.kernel.identity.password import hash_password, verify_password
from eduscope.kernel.models.audit_log import AuditAction, AuditOutcome, AuditResource
from eduscope.kernel.models.user import User, UserRole
from eduscope.kernel.permissions import can_assign_role, can_manage_user
from eduscope.logging_config import get_logger

logger = get_logger(__name__)


class IdentityService:
    """
    Service for user identity operations.

    Handles registration, authentication and role changes. Mutations are
    committed here, then audited through the injected sink.
    """

    def __init__(self, session: AsyncSession, audit_sink: AuditSink):
        self.session = session
        self.audit_sink = audit_sink
        self.jwt_manager = JWTManager()

    async def register_user(
        self,
        name: str,
        email: str,
        password: str,
        student_id: Optional[str] = None,
        faculty: Optional[str] = None,
        year: Optional[int] = None,
        context: Optional[RequestContext] = None,
    ) -> User:
        """
        Register a new student account.

        Raises:
            DuplicateError: If the email or student id is already taken
        """
        email = email.lower().strip()
        conditions = [User.email == email]
        if student_id:
            conditions.append(User.student_id == student_id)
        result = await self.session.execute(select(User.id).where(or_(*conditions)))
        if result.first() is not None:
            raise DuplicateError("User with this email or student ID already exists")

        user = User(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            student_id=student_id,
            faculty=faculty,
            year=year,
            role=UserRole.STUDENT.value,
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        await self.audit_sink.record(AuditRecord.for_actor(
            Actor.from_user(user),
            context,
            action=AuditAction.USER_REGISTER,
            resource=AuditResource.USER,
            resource_id=user.id,
            details=AccountDetails(email=user.email, method="register"),
        ))
        logger.info("User registered", extra={"user_id": str(user.id)})
        return user

    async def authenticate(
        self,
        email: str,
        password: str,
        context: Optional[RequestContext] = None,
    ) -> Optional[tuple[User, str, datetime]]:
        """
        Check credentials and issue an access token.

        Returns:
            Tuple of (User, token, expires_at) if successful, None otherwise
        """
        user = await self.get_user_by_email(email)
        reason = None
        if user is None:
            reason = "unknown_email"
        elif not verify_password(password, user.password_hash):
            reason = "bad_password"
        elif not user.is_active:
            reason = "inactive"

        if reason is not None:
            await self.audit_sink.record(AuditRecord.for_actor(
                Actor.from_user(user) if user else None,
                context,
                action=AuditAction.USER_LOGIN_FAILED,
                resource=AuditResource.USER,
                resource_id=user.id if user else None,
                outcome=AuditOutcome.FAILURE,
                details=AccountDetails(email=email.lower().strip(), reason=reason),
            ))
            return None

        actor = Actor.from_user(user)
        token, expires_at = self.jwt_manager.create_access_token(
            user_id=user.id,
            email=user.email,
            role=actor.role,
            faculty=user.faculty,
        )

        await self.audit_sink.record(AuditRecord.for_actor(
            actor,
            context,
            action=AuditAction.USER_LOGIN,
            resource=AuditResource.USER,
            resource_id=user.id,
            details=AccountDetails(email=user.email),
        ))
        return user, token, expires_at

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a user by ID."""
        query = select(User).where(User.id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        query = select(User).where(User.email == email.lower().strip())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def change_role(
        self,
        actor: Actor,
        user_id: uuid.UUID,
        new_role: UserRole,
        context: Optional[RequestContext] = None,
    ) -> User:
        """
        Change a user's role.

        Admins manage students and moderators and may grant up to admin;
        only a superadmin may touch admin accounts or grant superadmin.

        Raises:
            NotFoundError: If the user does not exist
            AuthorizationError: If the actor may not make this change
        """
        new_role = UserRole(new_role)
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        old_role = user.role.value if hasattr(user.role, "value") else user.role

        if not can_manage_user(actor, old_role):
            reason = "Insufficient permissions to modify this user"
        elif not can_assign_role(actor, new_role.value):
            reason = f"Insufficient permissions to assign role {new_role.value}"
        else:
            reason = None

        if reason is not None:
            await self.audit_sink.record(AuditRecord.for_actor(
                actor,
                context,
                action=AuditAction.USER_ROLE_CHANGE,
                resource=AuditResource.USER,
                resource_id=user_id,
                outcome=AuditOutcome.DENIED,
                details=DeniedDetails(
                    operation="change_role",
                    required=new_role.value,
                    actor_role=actor.role,
                    reason=reason,
                ),
            ))
            raise AuthorizationError(reason, required=new_role.value, actor_role=actor.role)

        user.role = new_role.value
        await self.session.commit()

        await self.audit_sink.record(AuditRecord.for_actor(
            actor,
            context,
            action=AuditAction.USER_ROLE_CHANGE,
            resource=AuditResource.USER,
            resource_id=user_id,
            details=RoleChangeDetails(
                target_email=user.email,
                old_role=old_role,
                new_role=new_role.value,
            ),
        ))
        logger.info(
            "Role changed",
            extra={"user_id": str(user_id), "old_role": old_role, "new_role": new_role.value},
        )
        return user
