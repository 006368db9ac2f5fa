"""
FastAPI dependencies for authentication, database sessions and the
moderation services.
"""

import uuid
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eduscope.database import get_session_maker
from eduscope.errors import AuthenticationError
from eduscope.kernel.audit import AuditSink, RequestContext
from eduscope.kernel.identity.actor import Actor
from eduscope.kernel.identity.identity_service import IdentityService
from eduscope.kernel.identity.jwt import verify_access_token
from eduscope.orchestration import ModerationWorkflow


# Security scheme
security = HTTPBearer(auto_error=False)

SessionMaker = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_maker)]


async def get_db(session_maker: SessionMaker) -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields database sessions."""
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_audit_sink(session_maker: SessionMaker) -> AuditSink:
    """Audit sink writing through its own sessions."""
    return AuditSink(session_maker)


AuditSinkDep = Annotated[AuditSink, Depends(get_audit_sink)]


def get_workflow(
    session_maker: SessionMaker,
    audit_sink: AuditSinkDep,
) -> ModerationWorkflow:
    return ModerationWorkflow(session_maker, audit_sink)


Workflow = Annotated[ModerationWorkflow, Depends(get_workflow)]


def get_identity_service(db: DbSession, audit_sink: AuditSinkDep) -> IdentityService:
    return IdentityService(db, audit_sink)


Identity = Annotated[IdentityService, Depends(get_identity_service)]


def get_request_id(request: Request) -> Optional[str]:
    """Get request correlation ID (set by RequestIdMiddleware)."""
    return getattr(request.state, "request_id", None)


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_user_agent(request: Request) -> Optional[str]:
    """Extract user agent from request."""
    return request.headers.get("User-Agent")


def get_request_context(request: Request) -> RequestContext:
    """Request metadata stamped onto audit entries."""
    return RequestContext(
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        request_id=get_request_id(request),
    )


Context = Annotated[RequestContext, Depends(get_request_context)]


async def get_current_actor_optional(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    identity: Identity,
) -> Optional[Actor]:
    """
    Resolve the acting identity, or None if there is no valid session.

    The role is read from the user record, not the token, so a role change
    takes effect on the next request.
    """
    if not credentials:
        return None

    payload = verify_access_token(credentials.credentials)
    if not payload:
        return None

    try:
        user_id = uuid.UUID(payload.sub)
    except ValueError:
        return None

    user = await identity.get_user_by_id(user_id)
    if not user or not user.is_active:
        return None

    return Actor.from_user(user)


OptionalActor = Annotated[Optional[Actor], Depends(get_current_actor_optional)]


async def get_current_actor(actor: OptionalActor) -> Actor:
    """Get current authenticated actor or raise 401."""
    if actor is None:
        raise AuthenticationError()
    return actor


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
