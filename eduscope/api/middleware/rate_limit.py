"""
API Gateway Rate Limiting - Per user and per IP.

Scopes: auth POSTs 10/min per IP; admin endpoints 30/min per user;
general API 100/min per user (or IP).
"""

import json
import time
from typing import Callable, Optional, Tuple

from fastapi import Request, Response, status
from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware

from eduscope.config import get_settings
from eduscope.logging_config import get_logger

logger = get_logger(__name__)


def _get_client_ip(request: Request) -> str:
    """Get client IP from request (X-Forwarded-For or direct)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _get_user_id_from_jwt(request: Request) -> Optional[str]:
    """Extract user id from a Bearer JWT. Authorization proper runs later."""
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    token = auth[7:].strip()
    if not token:
        return None
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None


class InMemoryRateLimitStore:
    """Fixed-window in-memory store. Key -> (count, window_start_ts)."""

    def __init__(self):
        self._data: dict[str, Tuple[int, float]] = {}
        self._window_sec: dict[str, int] = {}

    def _key(self, scope: str, identifier: str) -> str:
        return f"{scope}:{identifier}"

    def check_and_incr(
        self,
        scope: str,
        identifier: str,
        limit: int,
        window_seconds: int,
    ) -> bool:
        """Returns True if under limit (and increments). False if over limit (no increment)."""
        key = self._key(scope, identifier)
        now = time.monotonic()
        if key not in self._data:
            self._data[key] = (1, now)
            self._window_sec[key] = window_seconds
            return True
        count, start = self._data[key]
        win = self._window_sec.get(key, window_seconds)
        if now - start >= win:
            self._data[key] = (1, now)
            self._window_sec[key] = window_seconds
            return True
        if count >= limit:
            return False
        self._data[key] = (count + 1, start)
        return True

    def cleanup_old(self, max_age_seconds: int = 3600):
        """Remove entries older than max_age_seconds to avoid unbounded growth."""
        now = time.monotonic()
        to_remove = [k for k, (_, start) in self._data.items() if now - start > max_age_seconds]
        for k in to_remove:
            self._data.pop(k, None)
            self._window_sec.pop(k, None)

    def reset(self) -> None:
        self._data.clear()
        self._window_sec.clear()


# Single-process store; one per worker
_store: Optional[InMemoryRateLimitStore] = None


def get_store() -> InMemoryRateLimitStore:
    global _store
    if _store is None:
        _store = InMemoryRateLimitStore()
    return _store


def classify(path: str, method: str, prefix: str) -> Optional[str]:
    """Rate limit scope for a request path, or None if unlimited."""
    if not path.startswith(prefix):
        return None
    if path.startswith(f"{prefix}/auth") and method == "POST":
        return "auth"
    if path.startswith(f"{prefix}/admin"):
        return "admin"
    return "api"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests over the per-scope limit with 429."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        if not settings.rate_limit_enabled:
            return await call_next(request)

        scope = classify(request.url.path or "", request.method, settings.api_v1_prefix)
        if scope is None:
            return await call_next(request)

        store = get_store()
        store.cleanup_old(max_age_seconds=7200)

        if scope == "auth":
            limit = settings.rate_limit_auth_per_minute
            identifier = _get_client_ip(request)
        else:
            limit = (
                settings.rate_limit_admin_per_minute
                if scope == "admin"
                else settings.rate_limit_api_per_minute
            )
            identifier = _get_user_id_from_jwt(request) or _get_client_ip(request)

        if not store.check_and_incr(scope, identifier, limit, 60):
            logger.warning(
                "Rate limit exceeded",
                extra={"scope": scope, "path": request.url.path},
            )
            return Response(
                content=json.dumps({
                    "success": False,
                    "error": "Too many requests. Please try again later.",
                    "code": "rate_limited",
                }),
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                media_type="application/json",
            )
        return await call_next(request)
