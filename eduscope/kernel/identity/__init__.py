"""
Identity Core - Authentication and user management.
"""

from eduscope.kernel.identity.actor import Actor
from eduscope.kernel.identity.password import PasswordHasher, verify_password, hash_password
from eduscope.kernel.identity.jwt import (
    JWTManager,
    AccessTokenPayload,
    create_access_token,
    verify_access_token,
)

__all__ = [
    "Actor",
    "PasswordHasher",
    "verify_password",
    "hash_password",
    "JWTManager",
    "AccessTokenPayload",
    "create_access_token",
    "verify_access_token",
]
