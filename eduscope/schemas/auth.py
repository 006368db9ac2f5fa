"""
Authentication schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from eduscope.kernel.models.user import Faculty, UserRole


class UserCreate(BaseModel):
    """User registration request."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    student_id: Optional[str] = Field(None, max_length=50)
    faculty: Optional[Faculty] = None
    year: Optional[int] = Field(None, ge=1, le=4)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not any(c.isupper() for c in v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not any(c.islower() for c in v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        return v


class UserLogin(BaseModel):
    """User login request."""

    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """User profile response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: str
    student_id: Optional[str] = None
    faculty: Optional[str] = None
    year: Optional[int] = None
    degree_id: Optional[uuid.UUID] = None
    is_active: bool
    is_verified: bool = False
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    """Authentication token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RoleChangeRequest(BaseModel):
    """Admin request to change a user's role."""

    role: UserRole
