"""
Authentication endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, status

from eduscope.api.deps import Context, CurrentActor, Identity
from eduscope.errors import AuthenticationError, NotFoundError
from eduscope.schemas.auth import TokenResponse, UserCreate, UserLogin, UserResponse
from eduscope.schemas.common import ApiResponse

router = APIRouter()


def _token_response(user, token: str, expires_at: datetime) -> TokenResponse:
    expires_in = int((expires_at - datetime.now(timezone.utc)).total_seconds())
    return TokenResponse(
        access_token=token,
        expires_in=max(expires_in, 0),
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=ApiResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(data: UserCreate, identity: Identity, context: Context):
    """
    Register a new student account.

    Returns an access token on successful registration.
    """
    await identity.register_user(
        name=data.name,
        email=data.email,
        password=data.password,
        student_id=data.student_id,
        faculty=data.faculty.value if data.faculty else None,
        year=data.year,
        context=context,
    )

    result = await identity.authenticate(data.email, data.password, context=context)
    if not result:
        raise AuthenticationError("Failed to authenticate after registration")

    user, token, expires_at = result
    return ApiResponse.ok(
        _token_response(user, token, expires_at),
        message="Account created successfully",
    )


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(data: UserLogin, identity: Identity, context: Context):
    """Authenticate user and return an access token."""
    result = await identity.authenticate(data.email, data.password, context=context)
    if not result:
        raise AuthenticationError("Invalid email or password")

    user, token, expires_at = result
    return ApiResponse.ok(_token_response(user, token, expires_at))


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_current_user_profile(actor: CurrentActor, identity: Identity):
    """Get current user's profile."""
    user = await identity.get_user_by_id(actor.id)
    if user is None:
        raise NotFoundError("User not found")
    return ApiResponse.ok(UserResponse.model_validate(user))
