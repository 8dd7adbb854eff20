"""Authentication API endpoints."""

import structlog
from fastapi import APIRouter, Depends, status

from taskmanager.api.dependencies import (
    get_current_user,
    get_database,
    get_password_hasher,
    get_refresh_user,
    get_token_issuer,
)
from taskmanager.database import Database
from taskmanager.errors import AuthenticationError, ConflictError, NotFoundError
from taskmanager.models.auth import (
    AuthData,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    TokenPair,
    UserData,
    UserSummary,
)
from taskmanager.models.response import ApiResponse
from taskmanager.models.user import AuthenticatedUser, User
from taskmanager.services.auth_service import PasswordHasher, TokenIssuer
from taskmanager.services.user_service import DUPLICATE_EMAIL_MESSAGE, UserService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _user_summary(user: User) -> UserSummary:
    """Convert a User model to a UserSummary response."""
    return UserSummary(id=user.id, email=user.email, created_at=user.created_at)


def _auth_data(user: User, token_issuer: TokenIssuer) -> AuthData:
    """Issue a token pair for ``user`` and bundle it with their summary."""
    tokens = token_issuer.issue_pair(user.id, user.email)
    return AuthData(
        user=_user_summary(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    database: Database = Depends(get_database),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> ApiResponse[AuthData]:
    """Register a new user and sign them in.

    Raises:
        ValidationError 400: Malformed email or weak/mismatched password
        ConflictError 409: If the email is already registered
    """
    user_service = UserService(database, password_hasher)

    if await user_service.get_by_email(request.email) is not None:
        logger.info("registration_duplicate_email", email=request.email)
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    user = await user_service.create_user(request.email, request.password)

    logger.info("user_registered", user_id=str(user.id))
    return ApiResponse(
        message="User registered successfully",
        data=_auth_data(user, token_issuer),
    )


@router.post("/login")
async def login(
    request: LoginRequest,
    database: Database = Depends(get_database),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> ApiResponse[AuthData]:
    """Login with email and password.

    Raises:
        AuthenticationError 401: If the credentials do not match
    """
    user_service = UserService(database, password_hasher)
    user = await user_service.verify_credentials(request.email, request.password)

    if user is None:
        raise AuthenticationError("Invalid email or password")

    logger.info("user_logged_in", user_id=str(user.id))
    return ApiResponse(
        message="Login successful",
        data=_auth_data(user, token_issuer),
    )


@router.post("/refresh")
async def refresh(
    current_user: AuthenticatedUser = Depends(get_refresh_user),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> ApiResponse[TokenPair]:
    """Exchange a refresh token (sent as the bearer credential) for a new pair.

    The presented refresh token stays valid until it expires.
    """
    tokens = token_issuer.issue_pair(current_user.id, current_user.email)

    logger.info("tokens_refreshed", user_id=str(current_user.id))
    return ApiResponse(message="Token refreshed successfully", data=tokens)


@router.get("/me")
async def get_me(
    current_user: AuthenticatedUser = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> ApiResponse[UserData]:
    """Get the authenticated user's profile."""
    user = await UserService(database).get_by_id(current_user.id)

    if user is None:
        raise NotFoundError("User not found")

    return ApiResponse(
        message="Profile retrieved successfully",
        data=UserData(user=_user_summary(user)),
    )


@router.put("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    database: Database = Depends(get_database),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
) -> ApiResponse[None]:
    """Change the authenticated user's password.

    Raises:
        AuthenticationError 401: If the current password is wrong
    """
    user_service = UserService(database, password_hasher)
    password_hash = await user_service.get_password_hash(current_user.id)

    if password_hash is None:
        raise NotFoundError("User not found")

    if not password_hasher.verify(request.current_password, password_hash):
        logger.info("password_change_rejected", user_id=str(current_user.id))
        raise AuthenticationError("Current password is incorrect")

    if not await user_service.update_password(current_user.id, request.new_password):
        raise NotFoundError("User not found")

    return ApiResponse(message="Password changed successfully")


@router.delete("/me")
async def delete_account(
    current_user: AuthenticatedUser = Depends(get_current_user),
    database: Database = Depends(get_database),
) -> ApiResponse[None]:
    """Delete the authenticated user's account and, by cascade, their tasks.

    Outstanding tokens for the account stop working because the gate can
    no longer resolve their subject.
    """
    deleted = await UserService(database).delete_user(current_user.id)

    if not deleted:
        raise NotFoundError("User not found")

    return ApiResponse(message="Account deleted successfully")
