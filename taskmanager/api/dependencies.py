"""FastAPI dependencies: store handle, auth primitives and the authorization gate."""

from typing import Optional
from uuid import UUID

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from taskmanager.config import get_settings
from taskmanager.database import Database
from taskmanager.errors import AuthenticationError, StoreUnavailableError
from taskmanager.models.user import AuthenticatedUser
from taskmanager.services.auth_service import PasswordHasher, TokenIssuer, TokenType
from taskmanager.services.user_service import UserService

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_database(request: Request) -> Database:
    """Return the store handle opened by the application lifespan."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise StoreUnavailableError("Database not configured")
    return database


def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(get_settings())


def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=get_settings().bcrypt_rounds)


async def authenticate(
    credentials: Optional[HTTPAuthorizationCredentials],
    expected_type: TokenType,
    database: Database,
    token_issuer: TokenIssuer,
) -> AuthenticatedUser:
    """Run a bearer credential through the authorization gate.

    Steps: credential present, token verifies, token type matches,
    subject resolves to an existing user.

    Args:
        credentials: Parsed Authorization header, or None
        expected_type: Token type this endpoint accepts
        database: Store handle used to resolve the subject
        token_issuer: Verifies signature, issuer and expiry

    Returns:
        The resolved identity

    Raises:
        AuthenticationError: At the first failing step, with its reason
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access denied. No token provided.")

    token = credentials.credentials
    try:
        claims = token_issuer.verify(token)
    except AuthenticationError as e:
        unverified = token_issuer.decode_unsafe(token) or {}
        logger.info(
            "auth_rejected",
            reason=e.message,
            subject=unverified.get("sub"),
        )
        raise

    if claims.get("type") != expected_type.value:
        logger.info(
            "auth_rejected",
            reason="wrong_token_type",
            expected=expected_type.value,
            received=claims.get("type"),
        )
        raise AuthenticationError(
            f"Invalid token type. {expected_type.value.capitalize()} token required."
        )

    try:
        user_id = UUID(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")

    user = await UserService(database).get_by_id(user_id)

    if user is None:
        logger.info("auth_rejected", reason="user_not_found", subject=str(user_id))
        raise AuthenticationError("User no longer exists.")

    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return AuthenticatedUser(id=user.id, email=user.email)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    database: Database = Depends(get_database),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthenticatedUser:
    """Require a valid access token.

    Raises:
        AuthenticationError 401: If the token is missing, invalid, expired,
            of the wrong type, or its user no longer exists
    """
    return await authenticate(credentials, TokenType.ACCESS, database, token_issuer)


async def get_refresh_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    database: Database = Depends(get_database),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthenticatedUser:
    """Require a valid refresh token. Only the token renewal endpoint uses this."""
    return await authenticate(credentials, TokenType.REFRESH, database, token_issuer)


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> Optional[AuthenticatedUser]:
    """Resolve the caller when a valid access token is sent, otherwise None.

    Never rejects the request.
    """
    if credentials is None:
        return None

    try:
        database = get_database(request)
        return await authenticate(credentials, TokenType.ACCESS, database, token_issuer)
    except (AuthenticationError, StoreUnavailableError):
        return None
    except Exception as e:
        logger.warning(
            "optional_auth_failed",
            error_type=type(e).__name__,
            error=str(e),
        )
        return None
