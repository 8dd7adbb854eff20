"""Password hashing and JWT issuance/verification."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

import bcrypt
import jwt
import structlog

from taskmanager.config import Settings
from taskmanager.errors import (
    InvalidInputError,
    TokenExpiredError,
    TokenMalformedError,
    TokenNotYetValidError,
)
from taskmanager.models.auth import TokenPair

logger = structlog.get_logger(__name__)

# Constants
JWT_ALGORITHM = "HS256"
DEFAULT_BCRYPT_ROUNDS = 10
BCRYPT_MAX_PASSWORD_BYTES = 72
REQUIRED_CLAIMS = ["exp", "iat", "iss", "sub"]


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class PasswordHasher:
    """Salted bcrypt hashing with a fixed work factor."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string

        Raises:
            InvalidInputError: If the password is empty, not a string, or
                longer than bcrypt accepts
        """
        if not isinstance(password, str) or not password:
            raise InvalidInputError("Password must be a non-empty string")

        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            raise InvalidInputError(
                f"Password must not exceed {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )

        hashed = bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds))
        return hashed.decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            password: Plain-text password to check
            password_hash: Bcrypt hash to verify against

        Returns:
            True if the password matches. False on mismatch, empty input or
            a malformed hash.
        """
        if not isinstance(password, str) or not isinstance(password_hash, str):
            return False
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(
                password.encode("utf-8"),
                password_hash.encode("utf-8"),
            )
        except ValueError:
            logger.warning("password_hash_malformed")
            return False


class TokenIssuer:
    """Creates and verifies signed, issuer-pinned, time-bounded JWTs.

    Tokens are stateless: nothing is persisted and nothing can be revoked
    short of rotating the signing secret.
    """

    def __init__(
        self,
        secret: str,
        issuer: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
    ):
        self.secret = secret
        self.issuer = issuer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.jwt_secret,
            issuer=settings.jwt_issuer,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )

    def _encode(self, claims: dict, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iss": self.issuer,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def issue_access(self, user_id: UUID | str, email: str) -> str:
        """Create a signed access token.

        Args:
            user_id: User id (placed in the 'sub' claim)
            email: User email included in the payload

        Returns:
            Encoded JWT string
        """
        token = self._encode(
            {"sub": str(user_id), "email": email, "type": TokenType.ACCESS.value},
            self.access_ttl,
        )
        logger.debug(
            "access_token_issued",
            user_id=str(user_id),
            ttl_seconds=int(self.access_ttl.total_seconds()),
        )
        return token

    def issue_refresh(self, user_id: UUID | str) -> str:
        """Create a signed refresh token, usable only for token renewal."""
        token = self._encode(
            {"sub": str(user_id), "type": TokenType.REFRESH.value},
            self.refresh_ttl,
        )
        logger.debug(
            "refresh_token_issued",
            user_id=str(user_id),
            ttl_seconds=int(self.refresh_ttl.total_seconds()),
        )
        return token

    def issue_pair(self, user_id: UUID | str, email: str) -> TokenPair:
        """Create an access token and a refresh token for the same user."""
        return TokenPair(
            access_token=self.issue_access(user_id, email),
            refresh_token=self.issue_refresh(user_id),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def verify(self, token: str) -> dict:
        """Decode and validate a JWT.

        Args:
            token: Encoded JWT string

        Returns:
            Decoded claims

        Raises:
            TokenExpiredError: The exp claim has passed
            TokenNotYetValidError: The nbf or iat claim is in the future
            TokenMalformedError: Bad signature, wrong issuer, missing claims
                or undecodable input
        """
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                issuer=self.issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except jwt.ImmatureSignatureError:
            raise TokenNotYetValidError()
        except jwt.InvalidTokenError as e:
            logger.debug("token_rejected", reason=type(e).__name__)
            raise TokenMalformedError()

    def decode_unsafe(self, token: str) -> Optional[dict]:
        """Decode claims without verifying the signature.

        For diagnostics only. Never use the result to authorize anything.
        """
        try:
            return jwt.decode(
                token,
                options={"verify_signature": False},
                algorithms=[JWT_ALGORITHM],
            )
        except jwt.InvalidTokenError:
            return None
