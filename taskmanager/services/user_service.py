"""User management service (credential store)."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import asyncpg
import structlog

from taskmanager.database import Database
from taskmanager.errors import ConflictError
from taskmanager.models.user import User
from taskmanager.services.auth_service import PasswordHasher

logger = structlog.get_logger(__name__)

DUPLICATE_EMAIL_MESSAGE = "User with this email already exists"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        created_at=row["created_at"],
    )


class UserService:
    """Service for user CRUD operations."""

    def __init__(
        self,
        database: Database,
        password_hasher: Optional[PasswordHasher] = None,
    ):
        self.database = database
        self.password_hasher = password_hasher or PasswordHasher()

    async def create_user(self, email: str, password: str) -> User:
        """Create a new user with a hashed password.

        Args:
            email: Account email (normalized to lower case)
            password: Plain-text password (will be hashed)

        Returns:
            Created User model

        Raises:
            ConflictError: If the email is already registered
        """
        user_id = uuid4()
        email = normalize_email(email)
        now = datetime.now(timezone.utc)
        password_hash = self.password_hasher.hash(password)

        try:
            async with self.database.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO users (id, email, password_hash, created_at)
                    VALUES ($1, $2, $3, $4)
                    RETURNING id, email, created_at
                    """,
                    user_id,
                    email,
                    password_hash,
                    now,
                )
        except asyncpg.UniqueViolationError:
            logger.warning("user_create_duplicate_email", email=email)
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        logger.info("user_created", user_id=str(user_id), email=email)
        return _row_to_user(row)

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by id.

        Returns:
            User model or None if not found
        """
        async with self.database.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, email, created_at FROM users WHERE id = $1",
                user_id,
            )

        return _row_to_user(row) if row is not None else None

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email (case-insensitive)."""
        result = await self.get_credentials(email)
        return result[0] if result is not None else None

    async def get_credentials(self, email: str) -> Optional[tuple[User, str]]:
        """Get a user and their password hash by email, for authentication.

        Args:
            email: Email to look up

        Returns:
            Tuple of (User, password_hash) or None if not found
        """
        async with self.database.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, email, password_hash, created_at
                FROM users
                WHERE email = $1
                """,
                normalize_email(email),
            )

        if row is None:
            return None

        return _row_to_user(row), row["password_hash"]

    async def get_password_hash(self, user_id: UUID) -> Optional[str]:
        async with self.database.acquire() as conn:
            return await conn.fetchval(
                "SELECT password_hash FROM users WHERE id = $1",
                user_id,
            )

    async def verify_credentials(self, email: str, password: str) -> Optional[User]:
        """Return the user when email and password match, None otherwise."""
        result = await self.get_credentials(email)
        if result is None:
            logger.info("login_unknown_email")
            return None

        user, password_hash = result
        if not self.password_hasher.verify(password, password_hash):
            logger.info("login_wrong_password", user_id=str(user.id))
            return None

        return user

    async def update_email(self, user_id: UUID, email: str) -> Optional[User]:
        """Change a user's email.

        Returns:
            Updated User model, or None if the user does not exist

        Raises:
            ConflictError: If another user already has the email
        """
        email = normalize_email(email)

        try:
            async with self.database.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    UPDATE users
                    SET email = $1
                    WHERE id = $2
                    RETURNING id, email, created_at
                    """,
                    email,
                    user_id,
                )
        except asyncpg.UniqueViolationError:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

        if row is None:
            return None

        logger.info("user_email_updated", user_id=str(user_id))
        return _row_to_user(row)

    async def update_password(self, user_id: UUID, new_password: str) -> bool:
        """Replace a user's password.

        Returns:
            True if the user existed and was updated
        """
        password_hash = self.password_hasher.hash(new_password)

        async with self.database.acquire() as conn:
            result = await conn.execute(
                "UPDATE users SET password_hash = $1 WHERE id = $2",
                password_hash,
                user_id,
            )

        updated = result == "UPDATE 1"
        if updated:
            logger.info("user_password_updated", user_id=str(user_id))
        return updated

    async def delete_user(self, user_id: UUID) -> bool:
        """Hard-delete a user. Their tasks are removed by the FK cascade.

        Returns:
            True if the user was deleted, False if not found
        """
        async with self.database.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM users WHERE id = $1",
                user_id,
            )

        deleted = result == "DELETE 1"

        if deleted:
            logger.info("user_deleted", user_id=str(user_id))
        else:
            logger.warning("user_delete_not_found", user_id=str(user_id))

        return deleted

