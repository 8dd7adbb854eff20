"""User and request identity models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class User(BaseModel):
    """A registered user. Never carries the password hash."""

    id: UUID
    email: str
    created_at: datetime


class AuthenticatedUser(BaseModel):
    """Identity resolved by the authorization gate for the current request."""

    id: UUID
    email: str
