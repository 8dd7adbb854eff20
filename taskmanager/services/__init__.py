"""Services package exports."""

from taskmanager.services.auth_service import PasswordHasher, TokenIssuer, TokenType
from taskmanager.services.logging_service import configure_logging
from taskmanager.services.task_service import TaskService
from taskmanager.services.user_service import UserService

__all__ = [
    "PasswordHasher",
    "TaskService",
    "TokenIssuer",
    "TokenType",
    "UserService",
    "configure_logging",
]
