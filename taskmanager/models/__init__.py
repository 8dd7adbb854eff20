"""Models package exports."""

from taskmanager.models.auth import (
    AuthData,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    TokenPair,
    UserSummary,
)
from taskmanager.models.response import ApiResponse, ErrorResponse, FieldError
from taskmanager.models.task import (
    Task,
    TaskCreateRequest,
    TaskPriority,
    TaskStatus,
    TaskStatusUpdateRequest,
    TaskSummary,
    TaskUpdateRequest,
)
from taskmanager.models.user import AuthenticatedUser, User

__all__ = [
    "ApiResponse",
    "AuthData",
    "AuthenticatedUser",
    "ChangePasswordRequest",
    "ErrorResponse",
    "FieldError",
    "LoginRequest",
    "RegisterRequest",
    "Task",
    "TaskCreateRequest",
    "TaskPriority",
    "TaskStatus",
    "TaskStatusUpdateRequest",
    "TaskSummary",
    "TaskUpdateRequest",
    "TokenPair",
    "User",
    "UserSummary",
]
