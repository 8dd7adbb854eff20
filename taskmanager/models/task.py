"""Task models: stored records, request bodies and aggregate views."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000

UPDATABLE_FIELDS = ("title", "description", "status", "priority", "due_date")


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def utc_today() -> date:
    """Current calendar date in UTC, the reference for due dates."""
    return datetime.now(timezone.utc).date()


def _clean_title(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Title is required")
    if not TITLE_MIN_LENGTH <= len(v) <= TITLE_MAX_LENGTH:
        raise ValueError(
            f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"
        )
    return v


def _clean_description(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if len(v) > DESCRIPTION_MAX_LENGTH:
        raise ValueError(
            f"Description must not exceed {DESCRIPTION_MAX_LENGTH} characters"
        )
    return v or None


class Task(BaseModel):
    """A task row as stored."""

    id: UUID
    user_id: UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime


class TaskCreateRequest(BaseModel):
    """Body of POST /tasks.

    Attributes:
        title: 3-200 characters after trimming
        description: Optional, at most 1000 characters
        status: Defaults to pending
        priority: Defaults to medium
        due_date: Optional ISO date, not before today
    """

    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[date] = None

    @field_validator("title")
    @classmethod
    def title_length(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def description_length(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_due_date(cls, v: Any) -> Any:
        return None if v == "" else v

    @field_validator("due_date")
    @classmethod
    def due_date_not_in_past(cls, v: Optional[date]) -> Optional[date]:
        """Reject due dates before today."""
        if v is not None and v < utc_today():
            raise ValueError("Due date cannot be in the past")
        return v


class TaskUpdateRequest(BaseModel):
    """Body of PUT /tasks/{id}.

    Every field is optional. Only fields present in the request body are
    applied; keys outside ``UPDATABLE_FIELDS`` are ignored. Sending null or
    an empty string for ``description`` or ``due_date`` clears it.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None

    @field_validator("title", "status", "priority", mode="before")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def title_length(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def description_length(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_due_date(cls, v: Any) -> Any:
        return None if v == "" else v

    def changes(self) -> dict[str, Any]:
        """Return the recognized fields the client actually sent."""
        return {
            name: getattr(self, name)
            for name in UPDATABLE_FIELDS
            if name in self.model_fields_set
        }


class TaskStatusUpdateRequest(BaseModel):
    """Body of PATCH /tasks/{id}/status."""

    status: TaskStatus


class TaskFilters(BaseModel):
    """Optional equality filters for listing tasks."""

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None


class StatusCounts(BaseModel):
    """Number of tasks per status. Every status is present."""

    model_config = ConfigDict(populate_by_name=True)

    pending: int = 0
    in_progress: int = Field(0, alias="in-progress")
    completed: int = 0


class TaskSummary(BaseModel):
    """Aggregate statistics for one user's tasks."""

    model_config = ConfigDict(populate_by_name=True)

    total: int
    by_status: StatusCounts = Field(..., alias="byStatus")
    overdue: int


class TaskData(BaseModel):
    task: Task


class TaskListData(BaseModel):
    tasks: list[Task]
    stats: StatusCounts
    count: int


class OverdueTaskData(BaseModel):
    tasks: list[Task]
    count: int
