"""Task service: CRUD, filtering and statistics scoped to an owning user."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

import structlog

from taskmanager.database import Database
from taskmanager.errors import AuthorizationError, NotFoundError, ValidationError
from taskmanager.models.task import (
    StatusCounts,
    Task,
    TaskCreateRequest,
    TaskFilters,
    TaskStatus,
    TaskSummary,
    TaskUpdateRequest,
    utc_today,
)

logger = structlog.get_logger(__name__)

TASK_COLUMNS = (
    "id, user_id, title, description, status, priority, due_date, created_at, updated_at"
)


def _row_to_task(row) -> Task:
    return Task(**dict(row))


def _db_value(value):
    return value.value if isinstance(value, Enum) else value


class TaskService:
    """Manages task CRUD operations.

    Single-task operations take the acting user's id and enforce ownership:
    a missing task raises NotFoundError, a task owned by someone else raises
    AuthorizationError. Collection operations filter by owner in SQL.
    """

    def __init__(self, database: Database):
        self.database = database

    async def create_task(self, user_id: UUID, request: TaskCreateRequest) -> Task:
        """Create a task owned by ``user_id``."""
        task_id = uuid4()
        now = datetime.now(timezone.utc)

        async with self.database.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO tasks
                (id, user_id, title, description, status, priority, due_date,
                 created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                RETURNING {TASK_COLUMNS}
                """,
                task_id,
                user_id,
                request.title,
                request.description,
                request.status.value,
                request.priority.value,
                request.due_date,
                now,
                now,
            )

        logger.info(
            "task_created",
            task_id=str(task_id),
            user_id=str(user_id),
            priority=request.priority.value,
        )
        return _row_to_task(row)

    async def get_task(self, task_id: UUID) -> Optional[Task]:
        """Fetch a task by id regardless of owner."""
        async with self.database.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = $1",
                task_id,
            )

        return _row_to_task(row) if row is not None else None

    async def get_owned_task(
        self, task_id: UUID, user_id: UUID, action: str = "access"
    ) -> Task:
        """Fetch a task and check that ``user_id`` owns it.

        Raises:
            NotFoundError: If the task does not exist
            AuthorizationError: If another user owns the task
        """
        task = await self.get_task(task_id)

        if task is None:
            raise NotFoundError("Task not found")

        if task.user_id != user_id:
            logger.warning(
                "task_ownership_denied",
                task_id=str(task_id),
                user_id=str(user_id),
                action=action,
            )
            raise AuthorizationError(
                f"You do not have permission to {action} this task"
            )

        return task

    async def list_tasks(
        self, user_id: UUID, filters: Optional[TaskFilters] = None
    ) -> list[Task]:
        """List a user's tasks, newest first, optionally filtered by status
        and/or priority."""
        clauses = ["user_id = $1"]
        params: list = [user_id]

        if filters is not None:
            if filters.status is not None:
                params.append(filters.status.value)
                clauses.append(f"status = ${len(params)}")
            if filters.priority is not None:
                params.append(filters.priority.value)
                clauses.append(f"priority = ${len(params)}")

        query = f"""
            SELECT {TASK_COLUMNS}
            FROM tasks
            WHERE {' AND '.join(clauses)}
            ORDER BY created_at DESC
        """

        async with self.database.acquire() as conn:
            rows = await conn.fetch(query, *params)

        return [_row_to_task(row) for row in rows]

    async def update_task(
        self, task_id: UUID, user_id: UUID, request: TaskUpdateRequest
    ) -> Task:
        """Apply a partial update.

        Raises:
            ValidationError: If the request carries no recognized field
            NotFoundError: If the task does not exist (or vanished mid-update)
            AuthorizationError: If another user owns the task
        """
        changes = request.changes()
        if not changes:
            raise ValidationError("No valid fields to update")

        await self.get_owned_task(task_id, user_id, action="update")

        set_clauses = []
        params: list = []
        for column, value in changes.items():
            params.append(_db_value(value))
            set_clauses.append(f"{column} = ${len(params)}")
        set_clauses.append("updated_at = NOW()")
        params.append(task_id)

        query = f"""
            UPDATE tasks
            SET {', '.join(set_clauses)}
            WHERE id = ${len(params)}
            RETURNING {TASK_COLUMNS}
        """

        async with self.database.acquire() as conn:
            row = await conn.fetchrow(query, *params)

        if row is None:
            raise NotFoundError("Task not found")

        logger.info(
            "task_updated",
            task_id=str(task_id),
            user_id=str(user_id),
            fields_updated=list(changes),
        )
        return _row_to_task(row)

    async def update_status(
        self, task_id: UUID, user_id: UUID, status: TaskStatus
    ) -> Task:
        """Change only the status (and updated_at) of a task."""
        await self.get_owned_task(task_id, user_id, action="update")

        async with self.database.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE tasks
                SET status = $1, updated_at = NOW()
                WHERE id = $2
                RETURNING {TASK_COLUMNS}
                """,
                status.value,
                task_id,
            )

        if row is None:
            raise NotFoundError("Task not found")

        logger.info(
            "task_status_updated",
            task_id=str(task_id),
            user_id=str(user_id),
            status=status.value,
        )
        return _row_to_task(row)

    async def delete_task(self, task_id: UUID, user_id: UUID) -> None:
        """Delete a task owned by ``user_id``."""
        await self.get_owned_task(task_id, user_id, action="delete")

        async with self.database.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM tasks WHERE id = $1",
                task_id,
            )

        if result != "DELETE 1":
            raise NotFoundError("Task not found")

        logger.info("task_deleted", task_id=str(task_id), user_id=str(user_id))

    async def get_status_counts(self, user_id: UUID) -> StatusCounts:
        """Count a user's tasks per status, zero-filling missing statuses."""
        async with self.database.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT status, COUNT(*) AS count
                FROM tasks
                WHERE user_id = $1
                GROUP BY status
                """,
                user_id,
            )

        counts = {status.value: 0 for status in TaskStatus}
        for row in rows:
            counts[row["status"]] = row["count"]

        return StatusCounts.model_validate(counts)

    async def get_overdue_tasks(
        self, user_id: UUID, today: Optional[date] = None
    ) -> list[Task]:
        """Tasks due strictly before today that are not completed, soonest first."""
        today = today or utc_today()

        async with self.database.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {TASK_COLUMNS}
                FROM tasks
                WHERE user_id = $1
                  AND due_date < $2
                  AND status <> $3
                ORDER BY due_date ASC
                """,
                user_id,
                today,
                TaskStatus.COMPLETED.value,
            )

        return [_row_to_task(row) for row in rows]

    async def get_summary(self, user_id: UUID) -> TaskSummary:
        """Total, per-status and overdue counts for a user."""
        counts = await self.get_status_counts(user_id)

        async with self.database.acquire() as conn:
            overdue = await conn.fetchval(
                """
                SELECT COUNT(*)
                FROM tasks
                WHERE user_id = $1
                  AND due_date < $2
                  AND status <> $3
                """,
                user_id,
                utc_today(),
                TaskStatus.COMPLETED.value,
            )

        total = counts.pending + counts.in_progress + counts.completed
        return TaskSummary(total=total, by_status=counts, overdue=overdue or 0)
