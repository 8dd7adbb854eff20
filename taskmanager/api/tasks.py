"""Task API endpoints. Every route requires an access token."""

from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status

from taskmanager.api.dependencies import get_current_user, get_database
from taskmanager.database import Database
from taskmanager.models.response import ApiResponse
from taskmanager.models.task import (
    OverdueTaskData,
    TaskCreateRequest,
    TaskData,
    TaskFilters,
    TaskListData,
    TaskPriority,
    TaskStatus,
    TaskStatusUpdateRequest,
    TaskSummary,
    TaskUpdateRequest,
)
from taskmanager.models.user import AuthenticatedUser
from taskmanager.services.task_service import TaskService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def get_task_service(database: Database = Depends(get_database)) -> TaskService:
    return TaskService(database)


@router.get("")
async def list_tasks(
    status_filter: Optional[TaskStatus] = Query(default=None, alias="status"),
    priority: Optional[TaskPriority] = Query(default=None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[TaskListData]:
    """List the caller's tasks, newest first, with per-status counts."""
    filters = TaskFilters(status=status_filter, priority=priority)
    tasks = await service.list_tasks(current_user.id, filters)
    stats = await service.get_status_counts(current_user.id)

    return ApiResponse(
        message="Tasks retrieved successfully",
        data=TaskListData(tasks=tasks, stats=stats, count=len(tasks)),
    )


@router.get("/overdue")
async def list_overdue_tasks(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[OverdueTaskData]:
    """List the caller's incomplete tasks whose due date has passed."""
    tasks = await service.get_overdue_tasks(current_user.id)

    return ApiResponse(
        message="Overdue tasks retrieved successfully",
        data=OverdueTaskData(tasks=tasks, count=len(tasks)),
    )


@router.get("/stats/summary")
async def get_task_summary(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[TaskSummary]:
    summary = await service.get_summary(current_user.id)
    return ApiResponse(message="Statistics retrieved successfully", data=summary)


@router.get("/{task_id}")
async def get_task(
    task_id: UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[TaskData]:
    task = await service.get_owned_task(task_id, current_user.id)
    return ApiResponse(message="Task retrieved successfully", data=TaskData(task=task))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    request: TaskCreateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[TaskData]:
    task = await service.create_task(current_user.id, request)
    return ApiResponse(message="Task created successfully", data=TaskData(task=task))


@router.put("/{task_id}")
async def update_task(
    task_id: UUID,
    request: TaskUpdateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[TaskData]:
    """Apply a partial update. At least one recognized field is required."""
    task = await service.update_task(task_id, current_user.id, request)
    return ApiResponse(message="Task updated successfully", data=TaskData(task=task))


@router.patch("/{task_id}/status")
async def update_task_status(
    task_id: UUID,
    request: TaskStatusUpdateRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[TaskData]:
    task = await service.update_status(task_id, current_user.id, request.status)
    return ApiResponse(
        message="Task status updated successfully",
        data=TaskData(task=task),
    )


@router.delete("/{task_id}")
async def delete_task(
    task_id: UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[None]:
    await service.delete_task(task_id, current_user.id)
    return ApiResponse(message="Task deleted successfully")
