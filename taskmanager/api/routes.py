"""Service-level endpoints: health check and API index."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request

from taskmanager.api.dependencies import get_optional_user
from taskmanager.config import get_settings
from taskmanager.models.user import AuthenticatedUser

router = APIRouter()

API_VERSION = "1.0.0"

ENDPOINTS = {
    "auth": {
        "register": "POST /api/auth/register",
        "login": "POST /api/auth/login",
        "refresh": "POST /api/auth/refresh",
        "me": "GET /api/auth/me",
        "changePassword": "PUT /api/auth/change-password",
        "deleteAccount": "DELETE /api/auth/me",
    },
    "tasks": {
        "getAll": "GET /api/tasks",
        "getById": "GET /api/tasks/:id",
        "getOverdue": "GET /api/tasks/overdue",
        "getStats": "GET /api/tasks/stats/summary",
        "create": "POST /api/tasks",
        "update": "PUT /api/tasks/:id",
        "updateStatus": "PATCH /api/tasks/:id/status",
        "delete": "DELETE /api/tasks/:id",
    },
}


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint.

    Returns:
        Status, timestamp in ISO8601 format, environment and database state
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": get_settings().environment,
    }

    database = getattr(request.app.state, "database", None)
    if database is None or not database.is_connected:
        health_status["database"] = "unavailable"
    else:
        db_healthy = await database.health_check()
        health_status["database"] = "healthy" if db_healthy else "unhealthy"

    return health_status


@router.get("")
async def api_index(
    current_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dict:
    """Describe the API. Identifies the caller when a valid token is sent."""
    return {
        "message": "Task Manager API",
        "version": API_VERSION,
        "authenticatedAs": current_user.email if current_user else None,
        "endpoints": ENDPOINTS,
    }
