"""FastAPI application initialization."""

import traceback
from contextlib import asynccontextmanager
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskmanager.api.auth import router as auth_router
from taskmanager.api.middleware import (
    SECURITY_HEADERS,
    CorrelationIdMiddleware,
    SecurityHeadersMiddleware,
)
from taskmanager.api.routes import router as service_router
from taskmanager.api.tasks import router as tasks_router
from taskmanager.config import get_settings
from taskmanager.database import Database
from taskmanager.errors import AppError, InternalError, ValidationError
from taskmanager.models.response import ErrorResponse, FieldError
from taskmanager.services.logging_service import configure_logging

VALUE_ERROR_PREFIX = "Value error, "


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store on startup and close it on shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = structlog.get_logger(__name__)

    database = Database(
        settings.postgres_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        timeout=settings.store_timeout_seconds,
    )
    app.state.database = database

    try:
        await database.connect()
        await database.run_migrations()
        logger.info("database_initialized")
    except Exception as e:
        logger.warning(
            "database_initialization_failed",
            error=str(e),
            note="Continuing without database - store calls will return 503",
        )

    logger.info(
        "application_started",
        environment=settings.environment,
        log_level=settings.log_level,
    )

    yield

    await database.close()
    logger.info("application_shutdown")


app = FastAPI(
    title="Task Manager API",
    description="Task management REST API with JWT authentication",
    version="1.0.0",
    lifespan=lifespan,
)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    *,
    errors: list[FieldError] | None = None,
    error: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    correlation_id = _correlation_id(request)
    body = ErrorResponse(
        message=message,
        errors=errors or None,
        error=error,
        correlation_id=correlation_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers={**(headers or {}), "X-Correlation-Id": correlation_id},
    )


def _field_errors(exc: RequestValidationError) -> list[FieldError]:
    """Flatten Pydantic validation errors into {field, message} pairs."""
    field_errors = []
    for err in exc.errors():
        loc = err.get("loc") or ("unknown",)
        field = str(loc[-1]) if len(loc) > 1 else str(loc[0])
        message = err.get("msg", "Invalid value")
        if message.startswith(VALUE_ERROR_PREFIX):
            message = message[len(VALUE_ERROR_PREFIX):]
        field_errors.append(FieldError(field=field, message=message))
    return field_errors


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request-shape errors with a field-level breakdown (400)."""
    errors = _field_errors(exc)
    structlog.get_logger().warning(
        "validation_error",
        errors=[e.model_dump() for e in errors],
    )
    return _error_response(request, 400, "Validation failed", errors=errors)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map domain errors onto their HTTP status."""
    errors = None
    if isinstance(exc, ValidationError) and exc.errors:
        errors = [FieldError(**e) for e in exc.errors]

    log = structlog.get_logger()
    if exc.status_code >= 500:
        log.error("request_failed", status_code=exc.status_code, detail=exc.message)
    else:
        log.info("request_rejected", status_code=exc.status_code, detail=exc.message)

    return _error_response(
        request,
        exc.status_code,
        exc.message,
        errors=errors,
        headers=exc.headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Wrap framework HTTP errors (unknown routes, bad methods) in the envelope."""
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return _error_response(
        request,
        exc.status_code,
        message,
        error={"path": request.url.path, "method": request.method},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Convert anything unexpected into a generic 500.

    Exception details and the stack are only included outside production.
    This response is sent from outside the middleware stack, so security and
    CORS headers are added here.
    """
    structlog.get_logger().error(
        "unhandled_exception",
        error_type=type(exc).__name__,
        exc_info=exc,
    )

    settings = get_settings()
    error = None
    if not settings.is_production:
        error = {
            "type": type(exc).__name__,
            "detail": str(exc),
            "stack": traceback.format_exception(exc),
        }

    headers = dict(SECURITY_HEADERS)
    origin = request.headers.get("origin")
    allowed = settings.cors_origins_list
    if origin and (origin in allowed or "*" in allowed):
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
        headers["Vary"] = "Origin"

    internal = InternalError()
    return _error_response(
        request,
        internal.status_code,
        internal.message,
        error=error,
        headers=headers,
    )


# CORS middleware for the browser client
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Correlation-Id"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Correlation ID middleware for request tracking and observability
app.add_middleware(CorrelationIdMiddleware)

app.include_router(auth_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(service_router, prefix="/api")


def run() -> None:
    """Serve the API with uvicorn (the ``taskmanager-api`` console script)."""
    uvicorn.run("taskmanager.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
