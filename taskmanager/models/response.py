"""Response envelope shared by every endpoint."""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class FieldError(BaseModel):
    """A single field-level validation failure."""

    field: str
    message: str


class ApiResponse(BaseModel, Generic[DataT]):
    """Successful response envelope.

    Attributes:
        success: Always True for this model
        message: Human-readable outcome
        data: Endpoint-specific payload (omitted by some mutations)
    """

    success: bool = True
    message: str
    data: Optional[DataT] = None


class ErrorResponse(BaseModel):
    """Failure envelope.

    Attributes:
        success: Always False
        message: What went wrong
        errors: Field-level breakdown for validation failures
        error: Exception details, only outside production
        correlation_id: Request tracking ID for debugging
    """

    success: bool = False
    message: str
    errors: Optional[list[FieldError]] = None
    error: Optional[dict[str, Any]] = None
    correlation_id: Optional[str] = None
