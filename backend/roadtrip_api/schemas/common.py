"""
Road Trip Planner Backend — Shared Pydantic Schemas
====================================================

What:  Base model, pagination envelope, error/health responses, and the
       helper that turns pydantic errors into application ValidationErrors.
Why:   Every resource speaks the same camelCase JSON dialect and shares the
       same list and error envelopes.
How:   CamelModel generates camelCase aliases (`cover_image` → `coverImage`)
       while still accepting snake_case input (populate_by_name). FastAPI
       serializes response models by alias, so the wire format is camelCase.

Design Decision:
    Request bodies for update endpoints are validated inside the service
    (via validate_payload) rather than by FastAPI, so the ownership check
    can run first and a non-owner always receives 403.
"""

from datetime import datetime
from typing import Any, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from roadtrip_api.exceptions import ValidationError


class CamelModel(BaseModel):
    """Base for every request/response schema: camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


ModelT = TypeVar("ModelT", bound=BaseModel)


# ══════════════════════════════════════════════════════════════════════════
# Envelopes
# ══════════════════════════════════════════════════════════════════════════


class Pagination(CamelModel):
    """
    What:  Page metadata returned with every list response.

    Invariants:
        total_pages = ceil(total_items / limit)
        has_next    = current_page < total_pages
        has_prev    = current_page > 1
    """

    current_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool
    limit: int


class MessageResponse(CamelModel):
    message: str


class ErrorResponse(CamelModel):
    """
    What:  Error body returned by every global exception handler.

    Example:
        {
            "message": "Trip not found",
            "error": "not_found",
            "requestId": "a1b2c3d4"
        }
    `detail` is only populated for unexpected 500s in development mode.
    """

    message: str = Field(description="Human-readable error description")
    error: str = Field(description="Machine-readable error code")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
    detail: Optional[str] = Field(default=None, description="Debug detail (development only)")


class HealthResponse(CamelModel):
    status: str = Field(description="healthy or unhealthy")
    message: str
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float
    timestamp: datetime


# ══════════════════════════════════════════════════════════════════════════
# Validation Helpers
# ══════════════════════════════════════════════════════════════════════════


def format_validation_errors(errors: Sequence[Any]) -> str:
    """
    Turns pydantic's error list into a single human-readable message.

    Only the first error is reported, prefixed with its field path:
        "title: String should have at least 3 characters"
    Custom validator messages lose pydantic's "Value error, " prefix.
    """
    if not errors:
        return "Validation failed"
    first = errors[0]
    message = str(first.get("msg", "Invalid value"))
    for prefix in ("Value error, ", "Assertion failed, "):
        if message.startswith(prefix):
            message = message[len(prefix):]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    if loc:
        return f"{'.'.join(loc)}: {message}"
    return message


def error_field(errors: Sequence[Any]) -> Optional[str]:
    if not errors:
        return None
    loc = [str(part) for part in errors[0].get("loc", ()) if part not in ("body", "query", "path")]
    return ".".join(loc) or None


def validate_payload(schema: Type[ModelT], data: Any) -> ModelT:
    """
    Validates `data` against `schema`, raising the application's ValidationError.

    Raises:
        ValidationError: with a field-prefixed message (HTTP 400)
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        errors = exc.errors()
        raise ValidationError(
            message=format_validation_errors(errors),
            field=error_field(errors),
        ) from exc
