"""
VitaTrack errors and their HTTP rendering.

Responses share one envelope, `{code, message, details}`. `code` is stable;
`message` is for humans. Transient persistence failures (503, retriable)
are kept apart from rule violations (409) and bad input (422).
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class VitaTrackException(Exception):
    """Root of the tracking errors; subclasses fix `http_status` and `code`."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class UnauthenticatedError(VitaTrackException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"

    def __init__(self):
        super().__init__(message="No authenticated user for this request.")


class PersistenceUnavailableError(VitaTrackException):
    """
    The store could not be read or written. Always retriable, and never
    evidence that a day is uninitialized.
    """
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "PERSISTENCE_UNAVAILABLE"

    def __init__(self, operation: str):
        super().__init__(
            message=f"Persistence failed during {operation}. Retry the request.",
            details={"operation": operation, "retriable": True},
        )


class InvariantViolationError(VitaTrackException):
    """A caller asked for something the tracking rules never allow."""
    http_status = status.HTTP_409_CONFLICT
    code = "INVARIANT_VIOLATION"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, details=details)


class MealNotFoundError(VitaTrackException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "MEAL_NOT_FOUND"

    def __init__(self, meal_id: int, day):
        super().__init__(
            message=f"Meal {meal_id} is not part of the plan for {day}.",
            details={"meal_id": meal_id, "day": str(day)},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def vitatrack_exception_handler(
    request: Request, exc: VitaTrackException
) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """422 with one `{field, message, type}` entry per failed field."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
