"""Error taxonomy and FastAPI exception handlers."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class WorklogError(Exception):
    """Base exception for errors surfaced to API callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "BAD_REQUEST"
    default_message: str = "Bad request."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidPeriod(WorklogError):
    """Malformed or out-of-range reporting period."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_PERIOD"
    default_message = "Invalid year or month."


class Unauthorized(WorklogError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    default_message = "Authentication required."


class Forbidden(WorklogError):
    """Caller lacks the role required for the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFound(WorklogError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_message = "Resource not found."


class Conflict(WorklogError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_message = "Resource already exists."


class ValidationFailed(WorklogError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed."


class AggregationFailed(WorklogError):
    """Reporting store query failed. The cause is chained and logged server-side."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "AGGREGATION_FAILED"
    default_message = "Failed to fetch summary data"


async def worklog_error_handler(request: Request, exc: WorklogError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.error_code,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "error_code": exc.error_code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Render every WorklogError as ``{"error", "error_code"}`` JSON."""

    app.add_exception_handler(WorklogError, worklog_error_handler)
