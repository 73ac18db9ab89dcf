"""Map domain errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from intake_tracker.domain.errors import (
    ConflictError,
    DependencyError,
    IntakeError,
    NotFoundError,
    ValidationError,
)

_logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[IntakeError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (DependencyError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def error_response(exc: IntakeError) -> JSONResponse:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "message": exc.message,
                "type": exc.error_type,
                "details": exc.details,
            }
        },
    )


async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    log = _logger.error if isinstance(exc, DependencyError) else _logger.info
    log(
        "%s on %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.message,
    )
    return error_response(exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IntakeError, intake_error_handler)
