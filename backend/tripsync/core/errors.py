"""
Error taxonomy and the JSON error envelope.

Every failure leaves the API as ``{"success": false, "message": "..."}``.
"""

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import ExecutionTimeout, NetworkTimeout, ServerSelectionTimeoutError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class TripSyncError(Exception):
    """Base class for errors that map directly to an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(TripSyncError):
    status_code = 400


class UnauthorizedError(TripSyncError):
    status_code = 401


class ForbiddenError(TripSyncError):
    status_code = 403


class NotFoundError(TripSyncError):
    status_code = 404


class ConflictError(TripSyncError):
    status_code = 409


class UpstreamError(TripSyncError):
    status_code = 502


class RequestTimeoutError(TripSyncError):
    status_code = 504


TIMEOUT_ERRORS = (asyncio.TimeoutError, ServerSelectionTimeoutError, NetworkTimeout, ExecutionTimeout)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc) or "request"
    return f"Invalid field '{field}': {first.get('msg', 'invalid value')}"


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers that convert every failure into the error envelope."""

    @app.exception_handler(TripSyncError)
    async def tripsync_error_handler(request: Request, exc: TripSyncError):
        logger.warning(
            "%s on %s %s | status=%s | message=%s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(
            "HTTPException on %s %s | status=%s | detail=%s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.detail,
        )
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = _describe_validation_error(exc)
        logger.warning("Validation error on %s %s | %s", request.method, request.url.path, message)
        return error_response(400, message)

    async def timeout_handler(request: Request, exc: Exception):
        logger.error("Timeout on %s %s | error=%s", request.method, request.url.path, exc)
        return error_response(504, "Request timed out")

    for exc_class in TIMEOUT_ERRORS:
        app.add_exception_handler(exc_class, timeout_handler)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled exception on %s %s | error=%s", request.method, request.url.path, exc
        )
        return error_response(500, "Internal Server Error")
