"""Error taxonomy surfaced by the HTTP layer and the handlers that render it.

Every non-2xx response carries ``{"error": "<message>"}``. Client errors carry
the low-level reason; server errors carry a constant message and the real
cause is only logged.
"""

from __future__ import annotations

import logging
import math
from typing import ClassVar

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "internal server error"


class APIError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code: ClassVar[int] = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class BadRequest(APIError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": 'Bearer charset="UTF-8"'}


class BasicUnauthorized(Unauthorized):
    """401 raised by the HTTP Basic check; prompts for basic credentials."""

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": 'Basic realm="restricted", charset="UTF-8"'}


class Forbidden(APIError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(APIError):
    status_code = status.HTTP_409_CONFLICT


class TooManyRequests(APIError):
    """Rate limiter rejection carrying the remaining window as ``Retry-After``."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after: float) -> None:
        super().__init__(f"rate limit exceeded, retry after: {retry_after:.2f}s")
        self.retry_after = retry_after

    @property
    def headers(self) -> dict[str, str] | None:
        return {"Retry-After": str(max(1, math.ceil(self.retry_after)))}


def error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the JSON error envelope."""
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def internal_error_response(request: Request, exc: BaseException) -> JSONResponse:
    """Log the real cause and answer with the constant 500 message."""
    logger.error(
        "internal error method=%s path=%s error=%s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


def _log_client_error(request: Request, status_code: int, message: str) -> None:
    log = logger.error if status_code == status.HTTP_409_CONFLICT else logger.warning
    log(
        "client error status=%s method=%s path=%s error=%s",
        status_code,
        request.method,
        request.url.path,
        message,
    )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return internal_error_response(request, exc)
    _log_client_error(request, exc.status_code, exc.message)
    return error_response(exc.status_code, exc.message, exc.headers)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid request"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _format_validation_errors(exc)
    _log_client_error(request, status.HTTP_400_BAD_REQUEST, message)
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return internal_error_response(request, exc)
    message = exc.detail if isinstance(exc.detail, str) else "request failed"
    _log_client_error(request, exc.status_code, message)
    return error_response(exc.status_code, message, getattr(exc, "headers", None))


def install_exception_handlers(app: FastAPI) -> None:
    """Register the JSON error handlers on ``app``."""
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
