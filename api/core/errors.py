"""
Application error types and the handlers that turn them into API envelopes.
"""
import enum
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    GENERATION_FAILED = "GENERATION_FAILED"
    INTERNAL = "INTERNAL_ERROR"


class AppError(Exception):
    """Operational error that is safe to report to the caller"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, status_code: Optional[int] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.error_code = error_code or self.kind.value


class InputError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = ErrorKind.VALIDATION


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = ErrorKind.AUTHENTICATION


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = ErrorKind.NOT_FOUND


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    kind = ErrorKind.CONFLICT


class GenerationError(AppError):
    """Both the AI call and the fallback composite failed"""

    kind = ErrorKind.GENERATION_FAILED


def _envelope(status_code: int, message: str, error: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": None, "error": error},
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(log_level, f"{request.method} {request.url.path} failed: {exc.message} ({exc.error_code})")
    return _envelope(exc.status_code, exc.message, exc.error_code)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _envelope(exc.status_code, str(exc.detail), f"HTTP_{exc.status_code}", headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg", "invalid value"))
    return _envelope(
        status.HTTP_400_BAD_REQUEST,
        f"Invalid input data. {'. '.join(messages)}",
        ErrorKind.VALIDATION.value,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong!", ErrorKind.INTERNAL.value)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
