"""
Error taxonomy and the exception handlers that render it.

Services raise ``AppError`` subclasses; the handlers registered by
``register_exception_handlers`` turn them (and FastAPI's own validation
and HTTP errors) into the common envelope::

    {"success": false, "message": "...", "data": null, "errors": ["..."]}
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

VALIDATION_FAILED_MESSAGE = "Validation failed"
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."

_UNIQUE_VIOLATION_SQLSTATE = "23505"


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = INTERNAL_ERROR_MESSAGE
    headers: dict[str, str] | None = None

    def __init__(self, message: str | None = None, errors: list[str] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors if errors is not None else [self.message]
        super().__init__(self.message)


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"
    headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InternalError(AppError):
    pass


def is_unique_violation(exc: Exception) -> bool:
    """
    Return True when *exc* is a unique-constraint violation raised by the
    database driver.

    asyncpg exposes the SQLSTATE on the wrapped driver error; SQLite only
    reports it in the message text, so both are checked.
    """
    if not isinstance(exc, IntegrityError):
        return False
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _UNIQUE_VIOLATION_SQLSTATE:
        return True
    text = str(orig).lower()
    return "unique constraint" in text or "duplicate key" in text


def error_body(message: str, errors: list[str]) -> dict:
    return {"success": False, "message": message, "data": None, "errors": errors}


def _format_validation_error(error: dict) -> list[str]:
    # Password policy violations carry every failed rule in ctx.
    ctx = error.get("ctx") or {}
    if "violations" in ctx:
        return list(ctx["violations"])
    if error.get("type", "").startswith("newsdesk."):
        return [error["msg"]]
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    return [f"{field}: {error['msg']}" if field else error["msg"]]


def flatten_validation_errors(errors) -> list[str]:
    messages: list[str] = []
    for error in errors:
        messages.extend(_format_validation_error(error))
    return messages


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.errors),
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(VALIDATION_FAILED_MESSAGE, flatten_validation_errors(exc.errors())),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Error occurred"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, [message]),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(INTERNAL_ERROR_MESSAGE, [INTERNAL_ERROR_MESSAGE]),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
