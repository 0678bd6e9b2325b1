"""
Global exception handlers and custom exception classes.

Every error leaves the API in the same envelope as successful responses:
{"success": false, "message": "..."}.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException
import logging

from .config import settings
from .core.logging_config import log_exception

# Set up logging
logger = logging.getLogger(__name__)

class AppException(Exception):
    """
    Base exception class for application-specific exceptions.
    """
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail

class BadRequestException(AppException):
    """Exception raised when the request cannot be processed as sent."""
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class UnauthorizedException(AppException):
    """Exception raised when the caller is not authenticated."""
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class ForbiddenException(AppException):
    """Exception raised when the caller lacks access to a resource."""
    def __init__(self, detail: str = "Access denied"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class NotFoundException(AppException):
    """Exception raised when a resource does not exist."""
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


# Ordered: the first matching fragment wins
ERROR_STATUS_FRAGMENTS = [
    ("not found", status.HTTP_404_NOT_FOUND),
    ("not authenticated", status.HTTP_401_UNAUTHORIZED),
    ("unauthorized", status.HTTP_401_UNAUTHORIZED),
    ("invalid token", status.HTTP_401_UNAUTHORIZED),
    ("forbidden", status.HTTP_403_FORBIDDEN),
    ("access denied", status.HTTP_403_FORBIDDEN),
    ("permission", status.HTTP_403_FORBIDDEN),
    ("required", status.HTTP_400_BAD_REQUEST),
    ("invalid", status.HTTP_400_BAD_REQUEST),
    ("already", status.HTTP_400_BAD_REQUEST),
]


def status_code_for_error(exc: BaseException) -> int:
    """
    Map an unexpected exception to an HTTP status code from its message.

    Args:
        exc: The exception raised by a handler

    Returns:
        int: Matching status code, 500 when nothing matches
    """
    message = str(exc).lower()
    for fragment, status_code in ERROR_STATUS_FRAGMENTS:
        if fragment in message:
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    """Build the standard error envelope."""
    content = {"success": False, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def app_exception_handler(request: Request, exc: AppException):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    logger.warning(f"Application error on {request.url.path}: {exc.status_code} {exc.detail}")
    return error_response(exc.status_code, exc.detail)


async def http_exception_handler(request: Request, exc: HTTPException):
    """Render framework HTTP errors (401 from auth, 404 routes) in the envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation exceptions.

    Args:
        request: The request that caused the exception
        exc: The validation exception instance

    Returns:
        JSONResponse: Standardized error response with validation details
    """
    logger.warning(f"Validation error on {request.url.path}")
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        errors=exc.errors(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Last-resort handler. Production responses never carry exception text.
    """
    log_exception(logger, f"❌ Unhandled error on {request.method} {request.url.path}", exc)
    status_code = status_code_for_error(exc)
    if settings.is_development:
        return error_response(status_code, "Internal server error", error=str(exc))
    return error_response(status_code, "Internal server error")


# Register exception handlers with FastAPI app
def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
