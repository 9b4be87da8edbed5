"""
Custom exceptions and error handlers.

Every error leaving the API uses the same envelope as successful
responses: ``{"success": false, "error": "<message>", "code": "<error_code>"}``.
"""
from typing import Any, Dict, Optional
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from .logging import get_logger

logger = get_logger(__name__)


class InkflowException(Exception):
    """Base exception for the Inkflow application."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(InkflowException):
    """Invalid input that passed schema parsing but fails a business rule."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="invalid_input",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class AuthenticationException(InkflowException):
    """Authentication error exception."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            error_code="unauthorized",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class NotFoundException(InkflowException):
    """Resource missing or not owned by the caller."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )


class ConflictException(InkflowException):
    """Requested transition is not allowed from the resource's current state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="conflict",
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class GoneException(InkflowException):
    """Resource was soft-deleted."""

    def __init__(self, message: str = "Resource has been deleted"):
        super().__init__(
            message=message,
            error_code="gone",
            status_code=status.HTTP_410_GONE,
        )


class ExternalServiceException(InkflowException):
    """A collaborating service failed or returned an unusable response."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="external_service_error",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
        )


def _error_body(message: str, code: str, details: Optional[Any] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = jsonable_encoder(details)
    return body


async def inkflow_exception_handler(request: Request, exc: InkflowException) -> JSONResponse:
    """Handle application exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request failed",
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, exc.error_code, exc.details),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle FastAPI validation errors."""
    logger.warning(
        "Validation error occurred",
        errors=exc.errors(),
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Invalid input data", "invalid_input", {"errors": exc.errors()}),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
    )

    error_code_map = {
        400: "invalid_input",
        401: "unauthorized",
        404: "not_found",
        409: "conflict",
        410: "gone",
        429: "rate_limited",
        500: "server_error",
    }

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), error_code_map.get(exc.status_code, "http_error")),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(
        "Unexpected exception occurred",
        exception_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("An unexpected error occurred", "server_error"),
    )
