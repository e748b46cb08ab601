"""
Custom exceptions for the order pipeline.
Every error leaves the API in the same envelope: ``{"success": false, "error": ...}``.
"""

from typing import Any, Dict, Optional, List

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config.logging import get_logger

logger = get_logger(__name__)


class ErrorDetail(BaseModel):
    """Standard error detail structure"""
    code: str
    message: str
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class BaseCustomException(HTTPException):
    """Base class for all custom exceptions"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        headers: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        field: Optional[str] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.field = field


# =============================================================================
# HTTP EXCEPTIONS
# =============================================================================

class NotFoundError(BaseCustomException):
    """Resource not found exception"""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} with identifier '{identifier}' not found",
            error_code="RESOURCE_NOT_FOUND"
        )


class UnauthorizedError(BaseCustomException):
    """Unauthorized access exception"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message,
            error_code="UNAUTHORIZED",
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenError(BaseCustomException):
    """Forbidden access exception"""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=message,
            error_code="FORBIDDEN"
        )


class BadRequestError(BaseCustomException):
    """Bad request exception"""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
            error_code="BAD_REQUEST",
            field=field
        )


class InternalServerError(BaseCustomException):
    """Internal server error exception"""

    def __init__(self, message: str = "Internal server error occurred"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=message,
            error_code="INTERNAL_SERVER_ERROR"
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(BaseCustomException):
    """Input failed type coercion or a business rule. Nothing was written."""

    def __init__(self, message: str, field: str = None, errors: List[ErrorDetail] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message,
            error_code="VALIDATION_ERROR",
            field=field
        )
        self.errors = errors or []

    @classmethod
    def from_messages(cls, messages: List[str], message: str = "Validation failed") -> "ValidationError":
        return cls(
            message,
            errors=[ErrorDetail(code="INVALID_FIELD", message=text) for text in messages]
        )

    @property
    def messages(self) -> List[str]:
        return [err.message for err in self.errors]


class BulkImportError(ValidationError):
    """A row of a bulk import failed; the whole batch was rejected."""

    def __init__(self, row: int, messages: List[str]):
        super().__init__(
            message=f"Row {row}: {'; '.join(messages)}",
            errors=[ErrorDetail(code="INVALID_ROW", message=f"Row {row}: {text}",
                                details={"row": row}) for text in messages]
        )
        self.error_code = "BULK_IMPORT_FAILED"
        self.row = row


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def format_error_response(error: HTTPException) -> Dict[str, Any]:
    """Format error response for consistent API responses"""
    response = {
        "success": False,
        "error": error.detail,
        "error_code": getattr(error, 'error_code', None) or "HTTP_ERROR",
    }

    if getattr(error, 'field', None):
        response["field"] = error.field

    if getattr(error, 'errors', None):
        response["details"] = [err.message for err in error.errors]

    return response


async def custom_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTP and custom exceptions in the response envelope."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error_response(exc),
        headers=getattr(exc, "headers", None)
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """FastAPI's own parameter/body validation, reported as 400 like every other input error."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    error = ValidationError.from_messages(messages, message="Invalid request")
    return JSONResponse(status_code=error.status_code, content=format_error_response(error))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the detail, return a generic message."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error", "error_code": "INTERNAL_SERVER_ERROR"}
    )
