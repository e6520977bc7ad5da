# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error leaves the API as JSON with an "error" message, a machine code
# and, when useful, a suggestion on how to fix the request.
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class VerifolioException(Exception):
    """
    Base exception for the Verifolio API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "VERIFOLIO_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result: dict[str, Any] = {
            "error": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Lookup Exceptions
# =============================================================================

class NotFoundError(VerifolioException):
    """Raised when a row doesn't exist, is trashed, or belongs to another user."""

    def __init__(self, entity: str, entity_id: str | None = None):
        details = {"entity": entity}
        if entity_id is not None:
            details["id"] = str(entity_id)
        super().__init__(
            message=f"{entity.capitalize()} not found",
            code=f"{entity.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
            suggestion=f"Check that the {entity} id is correct and hasn't been deleted",
            details=details,
        )


# =============================================================================
# Input Exceptions
# =============================================================================

class ValidationFailedError(VerifolioException):
    """Raised when a request is well-formed but violates a business rule."""

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code="VALIDATION_FAILED",
            status_code=400,
            suggestion=suggestion,
            details=details,
        )


class ConflictError(VerifolioException):
    """Raised on duplicates (tag, badge, slug, link) or already-existing rows."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=409,
            details=details,
        )


class InvalidTransitionError(VerifolioException):
    """Raised when a status change isn't allowed from the current status."""

    def __init__(self, entity: str, current: str, target: str, allowed: list[str]):
        super().__init__(
            message=f"Cannot change {entity} status from '{current}' to '{target}'",
            code="INVALID_TRANSITION",
            status_code=409,
            suggestion=(
                f"Allowed next statuses: {', '.join(allowed)}"
                if allowed else f"'{current}' is a final status"
            ),
            details={"current": current, "target": target, "allowed": allowed},
        )


class ForbiddenOperationError(VerifolioException):
    """Raised when an operation is never allowed on a row (e.g. system tasks)."""

    def __init__(self, message: str, suggestion: str | None = None):
        super().__init__(
            message=message,
            code="FORBIDDEN_OPERATION",
            status_code=403,
            suggestion=suggestion,
        )


# =============================================================================
# Infrastructure Exceptions
# =============================================================================

class DatabaseError(VerifolioException):
    """Raised when a database call fails unexpectedly."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            message=f"Database error during {operation}",
            code="DATABASE_ERROR",
            status_code=500,
            suggestion="Try again later or contact support if the issue persists",
            details={"operation": operation, "error": error},
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def verifolio_exception_handler(
    request: Request,
    exc: VerifolioException
) -> JSONResponse:
    """
    Convert VerifolioException to JSON response.

    Returns structured error with:
    - error: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.details}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Render HTTPExceptions (401s, unknown routes) with the same "error" key."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to user-friendly messages.
    """
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation error",
            "code": "VALIDATION_ERROR",
            "errors": errors,
        }
    )
