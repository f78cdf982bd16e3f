"""
coursereview/errors.py
Centralized error handling for the HTTP surface

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Invalid input / referential integrity
- 401: Authentication missing or expired
- 403: Not eligible
- 404: Resource does not exist (or is not yours)
- 409: Conflict (duplicate, already selected)
- 422: Validation error (Pydantic)
- 429: Rate limit exceeded
- 500: NEVER caused by user input (internal only)
"""
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursereview.exceptions import CourseReviewException

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_EXPIRED = "AUTH_EXPIRED"
    AUTH_INVALID = "AUTH_INVALID"

    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    REVIEW_NOT_FOUND = "REVIEW_NOT_FOUND"

    CONFLICT = "CONFLICT"
    DUPLICATE_REVIEW = "DUPLICATE_REVIEW"
    SELECTION_ALREADY_MADE = "SELECTION_ALREADY_MADE"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_MAPPING = {
    400: ("Bad Request", ErrorCode.INVALID_INPUT),
    401: ("Unauthorized", ErrorCode.AUTH_REQUIRED),
    403: ("Forbidden", "FORBIDDEN"),
    404: ("Not Found", ErrorCode.NOT_FOUND),
    409: ("Conflict", ErrorCode.CONFLICT),
    422: ("Validation Error", ErrorCode.VALIDATION_ERROR),
    429: ("Too Many Requests", ErrorCode.RATE_LIMITED),
    500: ("Internal Error", ErrorCode.INTERNAL_ERROR),
}


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


def build_error_content(
    status_code: int,
    message: str,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    error, default_code = ERROR_MAPPING.get(status_code, ("Error", ErrorCode.INVALID_INPUT))
    return ErrorResponse(
        error=error,
        message=message,
        code=code or default_code,
        details=details,
    ).model_dump(exclude_none=True)


def raise_unauthorized(message: str = "Authentication required", code: str = ErrorCode.AUTH_REQUIRED):
    """Raise 401 Unauthorized"""
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=build_error_content(status.HTTP_401_UNAUTHORIZED, message, code),
        headers={"WWW-Authenticate": "Bearer"},
    )


async def domain_exception_handler(request: Request, exc: CourseReviewException):
    if exc.status_code >= 500:
        log_id = str(uuid.uuid4())[:8]
        logger.error(f"[{log_id}] {type(exc).__name__} on {request.url.path}: {exc.message}")
        details = {"log_id": log_id}
    else:
        logger.warning(f"Domain error on {request.url.path}: {exc.code} - {exc.message}")
        details = exc.details

    headers = None
    retry_after = getattr(exc, "retry_after_seconds", None)
    if retry_after is not None:
        headers = {"Retry-After": str(retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_content(exc.status_code, exc.message, exc.code, details),
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    error_details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=build_error_content(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Request validation failed",
            details={"errors": error_details},
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP exception on {request.url.path}: {exc.detail}")

    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = build_error_content(exc.status_code, str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception):
    log_id = str(uuid.uuid4())[:8]
    logger.error(
        f"[{log_id}] Unhandled exception on {request.url.path}: {type(exc).__name__}: {str(exc)}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=build_error_content(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
            details={"log_id": log_id},
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CourseReviewException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
