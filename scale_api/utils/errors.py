#!/usr/bin/env python3
"""
Standardised error handling

Services raise AppError subclasses; the handlers registered by
``register_exception_handlers`` turn them into ``{error, message}`` bodies.
"""

import uuid
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException


class ErrorCode(Enum):
    """Error categories returned in the ``error`` field"""

    VALIDATION_ERROR = "Validation Error"
    UNAUTHORIZED = "Unauthorized"
    FEATURE_NOT_AVAILABLE = "Feature Not Available"
    USER_NOT_FOUND = "User Not Found"
    NOT_FOUND = "Not Found"
    USAGE_LIMIT_EXCEEDED = "Usage Limit Exceeded"
    BILLING_PROVIDER_ERROR = "Billing Provider Error"
    INVALID_SIGNATURE = "Invalid Signature"
    MISSING_USER_REFERENCE = "Missing User Reference"
    INTERNAL_ERROR = "Internal Server Error"


class ErrorResponse(BaseModel):
    """Error response body"""

    error: str
    message: str


class AppError(Exception):
    """Base class for errors that map onto an HTTP response"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = ErrorCode.INTERNAL_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, extra: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.extra = extra or {}
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        body = ErrorResponse(error=self.code.value, message=self.message).model_dump()
        body.update(self.extra)
        return body


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid request"


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = ErrorCode.UNAUTHORIZED
    default_message = "Invalid or expired token"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = ErrorCode.FEATURE_NOT_AVAILABLE
    default_message = "Feature is not available in your subscription tier"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.NOT_FOUND
    default_message = "The requested resource was not found"


class UserNotFoundError(NotFoundError):
    code = ErrorCode.USER_NOT_FOUND
    default_message = "User not found"


class QuotaExceededError(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = ErrorCode.USAGE_LIMIT_EXCEEDED
    default_message = "Monthly prompt limit exceeded"


class BillingProviderError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = ErrorCode.BILLING_PROVIDER_ERROR
    default_message = "Billing provider request failed"


class WebhookSignatureError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = ErrorCode.INVALID_SIGNATURE
    default_message = "Invalid signature"


class MissingUserReferenceError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.MISSING_USER_REFERENCE
    default_message = "No userId found in subscription metadata"


class InternalError(AppError):
    pass


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error mapping to the application"""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        error = ErrorCode.NOT_FOUND.value if exc.status_code == 404 else str(exc.detail)
        message = "The requested resource was not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=error, message=message).model_dump(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(
                error=ErrorCode.VALIDATION_ERROR.value,
                message=_format_validation_errors(exc),
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        error_id = uuid.uuid4().hex[:12]
        logger.exception(f"Unhandled error {error_id} on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error=ErrorCode.INTERNAL_ERROR.value,
                message=f"Unexpected error (id {error_id})",
            ).model_dump(),
        )
