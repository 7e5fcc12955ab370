"""
Error translation for the HTTP layer.

Domain errors carry a stable ``code``; this module picks the HTTP status
from the exception's class hierarchy and a recovery hint from the code, and
renders both as an ``ErrorResponse`` body.
"""

import json
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from stockbook.application.dto.responses import ErrorResponse
from stockbook.config import get_logger
from stockbook.core.exceptions import (
    AuthenticationRequiredError,
    InsufficientStockError,
    NotFoundError,
    PurchaseAccessDeniedError,
    StockbookError,
    ValidationError,
)

logger = get_logger(__name__)

# Looked up along the exception's MRO, so subclasses inherit their parent's status
STATUS_BY_TYPE: dict[type[Exception], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationRequiredError: status.HTTP_401_UNAUTHORIZED,
    PurchaseAccessDeniedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InsufficientStockError: status.HTTP_409_CONFLICT,
    ValueError: status.HTTP_400_BAD_REQUEST,
}

HINTS: dict[str, str] = {
    "PURCHASE_NOT_FOUND": "List purchases with GET /api/purchases and check the id.",
    "MATERIAL_NOT_FOUND": "List materials with GET /api/catalog/materials and check the id.",
    "PRODUCT_NOT_FOUND": "List products with GET /api/catalog/products and check the id.",
    "INVALID_STATUS": "Use one of: pending, completed, cancelled.",
    "INVALID_TRANSITION": "A completed purchase can only be cancelled or deleted.",
    "FORBIDDEN": "Only the owner of a purchase can modify it.",
    "AUTHENTICATION_REQUIRED": "Send the acting user id in the X-User-Id header.",
    "INSUFFICIENT_STOCK": "The movement would make stock negative. Check current stock first.",
    "TRANSACTION_FAILED": "Nothing was changed. Retry the request.",
    "VALIDATION_ERROR": "Check the request fields and their types.",
}

FALLBACK_HINTS: dict[int, str] = {
    400: "Check the request parameters and body.",
    401: "Authenticate and retry.",
    403: "You do not have access to this resource.",
    404: "The requested resource was not found.",
    405: "This method is not allowed on this path.",
    409: "The request conflicts with the current state.",
    500: "An internal error occurred. Check server logs.",
}


def status_for(exc: Exception) -> int:
    for klass in type(exc).__mro__:
        if klass in STATUS_BY_TYPE:
            return STATUS_BY_TYPE[klass]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def hint_for(error_code: str, status_code: int) -> str | None:
    return HINTS.get(error_code) or FALLBACK_HINTS.get(status_code)


def _render(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    detail: str | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        hint=hint_for(error_code, status_code),
        detail=detail,
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Render any exception as an ``ErrorResponse`` and log it."""
    status_code = status_for(exc)

    if isinstance(exc, StockbookError):
        error_code, message = exc.code, exc.message
        detail = json.dumps(exc.details, default=str) if exc.details else None
    else:
        error_code, message, detail = type(exc).__name__, str(exc), None

    if status_code >= 500:
        logger.error(
            "request_error",
            path=request.url.path,
            error_code=error_code,
            error=message,
            exc_info=exc,
        )
    else:
        logger.warning(
            "request_rejected",
            path=request.url.path,
            error_code=error_code,
            error=message,
        )

    return _render(request, status_code, error_code, message, detail)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence for exceptions no handler claimed."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return error_response(request, e)


async def _domain_error(request: Request, exc: StockbookError) -> JSONResponse:
    return error_response(request, exc)


async def _request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return _render(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        "; ".join(problems),
    )


async def _http_error(request: Request, exc: HTTPException) -> JSONResponse:
    error_code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    return _render(request, exc.status_code, error_code, str(exc.detail or "Request failed"))


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain, request validation and HTTP error handlers."""
    app.add_exception_handler(StockbookError, _domain_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(HTTPException, _http_error)
