"""Exception handlers.

Render every error as ``{error_code, message, details, request_id}``.
"""

from typing import Any

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from storeapi.domain.exceptions import StoreApiError

logger = structlog.get_logger()


def error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    """Build an error response in the standard format."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details if details is not None else {},
            "request_id": getattr(request.state, "request_id", None),
        },
    )


async def store_api_error_handler(request: Request, exc: StoreApiError) -> JSONResponse:
    """Handle errors raised by the services."""
    log = logger.error if exc.status >= 500 else logger.warning
    log(
        "Request failed",
        path=request.url.path,
        method=request.method,
        error_code=exc.code,
        error=exc.message,
    )
    return error_response(request, exc.status, exc.code, exc.message, exc.details)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request schema violations as 400 ``rest_invalid_param``."""
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    invalid = sorted({d["field"].split(".")[-1] or "body" for d in details})
    return error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "rest_invalid_param",
        f"Invalid parameter(s): {', '.join(invalid)}",
        details,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", {})
    else:
        error_code = "ERROR"
        message = str(detail)
        details = {}
    return error_response(request, exc.status_code, error_code, message, details)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An internal error occurred",
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the exception handlers on the application.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(StoreApiError, store_api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
