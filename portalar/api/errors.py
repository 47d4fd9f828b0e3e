"""Renders every failure as the same JSON error document."""

from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from portalar.core.config import Settings
from portalar.core.errors import AppError, AuthenticationError, RateLimitError

logger = structlog.get_logger()

GENERIC_SERVER_MESSAGE = "An unexpected error occurred"


def error_name(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def error_body(request: Request, status_code: int, message: str, details: Any = None) -> dict:
    body = {
        "error": error_name(status_code),
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
    }
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        message, details = exc.message, exc.details
        headers = None

        if exc.status_code >= 500:
            logger.error(
                "request_failed",
                error_type=type(exc).__name__,
                error=exc.message,
                details=exc.details,
                path=request.url.path,
                method=request.method
            )
            if settings.is_production:
                message, details = GENERIC_SERVER_MESSAGE, None
        elif isinstance(exc, AuthenticationError):
            logger.info("authentication_failed", reason=exc.reason, path=request.url.path)
            headers = {"WWW-Authenticate": "Bearer"}
        elif isinstance(exc, RateLimitError):
            headers = {"Retry-After": str(exc.retry_after)}

        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(request, exc.status_code, message, details),
            headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "loc": [str(part) for part in err.get("loc", ())],
                "msg": err.get("msg"),
                "type": err.get("type"),
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=error_body(request, 400, "Validation failed", details)
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = f"Route {request.method} {request.url.path} does not exist"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(request, exc.status_code, message),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_error",
            error_type=type(exc).__name__,
            error=str(exc),
            path=request.url.path,
            method=request.method,
            exc_info=exc
        )
        message = GENERIC_SERVER_MESSAGE if settings.is_production else str(exc)
        return JSONResponse(
            status_code=500,
            content=error_body(request, 500, message)
        )
