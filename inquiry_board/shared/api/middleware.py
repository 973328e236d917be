"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.
"""

import logging
import time
import uuid
from typing import Callable
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse

from inquiry_board.core import (
    ApplicationException,
    ExternalServiceException,
    InvalidTransitionException,
    ResourceNotFoundException,
    ValidationException,
)
from inquiry_board.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    The ID is echoed back so an operator can match a UI action to the
    transition log lines it produced.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its status code and latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = getattr(request.state, "correlation_id", "unknown")
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


def _error_body(request: Request, detail: str, extra: dict | None = None) -> dict:
    return {
        "detail": detail,
        "correlation_id": getattr(request.state, "correlation_id", "unknown"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **(extra or {}),
    }


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """Map domain errors onto HTTP status codes."""
    if isinstance(exc, ResourceNotFoundException):
        status_code = 404
    elif isinstance(exc, InvalidTransitionException):
        status_code = 409
    elif isinstance(exc, ValidationException):
        status_code = 400
    elif isinstance(exc, ExternalServiceException):
        status_code = 502
    else:
        status_code = 500

    logger.warning(
        "Request rejected",
        extra={
            "path": request.url.path,
            "status_code": status_code,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
        }
    )
    return JSONResponse(
        status_code=status_code,
        content=_error_body(request, exc.message, {"details": exc.details}),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
    """
    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    # Don't expose internal details in production
    settings = getattr(request.app.state, "settings", None)
    is_dev = getattr(settings, "environment", None) == "development"

    return JSONResponse(
        status_code=500,
        content=_error_body(
            request,
            "Internal server error",
            {"debug_info": str(exc) if is_dev else None},
        ),
    )


def install_middleware(app: FastAPI) -> None:
    """Register middleware and exception handlers on the application."""
    # Last added runs outermost; the correlation id must exist before logging reads it
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
