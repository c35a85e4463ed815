"""
Application Middleware and Error Handlers for the Slacker API.

Cross-cutting request handling lives here so route modules only deal with
their own operation.

Key Components:
- `CorrelationMiddleware`: takes `X-Correlation-ID` / `X-Request-ID` from the
  request or generates a UUID, exposes it on `request.state`, puts it in the
  logging context, and echoes it back in the response.
- `PerformanceMiddleware`: logs request start and completion, adds
  `X-Process-Time`, and warns about requests slower than one second.
- `ErrorHandlingMiddleware`: last line of defence. Anything that escapes the
  route and the exception handlers becomes a 500 with a generic message and
  a full server-side log entry, so a request failure never takes the process
  down.
- `register_exception_handlers`: renders `SlackerAPIException`, request-body
  validation failures and framework HTTP errors as `{message, error}`. Store
  errors that escape a service become `ConflictError` (a uniqueness violation
  the service did not absorb) or `DatabaseConnectionError`.
"""

import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import (
    ConflictError,
    DatabaseConnectionError,
    SlackerAPIException,
    UpstreamError,
    to_error_response,
)
from .logging_config import get_logger, set_correlation_id

logger = get_logger("core.middleware")

SLOW_REQUEST_SECONDS = 1.0


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation IDs to requests"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = (
            request.headers.get("X-Correlation-ID")
            or request.headers.get("X-Request-ID")
            or str(uuid.uuid4())
        )
        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn unexpected exceptions into a generic 500 response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except SlackerAPIException as e:
            log_application_error(request, e)
            return to_error_response(e)
        except Exception as e:
            logger.error(
                f"Unexpected error: {e}",
                extra={
                    "error_type": type(e).__name__,
                    "path": request.url.path,
                    "method": request.method,
                },
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={
                    "message": "An unexpected error occurred",
                    "error": "INTERNAL_ERROR",
                },
            )


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for request timing and logging"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "query_params": dict(request.query_params),
                "client_ip": request.client.host if request.client else None,
            },
        )

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        process_time_ms = round(process_time * 1000, 2)
        response.headers["X-Process-Time"] = str(process_time_ms)

        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": process_time_ms,
            },
        )

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={"process_time_ms": process_time_ms, "threshold_exceeded": True},
            )

        return response


def log_application_error(request: Request, exc: SlackerAPIException) -> None:
    extra = {
        "error_type": type(exc).__name__,
        "error_code": exc.error_code,
        "details": exc.details,
        "path": request.url.path,
        "method": request.method,
    }
    if isinstance(exc, UpstreamError) or exc.status_code >= 500:
        logger.error(f"Application error: {exc.message}", extra=extra)
    else:
        logger.info(f"Request rejected: {exc.message}", extra=extra)


async def slacker_exception_handler(request: Request, exc: SlackerAPIException):
    log_application_error(request, exc)
    return to_error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    logger.info(
        f"Request validation failed: {message}",
        extra={"path": request.url.path, "errors": errors},
    )
    return JSONResponse(
        status_code=400, content={"message": message, "error": "VALIDATION_ERROR"}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail), "error": f"HTTP_{exc.status_code}"},
        headers=getattr(exc, "headers", None),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    return await slacker_exception_handler(request, ConflictError("Record", str(exc.orig)))


async def operational_error_handler(request: Request, exc: OperationalError):
    operation = f"{request.method} {request.url.path}"
    return await slacker_exception_handler(
        request, DatabaseConnectionError(operation, str(exc.orig))
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SlackerAPIException, slacker_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)
