"""
Global Error Handler Middleware
Catches all unhandled exceptions and returns structured error responses.
Known join failures are mapped to their status codes by join_error_handler.
"""
import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.exceptions import JoinResolutionError

logger = logging.getLogger(__name__)


async def join_error_handler(request: Request, exc: JoinResolutionError) -> JSONResponse:
    """
    Exception handler for JoinResolutionError and subclasses.

    Returns {"ok": false, "error": ...} with the error's status code.
    """
    log = logger.error if exc.status_code >= 500 else logger.info
    log(f"{request.method} {request.url.path} -> {exc.status_code} {type(exc).__name__}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.message}
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON / wrong field types are caller errors: 400, same shape as join errors."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    if first.get("type") == "json_invalid":
        message = "Invalid JSON body"
    elif location:
        message = f"Invalid '{location}': {message}"

    logger.info(f"{request.method} {request.url.path} -> 400 {message}")
    return JSONResponse(status_code=400, content={"ok": False, "error": message})


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Client exceeded the join rate limit: 429 in the join error shape."""
    logger.warning(f"{request.method} {request.url.path} -> 429 rate limit {exc.detail}")
    return JSONResponse(status_code=429, content={"ok": False, "error": f"Rate limit exceeded: {exc.detail}"})


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handler middleware.
    Catches all unhandled exceptions and returns JSON error responses.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except Exception as exc:
            # Log the full exception with traceback
            logger.error(
                f"Unhandled exception during request",
                exc_info=True,
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "client_host": request.client.host if request.client else None
                }
            )

            return JSONResponse(
                status_code=500,
                content={
                    "ok": False,
                    "error": "Internal server error",
                    "error_type": type(exc).__name__,
                    "path": request.url.path
                }
            )
