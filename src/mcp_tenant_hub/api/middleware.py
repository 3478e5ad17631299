"""
API middleware: request logging, body size ceiling and the error boundary.
"""

import time
from typing import Any, Callable, List, Optional

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mcp_tenant_hub.api.models import ErrorResponse
from mcp_tenant_hub.core.exceptions import MCPHubError
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Any] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Build the structured ``{error, message, timestamp}`` response."""
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
        headers=headers,
    )


async def hub_error_handler(request: Request, exc: MCPHubError) -> JSONResponse:
    """Translate service errors into structured responses."""
    if exc.status_code >= 500:
        logger.error("Request failed", extra={
            "method": request.method,
            "path": request.url.path,
            "error": str(exc),
            "error_type": type(exc).__name__,
        })
    return error_response(
        exc.status_code,
        exc.error_label,
        exc.message,
        details=exc.details or None,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400."""
    return error_response(
        400,
        "Bad Request",
        "Request validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep framework-raised HTTP errors (404 routes, 405) in the same shape."""
    return error_response(
        exc.status_code,
        str(exc.detail) if exc.status_code < 500 else "Internal Server Error",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


class BodySizeLimitMiddleware:
    """
    Rejects request bodies larger than the configured ceiling.

    A declared Content-Length is checked before the app runs. Bodies sent
    without one (chunked uploads) are read and counted up to the ceiling,
    then replayed to the app.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                response = error_response(400, "Bad Request", "Invalid Content-Length header")
                await response(scope, receive, send)
                return
            if declared > self.max_body_bytes:
                await self._reject(declared)(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        buffered: List[Message] = []
        received = 0
        while True:
            message = await receive()
            buffered.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > self.max_body_bytes:
                await self._reject(received)(scope, receive, send)
                return
            if not message.get("more_body", False):
                break

        async def replay() -> Message:
            if buffered:
                return buffered.pop(0)
            return await receive()

        await self.app(scope, replay, send)

    def _reject(self, size: int) -> JSONResponse:
        logger.warning("Request body too large", extra={
            "content_length": size,
            "limit": self.max_body_bytes,
        })
        return error_response(
            413,
            "Payload Too Large",
            f"Request body exceeds {self.max_body_bytes} bytes",
        )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request/response logging middleware."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log request and response details."""
        start_time = time.time()

        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        logger.info("API request completed", extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        })

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Global error boundary for exceptions no handler claimed."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Handle uncaught exceptions."""
        try:
            return await call_next(request)
        except Exception as e:
            logger.error("Unhandled API error", extra={
                "method": request.method,
                "path": request.url.path,
                "error": str(e),
                "error_type": type(e).__name__,
            }, exc_info=True)

            return error_response(
                500,
                "Internal Server Error",
                "An unexpected error occurred",
            )
