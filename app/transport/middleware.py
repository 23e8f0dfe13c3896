# app/transport/middleware.py
import logging
import re
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from app.infra.logging_config import get_logger, LogContext

logger = get_logger(__name__)

# Probes hit these constantly; logging them only adds noise
QUIET_PATHS = frozenset({"/health"})

MAX_REQUEST_ID_LENGTH = 128

_ANIMAL_PATH = re.compile(r"^/animals/([^/]+)/")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate or assign a request ID for tracing"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get("X-Request-ID", "").strip()
        request_id = incoming[:MAX_REQUEST_ID_LENGTH] if incoming else str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request: method, path, status, duration (and animal id on /animals routes)"""

    def __init__(self, app: ASGIApp, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not self.enabled or path in QUIET_PATHS:
            return await call_next(request)

        match = _ANIMAL_PATH.match(path)
        log_ctx = LogContext(
            logger,
            request_id=getattr(request.state, "request_id", "unknown"),
            animal_id=match.group(1) if match else None,
        )
        fields = {"method": request.method, "path": path}
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            fields["duration_ms"] = (time.perf_counter() - start) * 1000
            fields["error_type"] = exc.__class__.__name__
            log_ctx.error(
                f"{request.method} {path} raised {exc.__class__.__name__} "
                f"({fields['duration_ms']:.2f}ms)",
                extra=fields,
                exc_info=True,
            )
            raise

        fields["duration_ms"] = (time.perf_counter() - start) * 1000
        fields["status_code"] = response.status_code
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        log_ctx.log(
            level,
            f"{request.method} {path} -> {response.status_code} ({fields['duration_ms']:.2f}ms)",
            extra=fields,
        )
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Last-resort handler: generic JSON 500 carrying the request ID"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            request_id = getattr(request.state, "request_id", "unknown")

            logger.error(
                f"Unhandled exception: {exc.__class__.__name__}: {exc}",
                extra={"request_id": request_id},
                exc_info=True
            )

            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "request_id": request_id,
                }
            )
