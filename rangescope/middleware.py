"""Request middleware for tracing, principal context and logging."""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from rangescope.logging import bind_context, clear_context, get_logger
from rangescope.metrics import record_request
from rangescope.roles import resolve_role

logger = get_logger(__name__)

PRINCIPAL_HEADER = "X-Principal-ID"
ROLE_HEADER = "X-Team-Role"
CORRELATION_HEADER = "X-Correlation-ID"


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Attach request ids and the caller's identity to every log line.

    The principal and team role headers are set by the upstream auth gateway;
    this middleware only records them, authorization happens in the guard.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid.uuid4().hex[:8]
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex[:8]
        principal_id = request.headers.get(PRINCIPAL_HEADER)
        team_role = resolve_role(request.headers.get(ROLE_HEADER)).value

        clear_context()
        bind_context(
            request_id=request_id,
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
            principal_id=principal_id,
            team_role=team_role,
        )
        request.state.request_id = request_id
        request.state.correlation_id = correlation_id

        logger.info(
            "request_started",
            client_host=request.client.host if request.client else None,
        )
        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration = time.perf_counter() - start
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            if not request.url.path.startswith("/metrics"):
                record_request(
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration=duration,
                )
            response.headers["X-Request-ID"] = request_id
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise
        finally:
            clear_context()
