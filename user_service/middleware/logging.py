"""
User Service — Request Logging Middleware
===========================================

What:  One access log line per request, including requests whose handler
       crashed: method, path, status, duration, request id, trace id and
       client ip.
How:   Times the call to call_next. A response picks the level from its
       status class (5xx ERROR, 4xx WARNING, otherwise INFO). An exception
       escaping the handler is logged as an ERROR with status 500 and then
       re-raised for the catch-all handler in main.py.

The trace id is read from the server span opened by the OpenTelemetry
middleware, so a log line can be looked up in the collector directly.
Request and response bodies are never logged.
"""

import logging
import time

from opentelemetry import trace
from opentelemetry.trace import format_trace_id
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from user_service.middleware.request_id import request_id_var

logger = logging.getLogger("user_service.access")


def current_trace_id() -> str:
    """Hex trace id of the active span, or "-" outside a trace."""
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return "-"
    return format_trace_id(span_context.trace_id)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request, correlated by request id and trace id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        entry = {
            "request_id": request_id_var.get(""),
            "trace_id": current_trace_id(),
            "method": request.method,
            "path": request.url.path,
            # request.client is None under some test transports
            "client_ip": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception as exc:
            # The catch-all handler answers 500 outside this middleware
            self._log(logging.ERROR, entry, 500, start_time, error=type(exc).__name__)
            raise

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        self._log(log_level, entry, status, start_time)
        return response

    @staticmethod
    def _log(level: int, entry: dict, status: int, start_time: float, error: str = "") -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.log(
            level,
            "%s %s %d %.1fms [%s] trace=%s from %s%s",
            entry["method"],
            entry["path"],
            status,
            duration_ms,
            entry["request_id"],
            entry["trace_id"],
            entry["client_ip"],
            f" ({error})" if error else "",
            extra={
                **entry,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "error": error or None,
            },
        )
