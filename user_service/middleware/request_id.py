"""
User Service — Request ID Middleware
======================================

What:  Assigns a correlation id to each request, returns it in the
       X-Request-ID response header and tags the request's server span
       with it.
How:   Reuses a client-supplied X-Request-ID or generates a short UUID and
       stores it in a ContextVar for loggers and error handlers. The
       catch-all handler in main.py reads the same ContextVar to set the
       header on crash responses, which are built outside this middleware.

Searching the collector for `http.request_id` finds the trace behind an
id a client reports.
"""

import uuid
from contextvars import ContextVar

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_ATTRIBUTE = "http.request_id"

# Coroutine-local: concurrent requests on the same thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request_id_var.set(rid)

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute(REQUEST_ID_ATTRIBUTE, rid)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
