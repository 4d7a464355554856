from __future__ import annotations
import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("apigateway")
tracer = trace.get_tracer("apigateway")


def _trace_id(span: trace.Span, fallback: Optional[str]) -> str:
    ctx = span.get_span_context()
    if ctx.is_valid:
        return format(ctx.trace_id, "032x")
    # no SDK installed: the no-op span carries an all-zero id
    return fallback or uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request/trace ids on request.state and response headers, one span and two log lines per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        route = f"{request.method} {request.url.path}"

        with tracer.start_as_current_span("http.request") as span:
            trace_id = _trace_id(span, request.headers.get("x-trace-id"))
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.target", request.url.path)
            span.set_attribute("request.id", request_id)

            request.state.request_id = request_id
            request.state.trace_id = trace_id
            request.state.started_at = started
            logger.info("request.start route=%r request_id=%s trace_id=%s", route, request_id, trace_id)

            try:
                response = await call_next(request)
            except Exception:
                logger.exception("request.exception route=%r request_id=%s duration_ms=%s",
                                 route, request_id, int((time.perf_counter() - started) * 1000))
                raise

            span.set_attribute("http.status_code", response.status_code)
            response.headers["x-request-id"] = request_id
            response.headers["x-trace-id"] = trace_id
            logger.info("request.end route=%r status=%s request_id=%s duration_ms=%s",
                        route, response.status_code, request_id, int((time.perf_counter() - started) * 1000))
            return response
