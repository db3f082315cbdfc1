"""
Observability Middleware

Request timing, access logging and trace correlation for the Flask app.
Every response carries the trace id in ``X-Trace-Id`` when a span is
recording, and each access log line names the caller once authenticated.
"""

import time
import logging
from flask import Flask, request, g
from opentelemetry import trace
from opentelemetry.instrumentation.flask import FlaskInstrumentor

logger = logging.getLogger(__name__)


def _access_log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def _caller() -> dict:
    """User and organization of the authenticated caller, if any."""
    user_context = g.get('user_context')
    if user_context is None:
        return {}
    return {"user_id": user_context.user_id, "organization_id": user_context.org_id}


def add_observability_middleware(app: Flask, instrument: bool = True):
    """Install request hooks. ``instrument`` also enables FlaskInstrumentor spans."""

    if instrument:
        FlaskInstrumentor().instrument_app(app)

    @app.before_request
    def start_request_timer():
        g.request_started = time.perf_counter()
        span_context = trace.get_current_span().get_span_context()
        g.trace_id = format(span_context.trace_id, "032x") if span_context.is_valid else None

    @app.after_request
    def log_request(response):
        started = g.get('request_started')
        duration_ms = round((time.perf_counter() - started) * 1000, 2) if started else 0.0

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("http.duration_ms", duration_ms)
            for key, value in _caller().items():
                span.set_attribute(f"crm.{key}", value)

        logger.log(
            _access_log_level(response.status_code),
            f"{request.method} {request.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.remote_addr,
                "trace_id": g.get('trace_id'),
                **_caller()
            }
        )

        if g.get('trace_id'):
            response.headers['X-Trace-Id'] = g.trace_id

        return response
