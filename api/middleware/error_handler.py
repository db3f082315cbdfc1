# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.

Every failure leaves the API as an RFC 7807 problem document: werkzeug HTTP
errors are mapped by status code, application exceptions carry their own
problem type, and anything else becomes an internal server error.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, List, Optional, Tuple
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from services.hal import HalFormatter, problem_title

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

# HTTP status -> problem type for errors raised through werkzeug (abort, routing)
HTTP_PROBLEM_TYPES: Dict[int, str] = {
    400: "bad-request",
    401: "authentication-required",
    403: "insufficient-permissions",
    404: "resource-not-found",
    405: "method-not-allowed",
    409: "resource-conflict",
    422: "validation-error",
    500: "internal-server-error",
    503: "service-unavailable",
}

UNEXPECTED_DETAIL = "An unexpected error occurred"


def is_production(app: Flask) -> bool:
    """Internal error text is hidden in production."""
    return app.config.get('ENVIRONMENT') == 'production'


class CustomException(Exception):
    """Base class for custom application exceptions."""

    status_code = 500
    error_type = "internal-server-error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def problem_detail(self, production: bool) -> str:
        return self.message

    def problem_errors(self) -> Optional[List[Dict[str, Any]]]:
        return None


class ValidationException(CustomException):
    """Request data failed validation. Carries one entry per offending field."""

    status_code = 400
    error_type = "validation-error"

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message)
        self.validation_errors = validation_errors or []

    def problem_errors(self) -> Optional[List[Dict[str, Any]]]:
        return self.validation_errors


class AuthenticationException(CustomException):
    status_code = 401
    error_type = "authentication-required"


class AuthorizationException(CustomException):
    status_code = 403
    error_type = "insufficient-permissions"


class NotFoundException(CustomException):
    status_code = 404
    error_type = "resource-not-found"


class ConflictException(CustomException):
    status_code = 409
    error_type = "resource-conflict"


class TransactionFailureException(CustomException):
    """A multi-document transaction was rolled back. Carries the underlying cause."""

    error_type = "transaction-failure"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    def problem_detail(self, production: bool) -> str:
        if self.cause is None or production:
            return self.message
        return f"{self.message}: {self.cause.__class__.__name__}: {self.cause}"


def _problem_response(
    hal_formatter: HalFormatter,
    error_type: str,
    status: int,
    detail: str,
    errors: Optional[List[Dict[str, Any]]] = None
) -> Tuple[Any, int]:
    problem = hal_formatter.format_error(error_type, status, detail, request.path, errors)
    response = jsonify(problem)
    response.mimetype = "application/problem+json"
    return response, status


def _annotate_span(span, error_type: str, status: int) -> None:
    span.set_attributes({
        "error.type": error_type,
        "error.status": status,
        "http.method": request.method,
        "http.path": request.path
    })
    if status >= 500:
        span.set_status(Status(StatusCode.ERROR, error_type))


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, base_url: str):
        self.app = app
        self.hal_formatter = HalFormatter(base_url)
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register one handler per mapped status plus a catch-all."""
        for status in HTTP_PROBLEM_TYPES:
            self.app.register_error_handler(status, self.handle_http_error)
        self.app.register_error_handler(Exception, self.handle_exception)

    def handle_exception(self, error: Exception):
        if isinstance(error, HTTPException):
            return self.handle_http_error(error)
        return self.handle_unexpected_error(error)

    def handle_http_error(self, error: HTTPException):
        """Map a werkzeug HTTP error onto its problem type."""
        status = error.code or 500
        error_type = HTTP_PROBLEM_TYPES.get(status, "http-error")
        detail = str(error.description) if error.description else problem_title(error_type)

        with tracer.start_as_current_span("error_handler.http_error") as span:
            _annotate_span(span, error_type, status)

            if status >= 500:
                logger.error(
                    f"Server error: {error_type}",
                    extra={"error_type": error_type, "status_code": status, "detail": detail,
                           "path": request.path, "method": request.method},
                    exc_info=True
                )
                if is_production(self.app):
                    detail = "An internal server error occurred"
            else:
                logger.warning(
                    f"Client error: {error_type}",
                    extra={"error_type": error_type, "status_code": status, "detail": detail,
                           "path": request.path, "method": request.method,
                           "ip_address": request.remote_addr}
                )

            return _problem_response(self.hal_formatter, error_type, status, detail)

    def handle_unexpected_error(self, error: Exception):
        """Anything that escaped the routes and services."""
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            _annotate_span(span, "internal-server-error", 500)
            span.set_attribute("error.class", error.__class__.__name__)
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={"error_class": error.__class__.__name__, "error_message": str(error),
                       "path": request.path, "method": request.method},
                exc_info=True
            )

            detail = UNEXPECTED_DETAIL
            if not is_production(self.app):
                detail = f"{error.__class__.__name__}: {error}"

            return _problem_response(self.hal_formatter, "internal-server-error", 500, detail)


def register_custom_error_handlers(app: Flask, hal_formatter: HalFormatter):
    """Render application exceptions as problem documents of their own type."""

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            _annotate_span(span, error.error_type, error.status_code)

            log = logger.error if error.status_code >= 500 else logger.warning
            log(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            return _problem_response(
                hal_formatter,
                error.error_type,
                error.status_code,
                error.problem_detail(is_production(app)),
                error.problem_errors()
            )
