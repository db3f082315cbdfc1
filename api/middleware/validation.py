# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation helpers using Pydantic models.
Validation failures surface as ValidationException and render as 400 problem documents.
"""

from flask import request, jsonify, current_app
from typing import Type, TypeVar, Dict, Any, List, Optional
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from middleware.error_handler import ValidationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_JSON_SCALARS = (str, int, float, bool, type(None))


def format_validation_errors(validation_error: ValidationError) -> List[Dict[str, Any]]:
    """
    Format Pydantic validation errors for API response.

    Args:
        validation_error: Pydantic ValidationError

    Returns:
        List of formatted error dictionaries
    """
    errors = []

    for error in validation_error.errors():
        field_path = ".".join(str(loc) for loc in error["loc"]) or "body"
        value = error.get("input")
        errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"],
            "input": value if isinstance(value, _JSON_SCALARS) else None
        })

    return errors


def validate_model(model_class: Type[M], data: Any, detail: Optional[str] = None) -> M:
    """
    Validate data against a model, raising ValidationException on failure.

    Args:
        model_class: Pydantic model class
        data: Mapping to validate
        detail: Problem detail message

    Returns:
        Validated model instance
    """
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        validation_errors = format_validation_errors(e)
        logger.warning(
            "Validation failed",
            extra={"model": model_class.__name__, "errors": validation_errors}
        )
        raise ValidationException(detail or f"Validation failed for {model_class.__name__}", validation_errors)


def parse_body(model_class: Type[M]) -> M:
    """
    Parse and validate the JSON request body.

    Args:
        model_class: Pydantic model class for validation

    Returns:
        Validated model instance

    Raises:
        ValidationException: Missing, malformed or invalid body
    """
    with tracer.start_as_current_span("validation.parse_body") as span:
        span.set_attributes({
            "validation.model": model_class.__name__,
            "http.method": request.method,
            "http.path": request.path
        })

        json_data = request.get_json(silent=True)
        if not isinstance(json_data, dict):
            span.set_attribute("validation.result", "invalid_json")
            raise ValidationException(
                "Request body must be a JSON object",
                [{
                    "field": "body",
                    "message": "Expected a JSON object",
                    "type": "json_error",
                    "input": None
                }]
            )

        model = validate_model(model_class, json_data, f"Request validation failed for {model_class.__name__}")
        span.set_attribute("validation.result", "success")
        return model


def parse_optional_body(model_class: Type[M]) -> M:
    """Like parse_body, but an absent body validates as an empty object."""
    if not request.get_data():
        return validate_model(model_class, {})
    return parse_body(model_class)


def request_validation_error(validation_error: ValidationError):
    """Render path and query parameter validation failures as problem documents."""
    validation_errors = format_validation_errors(validation_error)
    logger.warning(
        "Request parameter validation failed",
        extra={"path": request.path, "method": request.method, "errors": validation_errors}
    )
    response = jsonify(current_app.hal_formatter.format_validation_error(
        "Request parameter validation failed",
        request.path,
        validation_errors
    ))
    response.mimetype = "application/problem+json"
    response.status_code = getattr(current_app, "validation_error_status", 400)
    return response
