# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints: registration, login, logout, token refresh and
employee account administration.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from domain.authorization import get_role_display_name, get_role_permissions
from middleware.auth import require_auth, require_permission
from middleware.error_handler import AuthenticationException
from middleware.validation import parse_body, parse_optional_body
from models.entities import User, UserContext
from models.enums import LocationEventType
from models.requests import (
    EmployeePath,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    RegisterEmployeeRequest,
    RegisterRequest
)
from services.auth import TokenValidationError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

auth_tag = Tag(name="Authentication", description="User authentication and token management")
auth_bp = APIBlueprint(
    'auth',
    __name__,
    url_prefix='/api/auth',
    abp_tags=[auth_tag]
)

COLLECTION_PATH = '/api/auth'
EMPLOYEES_PATH = '/api/auth/employees'


def _context_for(user: User) -> UserContext:
    """User context for a user who has just proven their credentials."""
    request_info = current_app.auth_middleware.get_request_info()
    return UserContext(
        user_id=user.id,
        org_id=user.organization_id,
        email=user.email,
        name=user.name,
        role=user.role,
        permissions=get_role_permissions(user.role),
        ip_address=request_info.get("ip_address"),
        user_agent=request_info.get("user_agent"),
        session_id=request_info.get("session_id")
    )


def _session_response(user: User, tokens: dict) -> dict:
    return current_app.hal_formatter.format_resource(
        {"user": user.to_public_dict(), **tokens},
        COLLECTION_PATH,
        actions={
            "me": ("me", "GET"),
            "refresh": ("refresh", "POST"),
            "logout": ("logout", "POST")
        }
    )


@auth_bp.post('/register')
def register():
    """
    Register a new user account with the base role.
    """
    with tracer.start_as_current_span("auth.register") as span:
        register_request = parse_body(RegisterRequest)
        user = current_app.user_service.register(
            register_request, current_app.config['DEFAULT_ORGANIZATION_ID']
        )
        tokens = current_app.auth_service.generate_tokens(user)

        span.set_attribute("user.id", user.id)
        span.set_status(Status(StatusCode.OK))
        return jsonify(_session_response(user, tokens)), 201


@auth_bp.post('/register-employee')
@require_permission("employee:manage")
def register_employee(user_context: UserContext):
    """
    Create an employee account with a role from the role table.
    """
    with tracer.start_as_current_span("auth.register_employee") as span:
        employee_request = parse_body(RegisterEmployeeRequest)
        user = current_app.user_service.register_employee(employee_request, user_context)

        span.set_attributes({"user.id": user.id, "user.role": user.role})
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(user.to_public_dict(), EMPLOYEES_PATH)), 201


@auth_bp.post('/login')
def login():
    """
    Authenticate user and return JWT tokens.

    Coordinates sent with the credentials are stored as a login location sample.
    """
    with tracer.start_as_current_span(
        "auth.login",
        attributes={"operation": "login", "ip_address": request.remote_addr or ""}
    ) as span:
        login_request = parse_body(LoginRequest)
        user = current_app.user_service.authenticate(login_request.email, login_request.password)
        tokens = current_app.auth_service.generate_tokens(user)

        if login_request.has_fix():
            current_app.location_service.record_sample(
                user.id,
                user.organization_id,
                login_request.latitude,
                login_request.longitude,
                login_request.accuracy,
                event_type=LocationEventType.LOGIN
            )

        current_app.audit_service.log_action(_context_for(user), "user", user.id, "login")

        span.set_attributes({"user.id": user.id, "organization.id": user.organization_id})
        span.set_status(Status(StatusCode.OK))
        logger.info(
            "User logged in",
            extra={"user_id": user.id, "organization_id": user.organization_id, "ip_address": request.remote_addr}
        )
        return jsonify(_session_response(user, tokens))


@auth_bp.post('/logout')
@require_auth
def logout(user_context: UserContext):
    """
    Revoke the current access token.

    Coordinates sent with the request are stored as a logout location sample.
    """
    with tracer.start_as_current_span("auth.logout") as span:
        logout_request = parse_optional_body(LogoutRequest)

        token = current_app.auth_middleware.extract_token_from_request()
        exp = (user_context.token_payload or {}).get("exp", 0)
        token_id = current_app.auth_service.extract_token_id(token)
        revoked = current_app.redis_service.add_to_blocklist(token_id, exp)

        if logout_request.has_fix():
            current_app.location_service.record_sample(
                user_context.user_id,
                user_context.org_id,
                logout_request.latitude,
                logout_request.longitude,
                logout_request.accuracy,
                event_type=LocationEventType.LOGOUT
            )

        current_app.audit_service.log_action(user_context, "user", user_context.user_id, "logout")

        span.set_attributes({"user.id": user_context.user_id, "auth.token_revoked": revoked})
        span.set_status(Status(StatusCode.OK))
        return jsonify({"message": "Logged out successfully", "tokenRevoked": revoked})


@auth_bp.post('/refresh')
def refresh():
    """
    Exchange a refresh token for a new access token.
    """
    with tracer.start_as_current_span("auth.refresh") as span:
        refresh_request = parse_body(RefreshTokenRequest)
        try:
            result = current_app.auth_service.refresh_access_token(refresh_request.refresh_token)
        except TokenValidationError as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise AuthenticationException(str(e))

        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(result, f"{COLLECTION_PATH}/refresh"))


@auth_bp.get('/me')
@require_auth
def me(user_context: UserContext):
    """
    Current user profile with permissions and role display name.
    """
    with tracer.start_as_current_span("auth.me") as span:
        user = current_app.user_service.get_user(user_context.user_id, user_context.org_id)
        data = user.to_public_dict()
        data["permissions"] = get_role_permissions(user.role)
        data["roleDisplayName"] = get_role_display_name(user.role)

        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(data, EMPLOYEES_PATH))


@auth_bp.get('/employees')
@require_permission("employee:manage")
def list_employees(user_context: UserContext):
    """
    All employees of the organization, without password hashes.
    """
    with tracer.start_as_current_span("auth.list_employees") as span:
        employees = current_app.user_service.list_employees(user_context)
        span.set_attribute("employees.count", len(employees))
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_collection(
            employees, EMPLOYEES_PATH, actions={"delete": ("", "DELETE")}
        ))


@auth_bp.delete('/employees/<string:employee_id>')
@require_permission("employee:manage")
def delete_employee(user_context: UserContext, path: EmployeePath):
    """
    Delete an employee account. Administrators cannot delete themselves.
    """
    with tracer.start_as_current_span("auth.delete_employee") as span:
        current_app.user_service.delete_employee(path.employee_id, user_context)
        span.set_attribute("employee.id", path.employee_id)
        span.set_status(Status(StatusCode.OK))
        return jsonify({"message": "Employee deleted successfully", "id": path.employee_id})
