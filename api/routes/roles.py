# SPDX-License-Identifier: Apache-2.0

"""
Role and department lookup endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from domain.authorization import (
    get_permission_description,
    get_role_display_name,
    get_role_permissions,
    get_role_with_department,
    get_roles_by_department,
    is_valid_role,
    list_departments,
    list_roles,
    DEPARTMENTS
)
from middleware.auth import require_permission
from middleware.error_handler import NotFoundException
from models.entities import UserContext
from models.requests import DepartmentPath, RolePath

tracer = trace.get_tracer(__name__)

roles_tag = Tag(name="Roles", description="Role table and departments")
roles_bp = APIBlueprint(
    'roles',
    __name__,
    url_prefix='/api/roles',
    abp_tags=[roles_tag]
)

COLLECTION_PATH = '/api/roles'


@roles_bp.get('')
@require_permission("role:read")
def get_roles(user_context: UserContext):
    """
    List every role with its display name, department and permissions.
    """
    with tracer.start_as_current_span("roles.list_roles") as span:
        roles = list_roles()
        span.set_attribute("roles.count", len(roles))
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_collection_response(roles, COLLECTION_PATH))


@roles_bp.get('/departments')
@require_permission("role:read")
def get_departments(user_context: UserContext):
    """
    List departments.
    """
    with tracer.start_as_current_span("roles.list_departments") as span:
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_collection_response(
            list_departments(), f"{COLLECTION_PATH}/departments"
        ))


@roles_bp.get('/department/<string:department>')
@require_permission("role:read")
def get_department_roles(user_context: UserContext, path: DepartmentPath):
    """
    Roles belonging to a department.
    """
    with tracer.start_as_current_span("roles.department_roles") as span:
        if path.department not in DEPARTMENTS:
            raise NotFoundException(f"Department {path.department} not found")

        span.set_attribute("roles.department", path.department)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_collection_response(
            get_roles_by_department(path.department),
            f"{COLLECTION_PATH}/department/{path.department}",
            extra={"department": path.department, "departmentName": DEPARTMENTS[path.department]}
        ))


@roles_bp.get('/<string:role>')
@require_permission("role:read")
def get_role(user_context: UserContext, path: RolePath):
    """
    A role's display name (with its department) and described permissions.
    """
    with tracer.start_as_current_span("roles.get_role") as span:
        if not is_valid_role(path.role):
            raise NotFoundException(f"Role {path.role} not found")

        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            {
                "role": path.role,
                "name": get_role_display_name(path.role),
                "displayName": get_role_with_department(path.role),
                "permissions": [
                    {"permission": p, "description": get_permission_description(p)}
                    for p in get_role_permissions(path.role)
                ]
            },
            COLLECTION_PATH,
            path.role
        ))
