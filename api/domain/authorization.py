# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for role-based access control.

This module contains the static role table and pure functions for
permission lookup, ownership checks and organization scoping.
"""

from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field

from models.entities import UserContext


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None
    missing_permissions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RoleDefinition:
    """Static role entry."""
    key: str
    display_name: str
    permissions: frozenset
    department: Optional[str] = None


DEPARTMENTS: Dict[str, str] = {
    "sales": "Sales",
    "marketing": "Marketing",
    "hr": "Human Resources",
    "finance": "Finance",
    "it": "Information Technology",
    "operations": "Operations",
}

BASE_PERMISSIONS = frozenset({
    "client:read", "client:create", "client:update", "client:delete",
    "meeting:read", "meeting:create", "meeting:update", "meeting:delete",
    "project:read", "project:create", "project:update", "project:delete",
    "expense:read", "expense:create", "expense:update", "expense:delete",
    "report:read",
    "role:read",
})

ALL_PERMISSIONS = BASE_PERMISSIONS | frozenset({
    "client:manage_all",
    "meeting:manage_all",
    "project:manage_all",
    "expense:manage_all",
    "expense:approve",
    "employee:manage",
    "employee:track",
})


def _role(key: str, display_name: str, extra: set = frozenset(), department: Optional[str] = None) -> RoleDefinition:
    return RoleDefinition(key, display_name, BASE_PERMISSIONS | frozenset(extra), department)


ROLES: Dict[str, RoleDefinition] = {
    role.key: role for role in [
        _role("user", "User"),
        RoleDefinition("admin", "Administrator", ALL_PERMISSIONS),
        RoleDefinition("vice_admin", "Vice Administrator", ALL_PERMISSIONS),
        RoleDefinition("executive", "Executive", ALL_PERMISSIONS),
        _role("senior_manager", "Senior Manager", {
            "client:manage_all", "meeting:manage_all", "project:manage_all",
            "expense:approve", "employee:track"
        }),
        _role("sales_manager", "Sales Manager", {
            "client:manage_all", "meeting:manage_all", "employee:track"
        }, "sales"),
        _role("marketing_manager", "Marketing Manager", {"client:manage_all"}, "marketing"),
        _role("hr_manager", "HR Manager", {"employee:manage", "employee:track"}, "hr"),
        _role("finance_manager", "Finance Manager", {"expense:approve", "expense:manage_all"}, "finance"),
        _role("it_manager", "IT Manager", {"employee:manage"}, "it"),
        _role("operations_manager", "Operations Manager", {"project:manage_all", "employee:track"}, "operations"),
        _role("project_manager", "Project Manager", {"project:manage_all"}),
        _role("team_lead", "Team Lead", {"employee:track"}),
        _role("assistant_manager", "Assistant Manager", {"employee:track"}),
    ]
}


def is_valid_role(role: str) -> bool:
    """Check whether a role key exists in the role table."""
    return role in ROLES


def get_role_permissions(role: str) -> List[str]:
    """
    Permissions granted by a role.

    Args:
        role: Role key

    Returns:
        Sorted permission list; unknown roles get no permissions
    """
    definition = ROLES.get(role)
    if definition is None:
        return []
    return sorted(definition.permissions)


def get_role_display_name(role: str) -> str:
    """Human-readable role name, falling back to the key."""
    definition = ROLES.get(role)
    return definition.display_name if definition else role


def get_role_with_department(role: str, department: Optional[str] = None) -> str:
    """Display as "Role - Department" when a department is known."""
    department = department or (ROLES[role].department if role in ROLES else None)
    display = get_role_display_name(role)
    if department and department in DEPARTMENTS:
        return f"{display} - {DEPARTMENTS[department]}"
    return display


def list_roles() -> List[Dict[str, Any]]:
    """All roles with display names, departments and permissions."""
    return [
        {
            "key": role.key,
            "displayName": role.display_name,
            "department": role.department,
            "permissions": sorted(role.permissions),
        }
        for role in ROLES.values()
    ]


def list_departments() -> List[Dict[str, str]]:
    """All departments as key/name pairs."""
    return [{"key": key, "name": name} for key, name in DEPARTMENTS.items()]


def get_roles_by_department(department: str) -> List[Dict[str, Any]]:
    """Roles that belong to a department."""
    return [role for role in list_roles() if role["department"] == department]


def check_permission(user_context: UserContext, required_permission: str) -> AuthorizationResult:
    """
    Check if user has a specific permission.

    Args:
        user_context: User context with permissions
        required_permission: Permission string to check

    Returns:
        AuthorizationResult indicating if permission is granted
    """
    if required_permission in user_context.permissions:
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Missing required permission: {required_permission}",
        missing_permissions=[required_permission]
    )


def is_elevated(user_context: UserContext, resource: str) -> bool:
    """Whether the user may act on every record of a resource in the tenant."""
    return user_context.has_permission(f"{resource}:manage_all")


def check_ownership(user_context: UserContext, owner_id: Optional[str], resource: str) -> AuthorizationResult:
    """
    Check that the user owns a record or holds elevated privilege over its resource.

    Args:
        user_context: Requesting user
        owner_id: Creator (or owner) recorded on the document
        resource: Resource name used for the elevated permission

    Returns:
        AuthorizationResult indicating if access is granted
    """
    if owner_id is not None and owner_id == user_context.user_id:
        return AuthorizationResult(allowed=True)

    if is_elevated(user_context, resource):
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Not authorized to access this {resource}",
        missing_permissions=[f"{resource}:manage_all"]
    )


def can_view_employee(user_context: UserContext, employee_id: str) -> AuthorizationResult:
    """Employees may read their own tracking data; others need employee:track."""
    if employee_id == user_context.user_id:
        return AuthorizationResult(allowed=True)
    return check_permission(user_context, "employee:track")


def get_permission_description(permission: str) -> str:
    """
    Get human-readable description for a permission.

    Args:
        permission: Permission string (e.g., "expense:approve")

    Returns:
        Human-readable description
    """
    permission_descriptions = {
        "client:read": "View own clients",
        "client:create": "Create clients with locations and contacts",
        "client:update": "Edit own clients",
        "client:delete": "Delete own clients and everything they own",
        "client:manage_all": "Manage every client in the organization",
        "meeting:read": "View meetings",
        "meeting:create": "Schedule meetings",
        "meeting:update": "Edit meetings",
        "meeting:delete": "Delete meetings",
        "meeting:manage_all": "Manage every meeting in the organization",
        "project:read": "View projects",
        "project:create": "Create projects",
        "project:update": "Edit projects",
        "project:delete": "Delete projects",
        "project:manage_all": "Manage every project in the organization",
        "expense:read": "View own expenses",
        "expense:create": "Submit expenses",
        "expense:update": "Edit pending expenses",
        "expense:delete": "Delete own expenses",
        "expense:approve": "Approve, reject and pay expenses",
        "expense:manage_all": "View every expense in the organization",
        "employee:manage": "Create and remove employee accounts",
        "employee:track": "View employee movement and presence",
        "report:read": "View dashboard reports",
        "role:read": "View the role table",
    }

    return permission_descriptions.get(permission, f"Permission: {permission}")
