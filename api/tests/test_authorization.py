# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the role table and authorization checks.
"""

import pytest

from domain.authorization import (
    ROLES,
    can_view_employee,
    check_ownership,
    check_permission,
    get_permission_description,
    get_role_display_name,
    get_role_permissions,
    get_role_with_department,
    get_roles_by_department,
    is_elevated,
    is_valid_role,
    list_departments,
    list_roles
)
from conftest import make_context


class TestRoleTable:
    """Static roles and their permissions."""

    def test_base_role_cannot_manage(self):
        permissions = get_role_permissions("user")

        assert "client:read" in permissions
        assert "expense:create" in permissions
        assert not any(p.endswith(":manage_all") for p in permissions)
        assert "expense:approve" not in permissions
        assert "employee:manage" not in permissions

    @pytest.mark.parametrize("role", ["admin", "vice_admin", "executive"])
    def test_top_roles_hold_every_permission(self, role):
        permissions = set(get_role_permissions(role))

        assert {"client:manage_all", "expense:approve", "employee:manage", "employee:track"} <= permissions

    def test_every_role_includes_base_permissions(self):
        base = set(get_role_permissions("user"))
        for key in ROLES:
            assert base <= set(get_role_permissions(key)), key

    def test_unknown_role_has_no_permissions(self):
        assert get_role_permissions("janitor") == []
        assert not is_valid_role("janitor")

    def test_display_names(self):
        assert get_role_display_name("hr_manager") == "HR Manager"
        assert get_role_display_name("unknown_role") == "unknown_role"

    def test_role_with_department(self):
        assert get_role_with_department("sales_manager") == "Sales Manager - Sales"
        assert get_role_with_department("team_lead", "finance") == "Team Lead - Finance"
        assert get_role_with_department("team_lead") == "Team Lead"

    def test_list_roles_shape(self):
        roles = list_roles()

        assert len(roles) == len(ROLES)
        assert {"key", "displayName", "department", "permissions"} <= set(roles[0])

    def test_departments(self):
        keys = [d["key"] for d in list_departments()]

        assert keys == ["sales", "marketing", "hr", "finance", "it", "operations"]
        assert [r["key"] for r in get_roles_by_department("hr")] == ["hr_manager"]
        assert get_roles_by_department("legal") == []

    def test_permission_description_fallback(self):
        assert get_permission_description("expense:approve") == "Approve, reject and pay expenses"
        assert get_permission_description("x:y") == "Permission: x:y"


class TestChecks:
    """Permission, ownership and tenant checks."""

    def test_check_permission(self):
        user = make_context("user")

        assert check_permission(user, "client:read").allowed
        denied = check_permission(user, "expense:approve")
        assert not denied.allowed
        assert denied.missing_permissions == ["expense:approve"]

    def test_owner_allowed(self):
        user = make_context("user")

        assert check_ownership(user, user.user_id, "client").allowed

    def test_non_owner_denied(self):
        user = make_context("user")

        result = check_ownership(user, "someone-else", "client")

        assert not result.allowed
        assert result.missing_permissions == ["client:manage_all"]

    def test_missing_owner_denied_for_regular_user(self):
        assert not check_ownership(make_context("user"), None, "meeting").allowed

    def test_elevated_allowed_on_any_record(self):
        manager = make_context("sales_manager")

        assert is_elevated(manager, "client")
        assert check_ownership(manager, "someone-else", "client").allowed
        assert not is_elevated(manager, "expense")

    def test_view_employee(self):
        user = make_context("user")
        lead = make_context("team_lead")

        assert can_view_employee(user, user.user_id).allowed
        assert not can_view_employee(user, "other").allowed
        assert can_view_employee(lead, "other").allowed
