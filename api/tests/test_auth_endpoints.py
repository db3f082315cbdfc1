# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for authentication and employee administration endpoints.
"""

import json

from conftest import ORG_ID, OTHER_ORG_ID, bearer, seed_user


class TestRegistrationAndLogin:
    """Self registration, login and tokens."""

    def test_register_creates_base_user(self, client, store):
        response = client.post('/api/auth/register', json={
            "name": "Rita Sales",
            "email": "Rita@Example.com",
            "password": "secret123"
        })

        assert response.status_code == 201
        data = json.loads(response.data)
        assert data["user"]["email"] == "rita@example.com"
        assert data["user"]["role"] == "user"
        assert data["user"]["organizationId"] == ORG_ID
        assert "passwordHash" not in data["user"]
        assert data["access_token"]
        assert data["_links"]["me"]["method"] == "GET"
        assert store.collections["users"][0]["passwordHash"] != "secret123"

    def test_register_duplicate_email_conflicts(self, client, store, auth_service):
        seed_user(store, auth_service, email="taken@example.com")

        response = client.post('/api/auth/register', json={
            "name": "Someone", "email": "taken@example.com", "password": "secret123"
        })

        assert response.status_code == 409

    def test_register_invalid_body(self, client):
        response = client.post('/api/auth/register', json={"name": "", "email": "nope", "password": "1"})

        assert response.status_code == 400
        data = json.loads(response.data)
        fields = {e["field"] for e in data["errors"]}
        assert {"name", "email", "password"} <= fields

    def test_register_requires_json_object(self, client):
        response = client.post('/api/auth/register', data="not json", content_type="text/plain")

        assert response.status_code == 400
        assert json.loads(response.data)["errors"][0]["field"] == "body"

    def test_login_success_records_location(self, client, store, auth_service):
        user = seed_user(store, auth_service, email="field@example.com")

        response = client.post('/api/auth/login', json={
            "email": "FIELD@example.com",
            "password": "secret123",
            "latitude": 19.07,
            "longitude": 72.87
        })

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["user"]["id"] == user.id
        samples = store.collections["location_samples"]
        assert len(samples) == 1
        assert samples[0]["eventType"] == "login"
        audit = store.collections["audit_logs"][0]
        assert (audit["entity"], audit["action"]) == ("user", "login")

    def test_login_without_coordinates_stores_no_sample(self, client, store, auth_service):
        seed_user(store, auth_service, email="field@example.com")

        response = client.post('/api/auth/login', json={"email": "field@example.com", "password": "secret123"})

        assert response.status_code == 200
        assert store.count("location_samples") == 0

    def test_login_wrong_password(self, client, store, auth_service):
        seed_user(store, auth_service, email="field@example.com")

        response = client.post('/api/auth/login', json={"email": "field@example.com", "password": "wrong"})

        assert response.status_code == 401
        data = json.loads(response.data)
        assert data["detail"] == "Invalid credentials"
        assert "login" in data["_links"]

    def test_login_unknown_email_same_answer(self, client):
        response = client.post('/api/auth/login', json={"email": "ghost@example.com", "password": "x"})

        assert response.status_code == 401
        assert json.loads(response.data)["detail"] == "Invalid credentials"

    def test_refresh(self, client, store, auth_service):
        user = seed_user(store, auth_service, role="hr_manager")
        tokens = auth_service.generate_tokens(user)

        response = client.post('/api/auth/refresh', json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        payload = auth_service.validate_token(json.loads(response.data)["access_token"])
        assert payload["role"] == "hr_manager"

    def test_refresh_with_access_token_fails(self, client, store, auth_service):
        user = seed_user(store, auth_service)
        tokens = auth_service.generate_tokens(user)

        response = client.post('/api/auth/refresh', json={"refreshToken": tokens["access_token"]})

        assert response.status_code == 401


class TestSession:
    """Authenticated session endpoints."""

    def test_me_requires_token(self, client):
        response = client.get('/api/auth/me')

        assert response.status_code == 401
        assert json.loads(response.data)["detail"] == "Missing authorization token"

    def test_me_returns_permissions(self, client, store, auth_service):
        user = seed_user(store, auth_service, role="finance_manager")

        response = client.get('/api/auth/me', headers=bearer(auth_service, user))

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["roleDisplayName"] == "Finance Manager"
        assert "expense:approve" in data["permissions"]
        assert "passwordHash" not in data

    def test_garbage_token_rejected(self, client):
        response = client.get('/api/auth/me', headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 401

    def test_revoked_token_rejected(self, client, store, auth_service, redis_service):
        user = seed_user(store, auth_service)
        redis_service.is_token_blocked.return_value = True

        response = client.get('/api/auth/me', headers=bearer(auth_service, user))

        assert response.status_code == 401
        assert json.loads(response.data)["detail"] == "Token has been revoked"

    def test_blocklist_failure_fails_closed(self, client, store, auth_service, redis_service):
        user = seed_user(store, auth_service)
        redis_service.is_token_blocked.side_effect = ConnectionError("redis down")

        response = client.get('/api/auth/me', headers=bearer(auth_service, user))

        assert response.status_code == 401

    def test_logout_revokes_token_and_records_location(self, client, store, auth_service, redis_service):
        user = seed_user(store, auth_service)

        headers = bearer(auth_service, user)
        token = headers["Authorization"].split()[1]

        response = client.post('/api/auth/logout', headers=headers, json={"latitude": 18.52, "longitude": 73.85})

        assert response.status_code == 200
        assert json.loads(response.data)["tokenRevoked"] is True
        token_id, exp = redis_service.add_to_blocklist.call_args[0]
        assert token_id == auth_service.peek_payload(token)["jti"]
        assert exp > 0
        assert store.collections["location_samples"][0]["eventType"] == "logout"

    def test_logout_without_body(self, client, store, auth_service):
        user = seed_user(store, auth_service)

        response = client.post('/api/auth/logout', headers=bearer(auth_service, user))

        assert response.status_code == 200
        assert store.count("location_samples") == 0


class TestEmployeeAdministration:
    """Employee accounts managed by administrators."""

    def test_register_employee(self, client, store, auth_service):
        admin = seed_user(store, auth_service, role="admin")

        response = client.post('/api/auth/register-employee', headers=bearer(auth_service, admin), json={
            "name": "Priya Nair",
            "email": "priya@example.com",
            "password": "secret123",
            "role": "sales_manager",
            "department": "sales",
            "employeeId": "EMP-042"
        })

        assert response.status_code == 201
        data = json.loads(response.data)
        assert data["role"] == "sales_manager"
        assert data["employeeId"] == "EMP-042"
        assert data["organizationId"] == ORG_ID
        assert data["createdBy"] == admin.id

    def test_register_employee_unknown_role(self, client, store, auth_service):
        admin = seed_user(store, auth_service, role="admin")

        response = client.post('/api/auth/register-employee', headers=bearer(auth_service, admin), json={
            "name": "X", "email": "x@example.com", "password": "secret123", "role": "overlord"
        })

        assert response.status_code == 400

    def test_register_employee_requires_permission(self, client, store, auth_service):
        user = seed_user(store, auth_service)

        response = client.post('/api/auth/register-employee', headers=bearer(auth_service, user), json={
            "name": "X", "email": "x@example.com", "password": "secret123"
        })

        assert response.status_code == 403
        assert "permissions" in json.loads(response.data)["_links"]

    def test_list_employees_scoped_to_tenant(self, client, store, auth_service):
        admin = seed_user(store, auth_service, role="admin")
        seed_user(store, auth_service)
        seed_user(store, auth_service, org_id=OTHER_ORG_ID)

        response = client.get('/api/auth/employees', headers=bearer(auth_service, admin))

        data = json.loads(response.data)
        assert data["count"] == 2
        assert all("passwordHash" not in e for e in data["_embedded"]["items"])

    def test_delete_employee(self, client, store, auth_service):
        admin = seed_user(store, auth_service, role="it_manager")
        employee = seed_user(store, auth_service)

        response = client.delete(f'/api/auth/employees/{employee.id}', headers=bearer(auth_service, admin))

        assert response.status_code == 200
        assert store.count("users") == 1

    def test_cannot_delete_self(self, client, store, auth_service):
        admin = seed_user(store, auth_service, role="admin")

        response = client.delete(f'/api/auth/employees/{admin.id}', headers=bearer(auth_service, admin))

        assert response.status_code == 400
        assert store.count("users") == 1
