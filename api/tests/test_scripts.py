# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the maintenance scripts.
"""

from unittest.mock import MagicMock

import app
from scripts import create_admin, create_indexes
from scripts.generate_jwt_keys import as_env_value


def fake_mongodb(status="healthy"):
    service = MagicMock()
    service.health_check.return_value = {"status": status, "version": "7.0.5", "database": "field_crm_dev"}
    service.get_collection.return_value.index_information.return_value = {"_id_": {}}
    return service


class TestCreateIndexes:
    """Index maintenance entry point."""

    def setup_method(self):
        self.closed = []

    def run(self, monkeypatch, service, argv):
        monkeypatch.setattr(create_indexes, "get_mongodb_service", lambda: service)
        monkeypatch.setattr(create_indexes, "close_mongodb_connection", lambda: self.closed.append(True))
        return create_indexes.main(argv)

    def test_creates_and_lists(self, monkeypatch):
        service = fake_mongodb()

        assert self.run(monkeypatch, service, []) == 0

        service.create_indexes.assert_called_once()
        assert service.get_collection.call_count == len(create_indexes.COLLECTIONS)
        assert self.closed

    def test_list_only(self, monkeypatch):
        service = fake_mongodb()

        assert self.run(monkeypatch, service, ["--list"]) == 0

        service.create_indexes.assert_not_called()

    def test_unhealthy_database(self, monkeypatch):
        service = fake_mongodb("unhealthy")

        assert self.run(monkeypatch, service, []) == 1

        service.create_indexes.assert_not_called()
        assert self.closed


class TestJwtKeyEnvironment:
    """Keys printed for .env files load back as PEM."""

    def test_escaped_key_is_restored(self, monkeypatch, key_pair):
        private_key, _ = key_pair
        monkeypatch.setenv("JWT_PRIVATE_KEY", as_env_value(private_key))

        assert "\n" not in as_env_value(private_key)
        assert app.load_config()["JWT_PRIVATE_KEY"] == private_key


class TestCreateAdmin:
    """Administrator seeding."""

    def test_replaces_existing_admin(self, monkeypatch, store, auth_service):
        store.insert_one("users", {"email": "boss@example.com", "role": "user"})
        monkeypatch.setenv("ADMIN_EMAIL", "Boss@Example.com")
        monkeypatch.setenv("ADMIN_PASSWORD", "s3cret-admin")
        monkeypatch.setenv("DEFAULT_ORGANIZATION_ID", "org-alpha")
        monkeypatch.setattr(create_admin, "get_mongodb_service", lambda: store)
        monkeypatch.setattr(create_admin, "AuthService", lambda: auth_service)
        monkeypatch.setattr(create_admin, "close_mongodb_connection", lambda: None)

        create_admin.main()

        users = store.collections["users"]
        assert len(users) == 1
        admin = users[0]
        assert admin["email"] == "boss@example.com"
        assert admin["role"] == "admin"
        assert admin["organizationId"] == "org-alpha"
        assert admin["createdBy"] == str(admin["_id"])
        assert auth_service.verify_password("s3cret-admin", admin["passwordHash"])
