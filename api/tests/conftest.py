# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.

Tests run against an in-memory stand-in for MongoDBService that supports
the filter operators the services use and rolls back on failed transactions.
"""

import copy
import os
import pytest
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import Mock
from bson import ObjectId

from models.entities import User, UserContext
from domain.authorization import get_role_permissions
from services.auth import AuthService, generate_key_pair
from services.mongodb import MongoDBService
from services.redis import RedisService
from utils.clock import ensure_utc

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

ORG_ID = "org-alpha"
OTHER_ORG_ID = "org-beta"
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _normalize(value):
    """Stored datetimes come back as aware UTC, as with a tz_aware MongoClient."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    return value


def _compare(op: str, value, operand) -> bool:
    if op == "$in":
        return value in operand
    if op == "$nin":
        return value not in operand
    if op == "$ne":
        return value != operand
    if value is None:
        return False
    if op == "$gte":
        return value >= operand
    if op == "$gt":
        return value > operand
    if op == "$lte":
        return value <= operand
    if op == "$lt":
        return value < operand
    raise NotImplementedError(f"Unsupported operator {op}")


def matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Evaluate the subset of MongoDB query syntax the services rely on."""
    for key, condition in query.items():
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
            continue

        value = document.get(key)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(op, value, _normalize(operand)) for op, operand in condition.items()):
                return False
        elif value != _normalize(condition):
            return False
    return True


class InMemoryMongoDBService(MongoDBService):
    """
    MongoDBService over plain dictionaries.

    ``fail_on`` holds (operation, collection) pairs that raise on use, and
    ``writes`` records every mutating call so tests can assert none happened.
    """

    def __init__(self):
        self.database_name = "field_crm_test"
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.fail_on = set()
        self.writes: List[tuple] = []
        self.transactions = 0
        self.healthy = True

    def _docs(self, collection: str) -> List[Dict[str, Any]]:
        return self.collections.setdefault(collection, [])

    def _check(self, operation: str, collection: str) -> None:
        if (operation, collection) in self.fail_on:
            raise RuntimeError(f"Injected failure: {operation} on {collection}")

    def _write(self, operation: str, collection: str) -> None:
        self._check(operation, collection)
        self.writes.append((operation, collection))

    def health_check(self) -> Dict[str, Any]:
        if self.healthy:
            return {"status": "healthy", "ping": True, "version": "in-memory", "database": self.database_name}
        return {"status": "unhealthy", "error": "connection refused", "database": self.database_name}

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy(self.collections)
        self.transactions += 1
        try:
            yield object()
        except Exception:
            self.collections = snapshot
            raise

    def find(self, collection, filter=None, sort=None, limit=0, session=None):
        self._check("find", collection)
        found = [copy.deepcopy(d) for d in self._docs(collection) if matches(d, filter or {})]
        for field, direction in reversed(list(sort or [])):
            found.sort(key=lambda d: (d.get(field) is not None, d.get(field)), reverse=direction < 0)
        return found[:limit] if limit else found

    def find_one(self, collection, filter, sort=None, session=None):
        found = self.find(collection, filter, sort=sort, limit=1)
        return found[0] if found else None

    def insert_one(self, collection, document, session=None):
        self._write("insert_one", collection)
        document.setdefault("_id", ObjectId())
        self._docs(collection).append(_normalize(copy.deepcopy(document)))
        return str(document["_id"])

    def insert_many(self, collection, documents, session=None):
        if not documents:
            return []
        self._write("insert_many", collection)
        ids = []
        for document in documents:
            document.setdefault("_id", ObjectId())
            self._docs(collection).append(_normalize(copy.deepcopy(document)))
            ids.append(str(document["_id"]))
        return ids

    def update_one(self, collection, filter, updates, session=None):
        self._write("update_one", collection)
        for document in self._docs(collection):
            if matches(document, filter):
                document.update(_normalize(copy.deepcopy(updates)))
                return copy.deepcopy(document)
        return None

    def delete_many(self, collection, filter, session=None):
        self._write("delete_many", collection)
        kept = [d for d in self._docs(collection) if not matches(d, filter)]
        deleted = len(self._docs(collection)) - len(kept)
        self.collections[collection] = kept
        return deleted

    def find_by_id_and_delete(self, collection, doc_id, session=None):
        self._write("find_by_id_and_delete", collection)
        object_id = self.to_object_id(doc_id)
        for document in self._docs(collection):
            if document["_id"] == object_id:
                self._docs(collection).remove(document)
                return document
        return None

    def count_documents(self, collection, filter=None, session=None):
        return len(self.find(collection, filter))

    def count(self, collection: str) -> int:
        return len(self._docs(collection))


def make_context(role: str = "user", user_id: Optional[str] = None, org_id: str = ORG_ID) -> UserContext:
    """User context carrying the permissions of a role."""
    return UserContext(
        user_id=user_id or str(ObjectId()),
        org_id=org_id,
        email=f"{role}@example.com",
        name=role.replace("_", " ").title(),
        role=role,
        permissions=get_role_permissions(role)
    )


@pytest.fixture(scope="session")
def key_pair():
    """One RSA key pair for the whole run."""
    return generate_key_pair()


@pytest.fixture
def auth_service(key_pair):
    private_pem, public_pem = key_pair
    return AuthService(private_pem, public_pem, bcrypt_rounds=4)


@pytest.fixture
def store():
    return InMemoryMongoDBService()


@pytest.fixture
def clock():
    """Clock pinned to a fixed instant."""
    return lambda: NOW


@pytest.fixture
def redis_service():
    redis = Mock(spec=RedisService)
    redis.is_token_blocked.return_value = False
    redis.add_to_blocklist.return_value = True
    redis.health_check.return_value = {"status": "healthy", "connected": True}
    return redis


@pytest.fixture
def user_context():
    return make_context("user")


@pytest.fixture
def admin_context():
    return make_context("admin")


@pytest.fixture
def app(store, redis_service, auth_service, clock):
    from app import create_app

    application = create_app(
        config_overrides={
            'ENVIRONMENT': 'test',
            'OTEL_ENABLED': False,
            'BASE_URL': 'https://api.example.com',
            'DEFAULT_ORGANIZATION_ID': ORG_ID,
        },
        mongodb_service=store,
        redis_service=redis_service,
        auth_service=auth_service,
        clock=clock
    )
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    return app.test_client()


def seed_user(store: InMemoryMongoDBService, auth_service: AuthService, role: str = "user",
              email: Optional[str] = None, org_id: str = ORG_ID, password: str = "secret123") -> User:
    """Insert a user document and return the model."""
    user_id = str(ObjectId())
    user = User(
        id=user_id,
        email=email or f"{role}.{user_id[-6:]}@example.com",
        name=f"{role.title()} Person",
        password_hash=auth_service.hash_password(password),
        role=role,
        organization_id=org_id,
        created_by=user_id
    )
    store.insert_one("users", user.to_document())
    return user


def bearer(auth_service: AuthService, user: User) -> Dict[str, str]:
    """Authorization header for a user."""
    tokens = auth_service.generate_tokens(user)
    return {"Authorization": f"Bearer {tokens['access_token']}"}
