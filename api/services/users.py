# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
User (employee) accounts: registration, credential checks and administration.
"""

import logging
from typing import Any, Dict, List, Optional
from opentelemetry import trace

from domain.authorization import is_valid_role
from middleware.error_handler import (
    AuthenticationException,
    ConflictException,
    NotFoundException,
    ValidationException
)
from models.base import generate_object_id
from models.entities import User, UserContext
from models.requests import RegisterEmployeeRequest, RegisterRequest
from services.audit import AuditService
from services.auth import AuthService
from services.mongodb import MongoDBService
from utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

USERS = "users"


class UserService:
    """Persists users and verifies their credentials."""

    def __init__(
        self,
        mongodb_service: MongoDBService,
        auth_service: AuthService,
        audit_service: Optional[AuditService] = None,
        clock: Clock = utc_now
    ):
        self.mongodb_service = mongodb_service
        self.auth_service = auth_service
        self.audit_service = audit_service
        self.clock = clock

    def find_by_email(self, email: str) -> Optional[User]:
        document = self.mongodb_service.find_one(USERS, {"email": email.lower()})
        return User.from_document(document) if document else None

    def get_user(self, user_id: str, org_id: str) -> User:
        document = self.mongodb_service.find_by_id(USERS, user_id, org_id=org_id)
        if document is None:
            raise NotFoundException("User not found")
        return User.from_document(document)

    def _create(self, fields: Dict[str, Any], password: str, org_id: str, created_by: Optional[str]) -> User:
        if self.find_by_email(fields["email"]) is not None:
            raise ConflictException("User already exists")

        now = self.clock()
        user_id = generate_object_id()
        user = User(
            id=user_id,
            **fields,
            password_hash=self.auth_service.hash_password(password),
            organization_id=org_id,
            created_by=created_by or user_id,
            created_at=now,
            updated_at=now
        )
        try:
            self.mongodb_service.insert_one(USERS, user.to_document())
        except ValueError as e:
            raise ConflictException("User already exists") from e

        logger.info(
            "User registered",
            extra={"user_id": user.id, "organization_id": org_id, "role": user.role}
        )
        return user

    def register(self, request: RegisterRequest, org_id: str) -> User:
        """Self registration with the base "user" role."""
        with tracer.start_as_current_span("users.register"):
            return self._create(
                {"name": request.name, "email": request.email, "role": "user"},
                request.password,
                org_id,
                created_by=None
            )

    def register_employee(self, request: RegisterEmployeeRequest, user_context: UserContext) -> User:
        """Create an employee account in the administrator's organization."""
        with tracer.start_as_current_span("users.register_employee") as span:
            if not is_valid_role(request.role):
                raise ValidationException(
                    "Invalid role",
                    [{"field": "role", "message": f"Unknown role: {request.role}", "type": "value_error", "input": request.role}]
                )
            span.set_attribute("user.role", request.role)

            fields = request.model_dump(exclude={"password"}, exclude_none=True)
            user = self._create(fields, request.password, user_context.org_id, created_by=user_context.user_id)
            if self.audit_service:
                self.audit_service.log_action(
                    user_context, "user", user.id, "create", after={"email": user.email, "role": user.role}
                )
            return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials and record the login time.

        Raises:
            AuthenticationException: Unknown email or wrong password
        """
        with tracer.start_as_current_span("users.authenticate") as span:
            user = self.find_by_email(email)
            if user is None or not self.auth_service.verify_password(password, user.password_hash):
                span.set_attribute("auth.result", "invalid_credentials")
                logger.warning("Login attempt with invalid credentials", extra={"email": email})
                raise AuthenticationException("Invalid credentials")

            now = self.clock()
            self.mongodb_service.update_one(
                USERS, {"_id": self.mongodb_service.to_object_id(user.id)}, {"lastLogin": now}
            )
            user.last_login = now
            span.set_attribute("auth.result", "success")
            return user

    def list_employees(self, user_context: UserContext) -> List[Dict[str, Any]]:
        with tracer.start_as_current_span("users.list_employees"):
            documents = self.mongodb_service.find(
                USERS, {"organizationId": user_context.org_id}, sort=[("name", 1)]
            )
            return [User.from_document(d).to_public_dict() for d in documents]

    def delete_employee(self, employee_id: str, user_context: UserContext) -> None:
        """Remove an employee account. Administrators cannot delete themselves."""
        with tracer.start_as_current_span("users.delete_employee"):
            if employee_id == user_context.user_id:
                raise ValidationException("Cannot delete your own account")

            existing = self.get_user(employee_id, user_context.org_id)
            self.mongodb_service.find_by_id_and_delete(USERS, employee_id)
            logger.info(
                f"Employee deleted: {existing.email}",
                extra={"employee_id": employee_id, "user_id": user_context.user_id}
            )
            if self.audit_service:
                self.audit_service.log_action(
                    user_context, "user", employee_id, "delete", before={"email": existing.email}
                )
