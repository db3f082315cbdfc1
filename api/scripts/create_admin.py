#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Seed (or reset) the administrator account of an organization.

Any existing user with the same email is replaced. Credentials come from
ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME, falling back to development defaults.
"""

import sys
import os
import logging

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.base import generate_object_id
from models.entities import User
from services.auth import AuthService
from services.mongodb import get_mongodb_service, close_mongodb_connection

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def build_admin(email: str, password: str, name: str, org_id: str, auth_service: AuthService) -> User:
    """Administrator account that owns itself."""
    user_id = generate_object_id()
    return User(
        id=user_id,
        email=email,
        name=name,
        password_hash=auth_service.hash_password(password),
        role="admin",
        organization_id=org_id,
        created_by=user_id
    )


def main():
    email = os.getenv('ADMIN_EMAIL', 'admin@example.com').lower()
    password = os.getenv('ADMIN_PASSWORD', 'admin123')
    name = os.getenv('ADMIN_NAME', 'Admin User')
    org_id = os.getenv('DEFAULT_ORGANIZATION_ID', 'default')

    try:
        mongodb_service = get_mongodb_service()
        auth_service = AuthService()

        removed = mongodb_service.delete_many("users", {"email": email})
        if removed:
            logger.info(f"Removed existing user {email}")

        admin = build_admin(email, password, name, org_id, auth_service)
        mongodb_service.insert_one("users", admin.to_document())

        stored = mongodb_service.find_one("users", {"email": email})
        logger.info(f"Admin user created: {stored['email']} (role {stored['role']}, organization {org_id})")

    except Exception as e:
        logger.error(f"Failed to create admin user: {e}")
        sys.exit(1)
    finally:
        close_mongodb_connection()


if __name__ == "__main__":
    main()
