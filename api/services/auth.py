# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token management and password hashing.

Tokens are RS256-signed. Access tokens embed the role and its permissions;
refresh tokens carry only what is needed to mint a new access token. Every
token has a ``jti`` so a single token can be revoked.
"""

import os
import uuid
import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
import logging

from domain.authorization import get_role_permissions
from models.entities import User

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

ALGORITHM = "RS256"


class AuthenticationError(Exception):
    """A token could not be issued."""
    pass


class TokenValidationError(Exception):
    """A token is malformed, expired, forged or of the wrong type."""
    pass


def generate_key_pair() -> Tuple[str, str]:
    """Generate an RSA key pair (PEM private, PEM public) for development use."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return private_pem.decode('utf-8'), public_pem.decode('utf-8')


class AuthService:
    """
    JWT issuance and validation plus bcrypt password hashing.

    Without configured keys a fresh development pair is generated, so tokens
    do not survive a restart.
    """

    def __init__(
        self,
        private_key: Optional[str] = None,
        public_key: Optional[str] = None,
        access_token_expire_minutes: int = 15,
        refresh_token_expire_days: int = 7,
        bcrypt_rounds: int = 12
    ):
        private_key = private_key or os.getenv("JWT_PRIVATE_KEY")
        public_key = public_key or os.getenv("JWT_PUBLIC_KEY")

        if not private_key or not public_key:
            logger.warning("No JWT key pair configured, generating development key pair")
            private_key, public_key = generate_key_pair()

        self.private_key = private_key
        self.public_key = public_key
        self.access_lifetime = timedelta(minutes=access_token_expire_minutes)
        self.refresh_lifetime = timedelta(days=refresh_token_expire_days)
        self.bcrypt_rounds = bcrypt_rounds

    # Passwords

    def hash_password(self, password: str) -> str:
        with tracer.start_as_current_span("auth.hash_password"):
            hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=self.bcrypt_rounds))
            return hashed.decode('utf-8')

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """Check a password against a stored hash. Malformed hashes never match."""
        with tracer.start_as_current_span("auth.verify_password") as span:
            try:
                matches = bcrypt.checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))
            except ValueError as e:
                span.set_attribute("auth.verification_result", "error")
                logger.error("Stored password hash is malformed", extra={"error": str(e)})
                return False

            span.set_attribute("auth.verification_result", "success" if matches else "failed")
            return matches

    # Tokens

    def _sign(self, claims: Dict[str, Any], lifetime: timedelta, token_type: str) -> Tuple[str, datetime]:
        """Sign claims with issue time, expiry, type and a fresh jti. Returns (token, expiry)."""
        now = datetime.now(timezone.utc)
        expires_at = now + lifetime
        payload = {
            **claims,
            "iat": now,
            "exp": expires_at,
            "type": token_type,
            "jti": uuid.uuid4().hex
        }
        try:
            return jwt.encode(payload, self.private_key, algorithm=ALGORITHM), expires_at
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            logger.error("Token signing failed", extra={"token_type": token_type, "error": str(e)})
            raise AuthenticationError(f"Failed to sign {token_type} token: {e}") from e

    def _access_claims(self, user_id: str, org_id: str, role: str,
                       email: Optional[str] = None, name: Optional[str] = None) -> Dict[str, Any]:
        return {
            "sub": user_id,
            "org_id": org_id,
            "email": email,
            "name": name,
            "role": role,
            "permissions": get_role_permissions(role)
        }

    def generate_tokens(self, user: User) -> Dict[str, Any]:
        """Issue an access and refresh token pair for a user."""
        with tracer.start_as_current_span("auth.generate_tokens") as span:
            span.set_attributes({"user.id": user.id, "organization.id": user.organization_id})

            access_token, access_exp = self._sign(
                self._access_claims(user.id, user.organization_id, user.role, user.email, user.name),
                self.access_lifetime,
                "access"
            )
            refresh_token, refresh_exp = self._sign(
                {"sub": user.id, "org_id": user.organization_id, "role": user.role},
                self.refresh_lifetime,
                "refresh"
            )

            logger.info(
                "Issued tokens",
                extra={"user_id": user.id, "organization_id": user.organization_id, "role": user.role}
            )
            return {
                "access_token": access_token,
                "refresh_token": refresh_token,
                "token_type": "Bearer",
                "expires_in": int(self.access_lifetime.total_seconds()),
                "access_expires_at": access_exp.isoformat(),
                "refresh_expires_at": refresh_exp.isoformat()
            }

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Verify signature, expiry and type, and return the claims.

        Raises:
            TokenValidationError: If token is invalid, expired or of another type
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attribute("auth.token_type", token_type)

            try:
                claims = jwt.decode(token, self.public_key, algorithms=[ALGORITHM])
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                raise TokenValidationError(f"Invalid token: {e}")

            if claims.get("type") != token_type:
                span.set_attribute("auth.validation_result", "wrong_type")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            span.set_attribute("auth.validation_result", "success")
            return claims

    def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """Mint a new access token from a valid refresh token. The role is re-expanded into permissions."""
        with tracer.start_as_current_span("auth.refresh_access_token"):
            claims = self.validate_token(refresh_token, "refresh")

            access_token, access_exp = self._sign(
                self._access_claims(claims["sub"], claims["org_id"], claims.get("role", "user")),
                self.access_lifetime,
                "access"
            )

            logger.info("Refreshed access token", extra={"user_id": claims["sub"], "organization_id": claims["org_id"]})
            return {
                "access_token": access_token,
                "token_type": "Bearer",
                "expires_in": int(self.access_lifetime.total_seconds()),
                "expires_at": access_exp.isoformat()
            }

    def extract_token_id(self, token: str) -> str:
        """
        Blocklist identifier of a token: its ``jti``, or for tokens issued
        without one, subject, organization, issue time and type.
        """
        claims = self.peek_payload(token)
        if claims.get("jti"):
            return claims["jti"]
        return f"{claims.get('sub')}:{claims.get('org_id')}:{claims.get('iat')}:{claims.get('type')}"

    def peek_payload(self, token: str) -> Dict[str, Any]:
        """Decode a token without verifying its signature."""
        try:
            return jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            raise TokenValidationError(f"Invalid token format: {e}")
