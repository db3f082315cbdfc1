# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

Routes opt in with ``require_auth`` or ``require_permission``. Both resolve
the bearer token into a UserContext, reject revoked or invalid tokens with
401, and pass the context to the route as its first argument.
"""

from functools import wraps
from flask import request, current_app, g
from typing import Optional, Dict, Any, Callable
from opentelemetry import trace
import logging

from middleware.error_handler import AuthenticationException, AuthorizationException
from models.entities import UserContext
from services.auth import AuthService, TokenValidationError
from services.redis import RedisService

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


class AuthMiddleware:
    """Resolves the request's access token into a UserContext."""

    def __init__(self, auth_service: AuthService, redis_service: Optional[RedisService]):
        self.auth_service = auth_service
        self.redis_service = redis_service

    def extract_token_from_request(self) -> Optional[str]:
        """Token from ``Authorization: Bearer <token>``; a bare header value is taken as the token."""
        header = request.headers.get('Authorization', '').strip()
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() == BEARER_SCHEME:
            return credentials.strip() or None
        return header or None

    def is_token_blocked(self, token: str) -> bool:
        """
        Whether the token was revoked at logout.

        Unreachable Redis is handled by RedisService and answers "not blocked".
        Anything else going wrong here fails closed.
        """
        if self.redis_service is None:
            return False
        try:
            return self.redis_service.is_token_blocked(self.auth_service.extract_token_id(token))
        except Exception as e:
            logger.error("Token blocklist check failed, rejecting token", extra={"error": str(e)})
            return True

    def get_request_info(self) -> Dict[str, Any]:
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', ''),
            "session_id": request.headers.get('X-Session-ID'),
            "request_id": request.headers.get('X-Request-ID')
        }

    def build_user_context(self, claims: Dict[str, Any], request_info: Dict[str, Any]) -> UserContext:
        return UserContext(
            user_id=claims["sub"],
            org_id=claims["org_id"],
            email=claims.get("email"),
            name=claims.get("name"),
            role=claims.get("role", "user"),
            permissions=claims.get("permissions", []),
            token_payload=claims,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent"),
            session_id=request_info.get("session_id")
        )

    def _reject(self, span, reason: str, detail: str) -> AuthenticationException:
        span.set_attribute("auth.result", reason)
        logger.warning("Authentication failed", extra={"reason": reason, "path": request.path})
        return AuthenticationException(detail)

    def authenticate(self) -> UserContext:
        """
        Authenticate the current request.

        Raises:
            AuthenticationException: Missing, revoked, expired or invalid token
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            token = self.extract_token_from_request()
            if not token:
                raise self._reject(span, "missing_token", "Missing authorization token")

            if self.is_token_blocked(token):
                raise self._reject(span, "token_blocked", "Token has been revoked")

            try:
                claims = self.auth_service.validate_token(token, "access")
            except TokenValidationError as e:
                raise self._reject(span, "invalid_token", str(e))

            user_context = self.build_user_context(claims, self.get_request_info())
            g.user_context = user_context

            span.set_attributes({
                "auth.result": "success",
                "user.id": user_context.user_id,
                "organization.id": user_context.org_id
            })
            return user_context


def ensure_permission(user_context: UserContext, permission: str) -> None:
    """
    Raise AuthorizationException unless the user holds a permission.

    Args:
        user_context: Authenticated user
        permission: Required permission string
    """
    with tracer.start_as_current_span("auth.middleware.check_permission") as span:
        span.set_attributes({
            "auth.operation": "check_permission",
            "auth.required_permission": permission,
            "user.id": user_context.user_id,
            "organization.id": user_context.org_id
        })

        if not user_context.has_permission(permission):
            span.set_attribute("auth.permission_result", "denied")
            logger.warning(
                f"Authorization failed: missing permission '{permission}'",
                extra={
                    "user_id": user_context.user_id,
                    "organization_id": user_context.org_id,
                    "required_permission": permission,
                    "role": user_context.role
                }
            )
            raise AuthorizationException(f"Missing required permission: {permission}")

        span.set_attribute("auth.permission_result", "granted")


def require_auth(f: Callable) -> Callable:
    """
    Decorator requiring a valid access token.

    The wrapped route receives the UserContext as its first argument.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_context = current_app.auth_middleware.authenticate()
        return f(user_context, *args, **kwargs)

    return decorated_function


def require_permission(permission: str) -> Callable:
    """
    Decorator requiring a valid access token carrying a permission.

    Args:
        permission: Required permission string
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_context = current_app.auth_middleware.authenticate()
            ensure_permission(user_context, permission)
            return f(user_context, *args, **kwargs)

        return decorated_function
    return decorator
