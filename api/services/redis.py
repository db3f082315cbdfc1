# SPDX-License-Identifier: Apache-2.0

"""
Redis service for JWT token revocation.

Logout writes the token's identifier to a blocklist key that expires together
with the token; every authenticated request checks that key. Redis is
optional: when it is unreachable, writes report failure and lookups report
"not blocked" so the API keeps serving.
"""

import os
import time
from typing import Any, Dict, Optional
import redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

BLOCKLIST_PREFIX = "blocklist:jwt:"


def blocklist_key(token_id: str) -> str:
    return f"{BLOCKLIST_PREFIX}{token_id}"


def _connect(redis_url: str) -> Optional[redis.Redis]:
    """Open a client and ping it. None when the server cannot be reached."""
    timeout = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2"))
    try:
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout
        )
        client.ping()
    except redis.RedisError as e:
        logger.error("Redis unreachable, token revocation disabled", extra={"redis_url": redis_url, "error": str(e)})
        return None
    logger.info("Connected to Redis", extra={"redis_url": redis_url})
    return client


class RedisService:
    """Token blocklist on top of a redis-py client."""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        """
        Args:
            redis_url: Redis connection URL (redis://host:port/db)
            client: Pre-built client, used instead of connecting to redis_url
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379")
        self.client = client if client is not None else _connect(self.redis_url)

    def is_available(self) -> bool:
        return self.client is not None

    def health_check(self) -> Dict[str, Any]:
        """Ping the server. Unavailable means no connection was ever made."""
        if self.client is None:
            return {"status": "unavailable"}
        try:
            self.client.ping()
        except redis.RedisError as e:
            logger.error("Redis health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy"}

    def add_to_blocklist(self, token_id: str, exp: int) -> bool:
        """
        Block a token until its expiry.

        Args:
            token_id: Token identifier (the ``jti`` claim)
            exp: Token expiry, epoch seconds

        Returns:
            True when stored or when the token has already expired
        """
        remaining = int(exp) - int(time.time())
        if remaining <= 0:
            return True

        if self.client is None:
            logger.warning("Redis unavailable, token not revoked", extra={"token_id": token_id})
            return False

        with tracer.start_as_current_span("redis.blocklist.add") as span:
            span.set_attribute("redis.ttl", remaining)
            try:
                stored = bool(self.client.setex(blocklist_key(token_id), remaining, "revoked"))
            except redis.RedisError as e:
                span.record_exception(e)
                logger.error("Redis blocklist write failed", extra={"token_id": token_id, "error": str(e)})
                return False
            span.set_attribute("redis.stored", stored)
            return stored

    def is_token_blocked(self, token_id: str) -> bool:
        """True when the token was revoked. Unreachable Redis answers False."""
        if self.client is None:
            return False

        with tracer.start_as_current_span("redis.blocklist.check") as span:
            try:
                blocked = bool(self.client.exists(blocklist_key(token_id)))
            except redis.RedisError as e:
                span.record_exception(e)
                logger.error("Redis blocklist check failed", extra={"token_id": token_id, "error": str(e)})
                return False
            span.set_attribute("redis.blocked", blocked)
            return blocked
