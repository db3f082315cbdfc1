# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the Redis token blocklist.
"""

import time
import redis
from unittest.mock import MagicMock

from services.redis import BLOCKLIST_PREFIX, RedisService


class TestTokenBlocklist:
    """Blocklist writes and lookups."""

    def setup_method(self):
        self.client = MagicMock()
        self.service = RedisService(client=self.client)

    def test_add_uses_remaining_lifetime(self):
        self.client.setex.return_value = True
        exp = int(time.time()) + 600

        assert self.service.add_to_blocklist("u:o:1:access", exp)

        key, ttl, _ = self.client.setex.call_args[0]
        assert key == f"{BLOCKLIST_PREFIX}u:o:1:access"
        assert 590 <= ttl <= 600

    def test_expired_token_not_stored(self):
        assert self.service.add_to_blocklist("u:o:1:access", int(time.time()) - 5)
        self.client.setex.assert_not_called()

    def test_is_token_blocked(self):
        self.client.exists.return_value = 1

        assert self.service.is_token_blocked("u:o:1:access")
        self.client.exists.assert_called_once_with(f"{BLOCKLIST_PREFIX}u:o:1:access")

    def test_redis_errors_degrade(self):
        self.client.exists.side_effect = redis.ConnectionError("refused")
        self.client.setex.side_effect = redis.ConnectionError("refused")

        assert not self.service.is_token_blocked("t")
        assert not self.service.add_to_blocklist("t", int(time.time()) + 60)

    def test_health_check(self):
        assert self.service.health_check() == {"status": "healthy"}

        self.client.ping.side_effect = redis.ConnectionError("refused")
        assert self.service.health_check()["status"] == "unhealthy"


class TestWithoutRedis:
    """A service whose connection failed."""

    def test_unreachable_server(self, monkeypatch):
        failing = MagicMock()
        failing.ping.side_effect = redis.ConnectionError("refused")
        monkeypatch.setattr(redis, "from_url", lambda *args, **kwargs: failing)

        service = RedisService("redis://localhost:6390")

        assert not service.is_available()
        assert not service.is_token_blocked("t")
        assert not service.add_to_blocklist("t", int(time.time()) + 60)
        assert service.health_check() == {"status": "unavailable"}
