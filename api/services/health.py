"""
Health Check Service

Reports the status of the API's dependencies. MongoDB is required: when it
is down the API is unhealthy. Redis only backs token revocation, so losing
it leaves the API degraded.
"""

import os
import time
from typing import Callable, Dict, Any, List, Optional, Tuple
from opentelemetry import trace

from services.mongodb import MongoDBService
from services.redis import RedisService
from utils.clock import Clock, utc_now

tracer = trace.get_tracer(__name__)

SERVICE_NAME = "field-crm-api"
SERVICE_VERSION = "1.0.0"

UNAVAILABLE = {"status": "unavailable"}


def overall_status(checks: List[Tuple[Dict[str, Any], bool]]) -> str:
    """Fold (result, required) pairs into healthy, degraded or unhealthy."""
    status = "healthy"
    for result, required in checks:
        if result.get("status") == "healthy":
            continue
        if required:
            return "unhealthy"
        status = "degraded"
    return status


class HealthCheckService:
    """Probes each dependency and summarises the result."""

    def __init__(self, mongodb_service: MongoDBService, redis_service: Optional[RedisService] = None,
                 clock: Clock = utc_now):
        self.clock = clock
        # name -> (probe, required)
        self.probes: Dict[str, Tuple[Callable[[], Dict[str, Any]], bool]] = {
            "mongodb": (mongodb_service.health_check, True),
            "redis": (redis_service.health_check if redis_service else (lambda: dict(UNAVAILABLE)), False),
        }

    def get_health(self) -> Dict[str, Any]:
        with tracer.start_as_current_span("health.check") as span:
            started = time.perf_counter()

            results = {name: probe() for name, (probe, _) in self.probes.items()}
            status = overall_status([(results[name], required) for name, (_, required) in self.probes.items()])
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

            span.set_attribute("health.overall_status", status)
            span.set_attribute("health.response_time_ms", elapsed_ms)
            for name, result in results.items():
                span.set_attribute(f"health.{name}_status", result.get("status", "unknown"))

            return {
                "status": status,
                "service": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": self.clock().isoformat(),
                "response_time_ms": elapsed_ms,
                "dependencies": results
            }
