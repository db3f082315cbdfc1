# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Employee location tracking service.

Stores GPS samples (periodic fixes plus login/logout points) and feeds them
to the movement and presence analysis in domain/movement.py.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional
from opentelemetry import trace

from domain import movement
from domain.authorization import can_view_employee
from middleware.error_handler import AuthorizationException, NotFoundException
from models.entities import LocationSample, UserContext
from models.enums import LocationEventType
from models.responses import ClassifiedHistory, PresenceResult, TrackReport
from services.audit import AuditService
from services.mongodb import MongoDBService, serialize_document
from utils.clock import Clock, day_range, utc_now

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SAMPLES = "location_samples"


class LocationTrackingService:
    """Writes location samples and answers movement, presence and history queries."""

    def __init__(
        self,
        mongodb_service: MongoDBService,
        audit_service: Optional[AuditService] = None,
        clock: Clock = utc_now,
        online_minutes: float = movement.ONLINE_THRESHOLD_MINUTES,
        idle_minutes: float = movement.IDLE_THRESHOLD_MINUTES,
        history_default_days: int = 7
    ):
        self.mongodb_service = mongodb_service
        self.audit_service = audit_service
        self.clock = clock
        self.online_minutes = online_minutes
        self.idle_minutes = idle_minutes
        self.history_default_days = history_default_days

    # Writes

    def record_sample(
        self,
        employee_id: str,
        org_id: Optional[str],
        latitude: float,
        longitude: float,
        accuracy: Optional[float] = None,
        event_type: LocationEventType = LocationEventType.TRACKING
    ) -> Dict[str, Any]:
        """
        Append a location sample for an employee, timestamped by the clock.

        Raises:
            pydantic.ValidationError: Coordinates out of range
        """
        with tracer.start_as_current_span("location.record_sample") as span:
            sample = LocationSample(
                organization_id=org_id,
                employee=employee_id,
                latitude=latitude,
                longitude=longitude,
                accuracy=accuracy,
                timestamp=self.clock(),
                event_type=event_type
            )
            self.mongodb_service.insert_one(SAMPLES, sample.to_document())

            span.set_attributes({
                "location.employee_id": employee_id,
                "location.event_type": sample.event_type
            })
            logger.debug(
                f"Location sample stored ({sample.event_type})",
                extra={"employee_id": employee_id, "organization_id": org_id}
            )
            return serialize_document(sample.to_document())

    def reset_locations(self, employee_id: str, user_context: UserContext) -> int:
        """Administrative reset: delete every sample of one employee."""
        with tracer.start_as_current_span("location.reset") as span:
            self._require_employee(employee_id, user_context)
            deleted = self.mongodb_service.delete_many(
                SAMPLES, {"employee": employee_id, "organizationId": user_context.org_id}
            )
            span.set_attribute("location.deleted", deleted)
            logger.info(
                f"Location history reset for employee {employee_id}: {deleted} samples removed",
                extra={"employee_id": employee_id, "user_id": user_context.user_id, "deleted": deleted}
            )
            if self.audit_service:
                self.audit_service.log_action(
                    user_context, "location_sample", employee_id, "reset", after={"deleted": deleted}
                )
            return deleted

    # Reads

    def _require_employee(self, employee_id: str, user_context: UserContext) -> None:
        if self.mongodb_service.find_by_id("users", employee_id, org_id=user_context.org_id) is None:
            raise NotFoundException("Employee not found")

    def _authorize_read(self, employee_id: str, user_context: UserContext) -> None:
        result = can_view_employee(user_context, employee_id)
        if not result.allowed:
            raise AuthorizationException(result.reason)
        self._require_employee(employee_id, user_context)

    def _samples(self, employee_id: str, org_id: str, extra: Dict[str, Any], sort=None, limit: int = 0) -> List[LocationSample]:
        query = {"employee": employee_id, "organizationId": org_id, **extra}
        documents = self.mongodb_service.find(SAMPLES, query, sort=sort, limit=limit)
        return [LocationSample.from_document(d) for d in documents]

    def movement(self, employee_id: str, user_context: UserContext, day: Optional[date] = None) -> TrackReport:
        """Track for one UTC day (today by default)."""
        with tracer.start_as_current_span("location.movement") as span:
            self._authorize_read(employee_id, user_context)
            day = day or self.clock().date()
            start, end = day_range(day)

            samples = self._samples(
                employee_id, user_context.org_id,
                {"timestamp": {"$gte": start, "$lt": end}},
                sort=[("timestamp", 1)]
            )
            report = movement.compute_track(samples)
            span.set_attributes({
                "location.points": report.total_points,
                "location.distance_km": report.total_distance_km
            })
            return report

    def live_location(self, employee_id: str, user_context: UserContext) -> PresenceResult:
        """Presence from the most recent sample."""
        with tracer.start_as_current_span("location.live") as span:
            self._authorize_read(employee_id, user_context)
            latest = self._samples(employee_id, user_context.org_id, {}, sort=[("timestamp", -1)], limit=1)
            result = movement.presence_status(
                latest[0] if latest else None,
                self.clock(),
                online_minutes=self.online_minutes,
                idle_minutes=self.idle_minutes
            )
            span.set_attribute("location.presence", result.status)
            return result

    def location_history(self, employee_id: str, user_context: UserContext, days: Optional[int] = None) -> ClassifiedHistory:
        """Online marker and logout markers over the last ``days`` days."""
        with tracer.start_as_current_span("location.history") as span:
            self._authorize_read(employee_id, user_context)
            days = days or self.history_default_days
            since = self.clock() - timedelta(days=days)

            samples = self._samples(
                employee_id, user_context.org_id,
                {"timestamp": {"$gte": since}},
                sort=[("timestamp", -1)]
            )
            history = movement.classify_history(samples)
            span.set_attributes({
                "location.history_days": days,
                "location.offline_markers": len(history.offline_markers)
            })
            return history
