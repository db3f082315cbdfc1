# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Audit service for action logging with OpenTelemetry correlation.
"""

import logging
from typing import Dict, List, Optional, Any, Tuple
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from services.mongodb import MongoDBService
from models.entities import AuditLog, UserContext
from utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Bookkeeping fields that change on every write
IGNORED_CHANGE_FIELDS = {"_id", "id", "updatedAt", "updatedBy"}


def calculate_changes(before: Optional[Dict[str, Any]], after: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Field-level differences between two states, sorted by field name."""
    if not before or not after:
        return []
    changes = []
    for field in sorted((set(before) | set(after)) - IGNORED_CHANGE_FIELDS):
        old, new = before.get(field), after.get(field)
        if old != new:
            changes.append({"field": field, "oldValue": old, "newValue": new})
    return changes


def _trace_ids(span) -> Tuple[Optional[str], Optional[str]]:
    context = span.get_span_context()
    if not context.is_valid:
        return None, None
    return format(context.trace_id, "032x"), format(context.span_id, "016x")


class AuditService:
    """Writes AuditLog entries, scoped to the acting user's organization."""

    collection_name = "audit_logs"

    def __init__(self, mongo_service: MongoDBService, clock: Clock = utc_now):
        self.mongo_service = mongo_service
        self.clock = clock

    def log_action(
        self,
        user_context: UserContext,
        entity: str,
        entity_id: str,
        action: str,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None
    ) -> Optional[str]:
        """
        Record who did what to which entity.

        The entry carries the caller's request metadata and the current trace
        and span ids. A failed write is logged and reported as None, never
        raised, so the business operation it describes still succeeds.

        Args:
            user_context: User performing the action
            entity: Entity type (client, meeting, expense, ...)
            entity_id: ID of the entity
            action: create, update, delete, login, ...
            before: State before the action
            after: State after the action

        Returns:
            ID of the stored entry, or None if it was not stored
        """
        with tracer.start_as_current_span("audit.log_action") as span:
            span.set_attributes({
                "audit.entity": entity,
                "audit.entity_id": entity_id,
                "audit.action": action,
                "user.id": user_context.user_id,
                "organization.id": user_context.org_id
            })
            trace_id, span_id = _trace_ids(span)
            fields = {"entity": entity, "entity_id": entity_id, "action": action,
                      "user_id": user_context.user_id, "organization_id": user_context.org_id}

            try:
                entry = AuditLog(
                    timestamp=self.clock(),
                    user_id=user_context.user_id,
                    organization_id=user_context.org_id,
                    entity=entity,
                    entity_id=entity_id,
                    action=action,
                    before=before,
                    after=after,
                    changes=calculate_changes(before, after),
                    ip_address=user_context.ip_address,
                    user_agent=user_context.user_agent,
                    session_id=user_context.session_id,
                    trace_id=trace_id,
                    span_id=span_id
                )
                audit_id = self.mongo_service.insert_one(self.collection_name, entry.to_document())
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.error("Failed to write audit entry", extra={**fields, "error": str(e)}, exc_info=True)
                return None

            logger.info(
                f"Audit: {entity} {action}",
                extra={**fields, "audit_id": audit_id, "changed_fields": [c["field"] for c in entry.changes],
                       "trace_id": trace_id}
            )
            return audit_id
