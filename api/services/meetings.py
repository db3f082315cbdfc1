# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Meeting scheduling service.
"""

import logging
from typing import Any, Dict, List
from opentelemetry import trace

from domain.authorization import is_elevated
from middleware.error_handler import ValidationException
from middleware.validation import validate_model
from models.entities import Meeting, UserContext
from models.requests import CreateMeetingRequest, UpdateMeetingRequest
from services.base import TenantScopedService
from services.mongodb import serialize_document

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class MeetingService(TenantScopedService):
    """CRUD for meetings held with tenant clients."""

    collection = "meetings"
    resource = "meeting"

    def _require_client(self, client_id: str, user_context: UserContext) -> None:
        client = self.mongodb_service.find_by_id("clients", client_id, org_id=user_context.org_id)
        if client is None:
            raise ValidationException(
                "Client does not exist",
                [{"field": "client", "message": "Unknown client", "type": "reference_error", "input": client_id}]
            )

    def list_meetings(self, user_context: UserContext) -> List[Dict[str, Any]]:
        with tracer.start_as_current_span("meetings.list"):
            query: Dict[str, Any] = {"organizationId": user_context.org_id}
            if not is_elevated(user_context, self.resource):
                query["createdBy"] = user_context.user_id
            documents = self.mongodb_service.find(self.collection, query, sort=[("date", -1)])
            return [serialize_document(d) for d in documents]

    def get_meeting(self, meeting_id: str, user_context: UserContext) -> Dict[str, Any]:
        with tracer.start_as_current_span("meetings.get"):
            return serialize_document(self._get_owned(meeting_id, user_context))

    def create_meeting(self, request: CreateMeetingRequest, user_context: UserContext) -> Dict[str, Any]:
        """Schedule a meeting with an existing client of the tenant."""
        with tracer.start_as_current_span("meetings.create") as span:
            self._require_client(request.client, user_context)

            now = self.clock()
            meeting = validate_model(Meeting, {
                **request.model_dump(),
                "organization_id": user_context.org_id,
                "created_by": user_context.user_id,
                "created_at": now,
                "updated_at": now
            })
            meeting_id = self.mongodb_service.insert_one(self.collection, meeting.to_document())

            span.set_attributes({"meeting.id": meeting_id, "client.id": request.client})
            logger.info(
                f"Meeting scheduled: {meeting.title}",
                extra={"meeting_id": meeting_id, "client_id": request.client, "user_id": user_context.user_id}
            )
            self._audit(user_context, meeting_id, "create", after={"title": meeting.title, "client": meeting.client})
            return serialize_document(meeting.to_document())

    def update_meeting(self, meeting_id: str, request: UpdateMeetingRequest, user_context: UserContext) -> Dict[str, Any]:
        with tracer.start_as_current_span("meetings.update"):
            existing = self._get_owned(meeting_id, user_context)
            updates = request.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
            validate_model(Meeting, {**existing, **updates}, "Invalid meeting update")

            updated = self.mongodb_service.update_one(
                self.collection, {"_id": existing["_id"]}, self._stamp(updates, user_context)
            )
            self._audit(user_context, meeting_id, "update", after=serialize_document(
                {k: updated.get(k) for k in updates}
            ))
            return serialize_document(updated)

    def delete_meeting(self, meeting_id: str, user_context: UserContext) -> None:
        with tracer.start_as_current_span("meetings.delete"):
            existing = self._get_owned(meeting_id, user_context)
            self.mongodb_service.find_by_id_and_delete(self.collection, meeting_id)
            logger.info(f"Meeting deleted: {meeting_id}", extra={"user_id": user_context.user_id})
            self._audit(user_context, meeting_id, "delete", before={"title": existing.get("title")})
