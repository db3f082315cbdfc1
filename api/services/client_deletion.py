# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Cascade deletion for the Client aggregate.

A client owns branch locations, which own contact persons; meetings and
projects reference the client directly. Deleting a client removes all of
them in one multi-document transaction so no dependent is left pointing
at a client that no longer exists.
"""

import logging
from typing import Optional
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from domain.authorization import check_ownership
from middleware.error_handler import (
    AuthorizationException,
    NotFoundException,
    TransactionFailureException
)
from models.entities import UserContext
from models.responses import DeletedCounts, DeletionSummary
from services.audit import AuditService
from services.mongodb import MongoDBService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CLIENTS = "clients"
BRANCH_LOCATIONS = "branch_locations"
CONTACT_PERSONS = "contact_persons"
MEETINGS = "meetings"
PROJECTS = "projects"


class ClientDeletionCoordinator:
    """Deletes a client and every dependent record atomically."""

    def __init__(self, mongodb_service: MongoDBService, audit_service: Optional[AuditService] = None):
        self.mongodb_service = mongodb_service
        self.audit_service = audit_service

    def delete_client_cascade(self, client_id: str, user_context: UserContext) -> DeletionSummary:
        """
        Delete a client together with its locations, contacts, meetings and projects.

        Args:
            client_id: Client identifier
            user_context: Requesting user

        Returns:
            DeletionSummary with the counts actually removed

        Raises:
            NotFoundException: Client missing, malformed id or other tenant
            AuthorizationException: Not the creator and no client:manage_all
            TransactionFailureException: Any store failure; nothing is deleted
        """
        with tracer.start_as_current_span("client_deletion.delete_client_cascade") as span:
            span.set_attributes({
                "client.id": client_id,
                "user.id": user_context.user_id,
                "organization.id": user_context.org_id
            })

            try:
                with self.mongodb_service.transaction() as session:
                    summary = self._delete_in_session(client_id, user_context, session)
            except (NotFoundException, AuthorizationException):
                span.set_status(Status(StatusCode.ERROR, "client deletion refused"))
                raise
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                logger.error(
                    f"Client cascade deletion rolled back: {e}",
                    extra={
                        "client_id": client_id,
                        "user_id": user_context.user_id,
                        "organization_id": user_context.org_id
                    },
                    exc_info=True
                )
                raise TransactionFailureException("Failed to delete client and related data", cause=e) from e

            counts = summary.counts
            span.set_attributes({
                "client.deleted.branch_locations": counts.branch_locations,
                "client.deleted.contact_persons": counts.contact_persons,
                "client.deleted.meetings": counts.meetings,
                "client.deleted.projects": counts.projects
            })
            span.set_status(Status(StatusCode.OK))

            logger.info(
                f"Client deleted: {summary.client_name}",
                extra={
                    "audit_category": "business_action",
                    "action": "delete",
                    "entity": "client",
                    "client_id": client_id,
                    "user_id": user_context.user_id,
                    "organization_id": user_context.org_id,
                    "deleted_counts": counts.model_dump()
                }
            )

            if self.audit_service:
                self.audit_service.log_action(
                    user_context,
                    "client",
                    client_id,
                    "delete",
                    before={"clientName": summary.client_name},
                    after={"deletedCounts": counts.to_json()}
                )

            return summary

    def _delete_in_session(self, client_id: str, user_context: UserContext, session) -> DeletionSummary:
        store = self.mongodb_service

        client = store.find_by_id(CLIENTS, client_id, org_id=user_context.org_id, session=session)
        if client is None:
            raise NotFoundException("Client not found")

        ownership = check_ownership(user_context, client.get("createdBy"), "client")
        if not ownership.allowed:
            raise AuthorizationException("Not authorized to delete this client")

        branches = store.find(BRANCH_LOCATIONS, {"client": client_id}, session=session)
        branch_ids = [str(branch["_id"]) for branch in branches]

        contact_count = 0
        if branch_ids:
            contact_count = store.delete_many(
                CONTACT_PERSONS, {"branchLocation": {"$in": branch_ids}}, session=session
            )

        meeting_count = store.delete_many(MEETINGS, {"client": client_id}, session=session)
        project_count = store.delete_many(PROJECTS, {"client": client_id}, session=session)

        if branch_ids:
            store.delete_many(
                BRANCH_LOCATIONS,
                {"_id": {"$in": [branch["_id"] for branch in branches]}},
                session=session
            )

        deleted = store.find_by_id_and_delete(CLIENTS, client_id, session=session)
        if deleted is None:
            raise RuntimeError(f"Client {client_id} disappeared during deletion")

        return DeletionSummary(
            client_id=client_id,
            client_name=client.get("clientName", ""),
            counts=DeletedCounts(
                branch_locations=len(branch_ids),
                contact_persons=contact_count,
                meetings=meeting_count,
                projects=project_count
            )
        )
