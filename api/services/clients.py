# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Client aggregate service: listing, creation with nested locations and
contacts, and field updates. Deletion lives in the cascade coordinator.
"""

import logging
from typing import Any, Dict, List
from opentelemetry import trace

from domain.authorization import is_elevated
from middleware.validation import validate_model
from models.entities import BranchLocation, Client, ContactPerson, UserContext
from models.requests import CreateClientRequest, UpdateClientRequest
from services.base import TenantScopedService
from services.mongodb import serialize_document

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ClientService(TenantScopedService):
    """Reads and writes clients scoped to the requester's organization."""

    collection = "clients"
    resource = "client"

    def _locations_with_contacts(self, client_id: str) -> List[Dict[str, Any]]:
        store = self.mongodb_service
        locations = [serialize_document(d) for d in store.find("branch_locations", {"client": client_id})]
        if not locations:
            return []

        contacts = store.find(
            "contact_persons",
            {"branchLocation": {"$in": [loc["id"] for loc in locations]}}
        )
        by_location: Dict[str, List[Dict[str, Any]]] = {}
        for contact in contacts:
            by_location.setdefault(contact["branchLocation"], []).append(serialize_document(contact))

        for location in locations:
            location["contacts"] = by_location.get(location["id"], [])
        return locations

    def list_clients(self, user_context: UserContext) -> List[Dict[str, Any]]:
        """Clients visible to the user with counts and nested locations."""
        with tracer.start_as_current_span("clients.list") as span:
            query: Dict[str, Any] = {"organizationId": user_context.org_id}
            if not is_elevated(user_context, self.resource):
                query["createdBy"] = user_context.user_id

            documents = self.mongodb_service.find(self.collection, query, sort=[("createdAt", -1)])
            span.set_attribute("clients.count", len(documents))

            clients = []
            for document in documents:
                client = serialize_document(document)
                client["meetingCount"] = self.mongodb_service.count_documents("meetings", {"client": client["id"]})
                client["projectCount"] = self.mongodb_service.count_documents("projects", {"client": client["id"]})
                client["locations"] = self._locations_with_contacts(client["id"])
                clients.append(client)
            return clients

    def get_client(self, client_id: str, user_context: UserContext) -> Dict[str, Any]:
        """A client with its locations, contacts, meetings and projects."""
        with tracer.start_as_current_span("clients.get") as span:
            span.set_attribute("client.id", client_id)
            client = serialize_document(self._get_owned(client_id, user_context))
            client["locations"] = self._locations_with_contacts(client_id)
            client["meetings"] = [
                serialize_document(d)
                for d in self.mongodb_service.find("meetings", {"client": client_id}, sort=[("date", -1)])
            ]
            client["projects"] = [
                serialize_document(d)
                for d in self.mongodb_service.find("projects", {"client": client_id}, sort=[("createdAt", -1)])
            ]
            return client

    def create_client(self, request: CreateClientRequest, user_context: UserContext) -> Dict[str, Any]:
        """Create a client with its locations and contacts in one transaction."""
        with tracer.start_as_current_span("clients.create") as span:
            now = self.clock()
            scope = {
                "organization_id": user_context.org_id,
                "created_by": user_context.user_id,
                "created_at": now,
                "updated_at": now
            }

            client = Client(
                category=request.category,
                client_name=request.client_name,
                sales_person=request.sales_person,
                status=request.status,
                **scope
            )

            locations = []
            contacts = []
            for location_input in request.locations:
                location = BranchLocation(
                    client=client.id,
                    **location_input.model_dump(exclude={"contacts"}),
                    **scope
                )
                locations.append(location)
                for contact_input in location_input.contacts:
                    contacts.append(ContactPerson(
                        branch_location=location.id,
                        **contact_input.model_dump(),
                        **scope
                    ))

            with self.mongodb_service.transaction() as session:
                self.mongodb_service.insert_one(self.collection, client.to_document(), session=session)
                self.mongodb_service.insert_many(
                    "branch_locations", [loc.to_document() for loc in locations], session=session
                )
                self.mongodb_service.insert_many(
                    "contact_persons", [c.to_document() for c in contacts], session=session
                )

            span.set_attributes({
                "client.id": client.id,
                "client.locations": len(locations),
                "client.contacts": len(contacts)
            })
            logger.info(
                f"Client created: {client.client_name}",
                extra={
                    "client_id": client.id,
                    "organization_id": user_context.org_id,
                    "user_id": user_context.user_id,
                    "locations": len(locations),
                    "contacts": len(contacts)
                }
            )
            self._audit(user_context, client.id, "create", after={"clientName": client.client_name})

            result = serialize_document(client.to_document())
            result["locations"] = self._locations_with_contacts(client.id)
            return result

    def update_client(self, client_id: str, request: UpdateClientRequest, user_context: UserContext) -> Dict[str, Any]:
        """Update the client's own fields."""
        with tracer.start_as_current_span("clients.update") as span:
            span.set_attribute("client.id", client_id)
            existing = self._get_owned(client_id, user_context)

            updates = request.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
            validate_model(Client, {**existing, **updates}, "Invalid client update")

            updated = self.mongodb_service.update_one(
                self.collection,
                {"_id": existing["_id"]},
                self._stamp(updates, user_context)
            )
            self._audit(
                user_context, client_id, "update",
                before={k: existing.get(k) for k in updates},
                after=serialize_document({k: updated.get(k) for k in updates})
            )
            return serialize_document(updated)
