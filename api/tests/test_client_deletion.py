# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the client cascade deletion.
"""

import pytest
from unittest.mock import Mock
from bson import ObjectId

from middleware.error_handler import (
    AuthorizationException,
    NotFoundException,
    TransactionFailureException
)
from services.client_deletion import ClientDeletionCoordinator
from conftest import InMemoryMongoDBService, make_context, OTHER_ORG_ID


def seed_client_aggregate(store: InMemoryMongoDBService, owner_id: str, org_id: str,
                          branches: int = 2, contacts_per_branch: int = 2,
                          meetings: int = 3, projects: int = 1) -> str:
    """Insert a client with dependents and return the client id."""
    client_id = ObjectId()
    store.collections.setdefault("clients", []).append({
        "_id": client_id, "clientName": "Acme Corp", "category": "Enterprise",
        "organizationId": org_id, "createdBy": owner_id
    })
    cid = str(client_id)
    for b in range(branches):
        branch_id = ObjectId()
        store.collections.setdefault("branch_locations", []).append({
            "_id": branch_id, "name": f"Branch {b}", "client": cid, "organizationId": org_id
        })
        for c in range(contacts_per_branch):
            store.collections.setdefault("contact_persons", []).append({
                "_id": ObjectId(), "name": f"Contact {b}.{c}", "branchLocation": str(branch_id),
                "organizationId": org_id
            })
    for m in range(meetings):
        store.collections.setdefault("meetings", []).append({
            "_id": ObjectId(), "title": f"Meeting {m}", "client": cid, "organizationId": org_id
        })
    for p in range(projects):
        store.collections.setdefault("projects", []).append({
            "_id": ObjectId(), "title": f"Project {p}", "client": cid, "organizationId": org_id
        })
    return cid


class TestClientCascadeDeletion:
    """Atomic deletion of a client and its dependents."""

    def setup_method(self):
        self.store = InMemoryMongoDBService()
        self.audit = Mock()
        self.coordinator = ClientDeletionCoordinator(self.store, self.audit)
        self.owner = make_context("user")

    def test_deletes_client_and_all_dependents(self):
        client_id = seed_client_aggregate(self.store, self.owner.user_id, self.owner.org_id)
        other_id = seed_client_aggregate(self.store, self.owner.user_id, self.owner.org_id,
                                         branches=1, contacts_per_branch=1, meetings=1, projects=1)

        summary = self.coordinator.delete_client_cascade(client_id, self.owner)

        assert summary.client_id == client_id
        assert summary.client_name == "Acme Corp"
        assert summary.counts.branch_locations == 2
        assert summary.counts.contact_persons == 4
        assert summary.counts.meetings == 3
        assert summary.counts.projects == 1

        # Only the other client's aggregate remains
        assert [str(c["_id"]) for c in self.store.collections["clients"]] == [other_id]
        assert self.store.count("branch_locations") == 1
        assert self.store.count("contact_persons") == 1
        assert self.store.count("meetings") == 1
        assert self.store.count("projects") == 1
        assert self.store.transactions == 1

    def test_client_without_dependents(self):
        client_id = seed_client_aggregate(self.store, self.owner.user_id, self.owner.org_id,
                                          branches=0, meetings=0, projects=0)

        summary = self.coordinator.delete_client_cascade(client_id, self.owner)

        assert summary.counts.to_json() == {
            "branchLocations": 0, "contactPersons": 0, "meetings": 0, "projects": 0
        }
        assert self.store.count("clients") == 0

    def test_audit_entry_written_after_commit(self):
        client_id = seed_client_aggregate(self.store, self.owner.user_id, self.owner.org_id)

        self.coordinator.delete_client_cascade(client_id, self.owner)

        self.audit.log_action.assert_called_once()
        args = self.audit.log_action.call_args[0]
        assert args[1:4] == ("client", client_id, "delete")

    def test_failure_mid_cascade_rolls_back_everything(self):
        client_id = seed_client_aggregate(self.store, self.owner.user_id, self.owner.org_id)
        self.store.fail_on.add(("delete_many", "meetings"))

        with pytest.raises(TransactionFailureException) as exc_info:
            self.coordinator.delete_client_cascade(client_id, self.owner)

        assert isinstance(exc_info.value.cause, RuntimeError)
        # Contacts were deleted before the failure and must be restored
        assert self.store.count("contact_persons") == 4
        assert self.store.count("branch_locations") == 2
        assert self.store.count("meetings") == 3
        assert self.store.count("projects") == 1
        assert self.store.count("clients") == 1
        self.audit.log_action.assert_not_called()

    def test_failure_on_final_client_delete_rolls_back(self):
        client_id = seed_client_aggregate(self.store, self.owner.user_id, self.owner.org_id)
        self.store.fail_on.add(("find_by_id_and_delete", "clients"))

        with pytest.raises(TransactionFailureException):
            self.coordinator.delete_client_cascade(client_id, self.owner)

        assert self.store.count("branch_locations") == 2
        assert self.store.count("clients") == 1

    def test_missing_client_is_not_found_without_writes(self):
        with pytest.raises(NotFoundException):
            self.coordinator.delete_client_cascade(str(ObjectId()), self.owner)

        assert self.store.writes == []

    def test_malformed_id_is_not_found(self):
        with pytest.raises(NotFoundException):
            self.coordinator.delete_client_cascade("not-an-object-id", self.owner)

        assert self.store.writes == []

    def test_client_of_other_organization_is_not_found(self):
        client_id = seed_client_aggregate(self.store, self.owner.user_id, OTHER_ORG_ID)

        with pytest.raises(NotFoundException):
            self.coordinator.delete_client_cascade(client_id, self.owner)

        assert self.store.count("clients") == 1
        assert self.store.writes == []

    def test_non_owner_is_forbidden_without_writes(self):
        client_id = seed_client_aggregate(self.store, "someone-else", self.owner.org_id)

        with pytest.raises(AuthorizationException):
            self.coordinator.delete_client_cascade(client_id, self.owner)

        assert self.store.writes == []
        assert self.store.count("meetings") == 3

    def test_manage_all_may_delete_others_clients(self):
        manager = make_context("sales_manager")
        client_id = seed_client_aggregate(self.store, "someone-else", manager.org_id)

        summary = self.coordinator.delete_client_cascade(client_id, manager)

        assert summary.counts.meetings == 3
        assert self.store.count("clients") == 0
