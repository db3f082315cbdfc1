# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the audit trail.
"""

from services.audit import AuditService, calculate_changes
from conftest import NOW, ORG_ID, make_context


class TestCalculateChanges:
    """Field-level diffs of an update."""

    def test_changed_fields_only(self):
        changes = calculate_changes(
            {"clientName": "Acme", "status": "Active", "updatedAt": 1},
            {"clientName": "Acme Corp", "status": "Active", "updatedAt": 2}
        )

        assert changes == [{"field": "clientName", "oldValue": "Acme", "newValue": "Acme Corp"}]

    def test_added_and_removed_fields(self):
        changes = calculate_changes({"notes": "x"}, {"website": "https://acme.example"})

        assert [c["field"] for c in changes] == ["notes", "website"]

    def test_create_has_no_changes(self):
        assert calculate_changes(None, {"clientName": "Acme"}) == []


class TestAuditService:
    """Persisted audit entries."""

    def test_entry_stored_with_request_metadata(self, store):
        service = AuditService(store, clock=lambda: NOW)
        context = make_context("user").model_copy(update={"ip_address": "10.0.0.7"})

        audit_id = service.log_action(
            context, "client", "c1", "update", before={"status": "Active"}, after={"status": "Inactive"}
        )

        entry = store.collections["audit_logs"][0]
        assert str(entry["_id"]) == audit_id
        assert entry["organizationId"] == ORG_ID
        assert entry["userId"] == context.user_id
        assert entry["timestamp"] == NOW
        assert entry["ipAddress"] == "10.0.0.7"
        assert entry["changes"] == [{"field": "status", "oldValue": "Active", "newValue": "Inactive"}]

    def test_write_failure_is_not_raised(self, store):
        store.fail_on.add(("insert_one", "audit_logs"))
        service = AuditService(store, clock=lambda: NOW)

        assert service.log_action(make_context("user"), "meeting", "m1", "delete") is None
        assert store.count("audit_logs") == 0

    def test_invalid_entity_is_not_stored(self, store):
        service = AuditService(store, clock=lambda: NOW)

        assert service.log_action(make_context("user"), "invoice", "i1", "create") is None
