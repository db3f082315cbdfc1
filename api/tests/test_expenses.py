# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the expense approval workflow.
"""

import pytest
from datetime import date, datetime, timezone
from unittest.mock import Mock

from domain.expenses import can_edit, compute_stats, transition
from middleware.error_handler import AuthorizationException, NotFoundException, ValidationException
from models.enums import ExpenseStatus
from models.requests import CreateExpenseRequest, ExpenseFilters, UpdateExpenseRequest
from services.expenses import ExpenseService, build_expense_query
from conftest import InMemoryMongoDBService, make_context, NOW


class TestTransitions:
    """Pending -> Approved -> Paid, Pending -> Rejected."""

    @pytest.mark.parametrize("current,target", [
        ("Pending", ExpenseStatus.APPROVED),
        ("Pending", ExpenseStatus.REJECTED),
        ("Approved", ExpenseStatus.PAID),
    ])
    def test_allowed(self, current, target):
        result = transition({"status": current}, target, "approver", NOW, reason="Duplicate")

        assert result.success
        assert result.updates["status"] == target.value
        assert result.updates["updatedBy"] == "approver"

    @pytest.mark.parametrize("current,target", [
        ("Pending", ExpenseStatus.PAID),
        ("Approved", ExpenseStatus.REJECTED),
        ("Rejected", ExpenseStatus.APPROVED),
        ("Paid", ExpenseStatus.PENDING),
        ("Paid", ExpenseStatus.APPROVED),
    ])
    def test_refused(self, current, target):
        result = transition({"status": current}, target, "approver", NOW)

        assert not result.success
        assert current in result.error_message

    def test_reject_requires_reason(self):
        result = transition({"status": "Pending"}, ExpenseStatus.REJECTED, "approver", NOW, reason="  ")

        assert not result.success
        assert result.error_message == "Rejection reason is required"

    def test_approval_records_approver(self):
        result = transition({"status": "Pending"}, ExpenseStatus.APPROVED, "approver", NOW)

        assert result.updates["approvedBy"] == "approver"
        assert result.updates["approvalDate"] == NOW

    def test_only_pending_editable(self):
        assert can_edit({"status": "Pending"})
        assert not can_edit({"status": "Approved"})


class TestStats:
    """Per-status totals."""

    def test_compute_stats(self):
        stats = compute_stats([
            {"amount": 100.0, "status": "Pending"},
            {"amount": 50.5, "status": "Pending"},
            {"amount": 20.0, "status": "Approved"},
            {"amount": 10.0, "status": "Paid"},
        ])

        assert stats.total_count == 4
        assert stats.total_amount == pytest.approx(180.5)
        assert stats.pending_count == 2
        assert stats.pending_amount == pytest.approx(150.5)
        assert stats.approved_count == 1
        assert stats.rejected_count == 0
        assert stats.paid_amount == pytest.approx(10.0)

    def test_amounts_rounded_to_cents(self):
        stats = compute_stats([
            {"amount": 0.1, "status": "Rejected"},
            {"amount": 0.2, "status": "Rejected"},
        ])

        assert stats.rejected_amount == 0.3
        assert stats.total_amount == 0.3

    def test_empty(self):
        assert compute_stats([]).to_json()["totalCount"] == 0


class TestExpenseQuery:
    """Filter construction."""

    def test_end_date_includes_whole_day(self):
        filters = ExpenseFilters(start_date=date(2025, 3, 1), end_date=date(2025, 3, 31))

        query = build_expense_query("org", "emp", filters)

        assert query["date"]["$gte"] == datetime(2025, 3, 1, tzinfo=timezone.utc)
        assert query["date"]["$lt"] == datetime(2025, 4, 1, tzinfo=timezone.utc)

    def test_status_and_category(self):
        filters = ExpenseFilters(status="Approved", category="Travel")

        query = build_expense_query("org", "emp", filters)

        assert query == {"organizationId": "org", "employeeId": "emp", "status": "Approved", "category": "Travel"}


class TestExpenseService:
    """Service behavior against the in-memory store."""

    def setup_method(self):
        self.store = InMemoryMongoDBService()
        self.audit = Mock()
        self.service = ExpenseService(self.store, self.audit, clock=lambda: NOW)
        self.employee = make_context("user")
        self.approver = make_context("finance_manager", org_id=self.employee.org_id)

    def _submit(self, amount=120.0, day=datetime(2025, 3, 5)):
        request = CreateExpenseRequest(category="Travel", amount=amount, description="Taxi", date=day)
        return self.service.create_expense(request, self.employee)

    def test_new_expense_is_pending(self):
        expense = self._submit()

        assert expense["status"] == "Pending"
        assert expense["employeeId"] == self.employee.user_id
        assert expense["currency"] == "INR"

    def test_list_filters_by_inclusive_end_date(self):
        self._submit(day=datetime(2025, 3, 31, 18, 30))
        self._submit(day=datetime(2025, 4, 1, 0, 0))

        expenses = self.service.list_expenses(
            self.employee, ExpenseFilters(start_date=date(2025, 3, 1), end_date=date(2025, 3, 31))
        )

        assert len(expenses) == 1

    def test_approve_then_pay(self):
        expense = self._submit()

        approved = self.service.change_status(expense["id"], ExpenseStatus.APPROVED, self.approver)
        paid = self.service.change_status(expense["id"], ExpenseStatus.PAID, self.approver)

        assert approved["approvedBy"] == self.approver.user_id
        assert paid["status"] == "Paid"
        actions = [c.args[3] for c in self.audit.log_action.call_args_list]
        assert actions == ["create", "approve", "pay"]

    def test_reject_stores_reason(self):
        expense = self._submit()

        rejected = self.service.change_status(
            expense["id"], ExpenseStatus.REJECTED, self.approver, reason="No receipt"
        )

        assert rejected["status"] == "Rejected"
        assert rejected["rejectionReason"] == "No receipt"

    def test_paying_pending_expense_fails(self):
        expense = self._submit()

        with pytest.raises(ValidationException):
            self.service.change_status(expense["id"], ExpenseStatus.PAID, self.approver)

    def test_edit_only_while_pending(self):
        expense = self._submit()
        updated = self.service.update_expense(expense["id"], UpdateExpenseRequest(amount=99.0), self.employee)
        assert updated["amount"] == 99.0

        self.service.change_status(expense["id"], ExpenseStatus.APPROVED, self.approver)
        with pytest.raises(ValidationException):
            self.service.update_expense(expense["id"], UpdateExpenseRequest(amount=1.0), self.employee)

    def test_only_submitter_may_edit(self):
        expense = self._submit()

        with pytest.raises(AuthorizationException):
            self.service.update_expense(expense["id"], UpdateExpenseRequest(amount=1.0), self.approver)

    def test_other_tenant_cannot_see_expense(self):
        expense = self._submit()
        outsider = make_context("admin", org_id="org-beta")

        with pytest.raises(NotFoundException):
            self.service.get_expense(expense["id"], outsider)

    def test_stats_cover_own_expenses(self):
        self._submit(amount=10.0)
        self._submit(amount=15.0)

        stats = self.service.stats(self.employee)

        assert stats.total_count == 2
        assert stats.pending_amount == pytest.approx(25.0)
