# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Expense reporting service with the approval workflow.
"""

import logging
from typing import Any, Dict, List, Optional
from opentelemetry import trace

from domain import expenses as expense_rules
from middleware.error_handler import AuthorizationException, ValidationException
from middleware.validation import validate_model
from models.entities import Expense, UserContext
from models.enums import ExpenseStatus
from models.requests import CreateExpenseRequest, ExpenseFilters, UpdateExpenseRequest
from models.responses import ExpenseStats
from services.base import TenantScopedService
from services.mongodb import serialize_document
from utils.clock import day_range

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

_ACTIONS = {
    ExpenseStatus.APPROVED: "approve",
    ExpenseStatus.REJECTED: "reject",
    ExpenseStatus.PAID: "pay",
}


def build_expense_query(org_id: str, employee_id: str, filters: Optional[ExpenseFilters]) -> Dict[str, Any]:
    """MongoDB filter for an employee's expenses. The end date includes its whole day."""
    query: Dict[str, Any] = {"organizationId": org_id, "employeeId": employee_id}
    if filters is None:
        return query

    if filters.status:
        query["status"] = filters.status
    if filters.category:
        query["category"] = filters.category

    date_filter: Dict[str, Any] = {}
    if filters.start_date:
        date_filter["$gte"] = day_range(filters.start_date)[0]
    if filters.end_date:
        date_filter["$lt"] = day_range(filters.end_date)[1]
    if date_filter:
        query["date"] = date_filter
    return query


class ExpenseService(TenantScopedService):
    """Expenses are owned by the employee who submitted them."""

    collection = "expenses"
    resource = "expense"
    owner_field = "employeeId"

    def list_expenses(self, user_context: UserContext, filters: Optional[ExpenseFilters] = None) -> List[Dict[str, Any]]:
        with tracer.start_as_current_span("expenses.list") as span:
            query = build_expense_query(user_context.org_id, user_context.user_id, filters)
            documents = self.mongodb_service.find(self.collection, query, sort=[("date", -1)])
            span.set_attribute("expenses.count", len(documents))
            return [serialize_document(d) for d in documents]

    def get_expense(self, expense_id: str, user_context: UserContext) -> Dict[str, Any]:
        with tracer.start_as_current_span("expenses.get"):
            return serialize_document(self._get_owned(expense_id, user_context))

    def create_expense(self, request: CreateExpenseRequest, user_context: UserContext) -> Dict[str, Any]:
        with tracer.start_as_current_span("expenses.create") as span:
            now = self.clock()
            expense = validate_model(Expense, {
                **request.model_dump(),
                "employee_id": user_context.user_id,
                "status": ExpenseStatus.PENDING,
                "organization_id": user_context.org_id,
                "created_by": user_context.user_id,
                "created_at": now,
                "updated_at": now
            })
            expense_id = self.mongodb_service.insert_one(self.collection, expense.to_document())

            span.set_attribute("expense.id", expense_id)
            logger.info(
                "Expense submitted",
                extra={
                    "expense_id": expense_id,
                    "user_id": user_context.user_id,
                    "amount": expense.amount,
                    "currency": expense.currency
                }
            )
            self._audit(user_context, expense_id, "create", after={"amount": expense.amount, "category": expense.category})
            return serialize_document(expense.to_document())

    def update_expense(self, expense_id: str, request: UpdateExpenseRequest, user_context: UserContext) -> Dict[str, Any]:
        """Edit a pending expense. Only the submitter may edit."""
        with tracer.start_as_current_span("expenses.update"):
            existing = self._get_own(expense_id, user_context)
            if not expense_rules.can_edit(existing):
                raise ValidationException(f"Cannot edit an expense with status {existing.get('status')}")

            updates = request.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
            validate_model(Expense, {**existing, **updates}, "Invalid expense update")

            updated = self.mongodb_service.update_one(
                self.collection, {"_id": existing["_id"]}, self._stamp(updates, user_context)
            )
            self._audit(user_context, expense_id, "update", after=serialize_document(
                {k: updated.get(k) for k in updates}
            ))
            return serialize_document(updated)

    def delete_expense(self, expense_id: str, user_context: UserContext) -> None:
        with tracer.start_as_current_span("expenses.delete"):
            existing = self._get_own(expense_id, user_context)
            self.mongodb_service.find_by_id_and_delete(self.collection, expense_id)
            logger.info(f"Expense deleted: {expense_id}", extra={"user_id": user_context.user_id})
            self._audit(user_context, expense_id, "delete", before={"amount": existing.get("amount")})

    def change_status(
        self,
        expense_id: str,
        target: ExpenseStatus,
        user_context: UserContext,
        reason: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Approve, reject or pay an expense of the tenant.

        The caller must already hold expense:approve.
        """
        with tracer.start_as_current_span("expenses.change_status") as span:
            span.set_attributes({"expense.id": expense_id, "expense.target_status": ExpenseStatus(target).value})
            existing = self._get_in_org(expense_id, user_context)

            result = expense_rules.transition(existing, target, user_context.user_id, self.clock(), reason)
            if not result.success:
                raise ValidationException(result.error_message)

            updated = self.mongodb_service.update_one(
                self.collection, {"_id": existing["_id"]}, result.updates
            )
            logger.info(
                f"Expense {expense_id} moved from {existing.get('status')} to {updated.get('status')}",
                extra={"expense_id": expense_id, "user_id": user_context.user_id}
            )
            self._audit(
                user_context, expense_id, _ACTIONS[ExpenseStatus(target)],
                before={"status": existing.get("status")},
                after={"status": updated.get("status"), "rejectionReason": updated.get("rejectionReason")}
            )
            return serialize_document(updated)

    def stats(self, user_context: UserContext) -> ExpenseStats:
        """Totals over the requester's expenses."""
        with tracer.start_as_current_span("expenses.stats"):
            documents = self.mongodb_service.find(
                self.collection,
                {"organizationId": user_context.org_id, "employeeId": user_context.user_id}
            )
            return expense_rules.compute_stats(documents)

    def _get_own(self, expense_id: str, user_context: UserContext) -> Dict[str, Any]:
        """Submitter-only access, regardless of elevated privilege."""
        expense = self._get_in_org(expense_id, user_context)
        if expense.get("employeeId") != user_context.user_id:
            raise AuthorizationException("Only the submitter can modify this expense")
        return expense
