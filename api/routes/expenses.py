# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Expense endpoints with the approval workflow.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from middleware.auth import require_permission
from middleware.validation import parse_body
from models.entities import UserContext
from models.enums import ExpenseStatus
from models.requests import (
    CreateExpenseRequest,
    ExpenseFilters,
    ExpensePath,
    RejectExpenseRequest,
    UpdateExpenseRequest
)

tracer = trace.get_tracer(__name__)

expenses_tag = Tag(name="Expenses", description="Expense claims and approvals")
expenses_bp = APIBlueprint(
    'expenses',
    __name__,
    url_prefix='/api/expenses',
    abp_tags=[expenses_tag]
)

COLLECTION_PATH = '/api/expenses'


def _actions(expense: dict, user_context: UserContext) -> dict:
    """Affordances that are valid for the expense's current status."""
    actions = {}
    status = expense.get("status")
    if status == ExpenseStatus.PENDING.value and expense.get("employeeId") == user_context.user_id:
        actions.update({"update": ("", "PUT"), "delete": ("", "DELETE")})
    if user_context.has_permission("expense:approve"):
        if status == ExpenseStatus.PENDING.value:
            actions.update({"approve": ("approve", "POST"), "reject": ("reject", "POST")})
        elif status == ExpenseStatus.APPROVED.value:
            actions["pay"] = ("pay", "POST")
    return actions


def _resource(expense: dict, user_context: UserContext) -> dict:
    return current_app.hal_formatter.format_resource(expense, COLLECTION_PATH, _actions(expense, user_context))


@expenses_bp.get('')
@require_permission("expense:read")
def list_expenses(user_context: UserContext, query: ExpenseFilters):
    """
    List the user's expenses, filtered by status, category and date range.

    The end date is inclusive.
    """
    with tracer.start_as_current_span("expenses.list_expenses") as span:
        expenses = current_app.expense_service.list_expenses(user_context, query)
        span.set_attribute("expenses.count", len(expenses))
        span.set_status(Status(StatusCode.OK))
        items = [_resource(expense, user_context) for expense in expenses]
        return jsonify(current_app.hal_formatter.builder.build_collection_response(items, COLLECTION_PATH))


@expenses_bp.get('/stats/dashboard')
@require_permission("expense:read")
def expense_stats(user_context: UserContext):
    """
    Expense counts and amounts per status.
    """
    with tracer.start_as_current_span("expenses.stats") as span:
        stats = current_app.expense_service.stats(user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(stats.to_json(), f"{COLLECTION_PATH}/stats/dashboard"))


@expenses_bp.get('/<string:expense_id>')
@require_permission("expense:read")
def get_expense(user_context: UserContext, path: ExpensePath):
    """
    Get an expense (submitter, or users with expense:manage_all).
    """
    with tracer.start_as_current_span("expenses.get_expense") as span:
        expense = current_app.expense_service.get_expense(path.expense_id, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(_resource(expense, user_context))


@expenses_bp.post('')
@require_permission("expense:create")
def create_expense(user_context: UserContext):
    """
    Submit an expense. New expenses are Pending.
    """
    with tracer.start_as_current_span("expenses.create_expense") as span:
        expense = current_app.expense_service.create_expense(parse_body(CreateExpenseRequest), user_context)
        span.set_attribute("expense.id", expense["id"])
        span.set_status(Status(StatusCode.OK))
        return jsonify(_resource(expense, user_context)), 201


@expenses_bp.put('/<string:expense_id>')
@require_permission("expense:update")
def update_expense(user_context: UserContext, path: ExpensePath):
    """
    Edit a pending expense.
    """
    with tracer.start_as_current_span("expenses.update_expense") as span:
        expense = current_app.expense_service.update_expense(
            path.expense_id, parse_body(UpdateExpenseRequest), user_context
        )
        span.set_status(Status(StatusCode.OK))
        return jsonify(_resource(expense, user_context))


@expenses_bp.delete('/<string:expense_id>')
@require_permission("expense:delete")
def delete_expense(user_context: UserContext, path: ExpensePath):
    """
    Delete an expense.
    """
    with tracer.start_as_current_span("expenses.delete_expense") as span:
        current_app.expense_service.delete_expense(path.expense_id, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify({"message": "Expense deleted successfully", "id": path.expense_id})


@expenses_bp.post('/<string:expense_id>/approve')
@require_permission("expense:approve")
def approve_expense(user_context: UserContext, path: ExpensePath):
    """
    Approve a pending expense.
    """
    with tracer.start_as_current_span("expenses.approve_expense") as span:
        expense = current_app.expense_service.change_status(path.expense_id, ExpenseStatus.APPROVED, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(_resource(expense, user_context))


@expenses_bp.post('/<string:expense_id>/reject')
@require_permission("expense:approve")
def reject_expense(user_context: UserContext, path: ExpensePath):
    """
    Reject a pending expense. A reason is required.
    """
    with tracer.start_as_current_span("expenses.reject_expense") as span:
        reject_request = parse_body(RejectExpenseRequest)
        expense = current_app.expense_service.change_status(
            path.expense_id, ExpenseStatus.REJECTED, user_context, reason=reject_request.reason
        )
        span.set_status(Status(StatusCode.OK))
        return jsonify(_resource(expense, user_context))


@expenses_bp.post('/<string:expense_id>/pay')
@require_permission("expense:approve")
def pay_expense(user_context: UserContext, path: ExpensePath):
    """
    Mark an approved expense as paid.
    """
    with tracer.start_as_current_span("expenses.pay_expense") as span:
        expense = current_app.expense_service.change_status(path.expense_id, ExpenseStatus.PAID, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(_resource(expense, user_context))
