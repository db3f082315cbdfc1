# SPDX-License-Identifier: Apache-2.0

"""
Expense domain logic for the approval workflow.

Pure functions for edit rules, status transitions and per-status totals.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from models.enums import ExpenseStatus
from models.responses import ExpenseStats

# Allowed status transitions: current -> reachable
TRANSITIONS = {
    ExpenseStatus.PENDING.value: {ExpenseStatus.APPROVED.value, ExpenseStatus.REJECTED.value},
    ExpenseStatus.APPROVED.value: {ExpenseStatus.PAID.value},
    ExpenseStatus.REJECTED.value: set(),
    ExpenseStatus.PAID.value: set(),
}


@dataclass
class TransitionResult:
    """Result of an expense status change."""
    success: bool
    updates: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None


def can_edit(expense: Dict[str, Any]) -> bool:
    """Only pending expenses may be edited."""
    return expense.get("status") == ExpenseStatus.PENDING.value


def transition(
    expense: Dict[str, Any],
    target: ExpenseStatus,
    actor_id: str,
    now: datetime,
    reason: Optional[str] = None
) -> TransitionResult:
    """
    Compute the document updates for moving an expense to a new status.

    Args:
        expense: Current expense document
        target: Desired status
        actor_id: User performing the change
        now: Current time
        reason: Rejection reason, required when rejecting

    Returns:
        TransitionResult with a $set payload or an error message
    """
    current = expense.get("status", ExpenseStatus.PENDING.value)
    target_value = ExpenseStatus(target).value

    if target_value not in TRANSITIONS.get(current, set()):
        return TransitionResult(
            success=False,
            error_message=f"Cannot change expense from {current} to {target_value}"
        )

    updates: Dict[str, Any] = {"status": target_value, "updatedAt": now, "updatedBy": actor_id}

    if target_value == ExpenseStatus.APPROVED.value:
        updates.update({"approvedBy": actor_id, "approvalDate": now, "rejectionReason": None})
    elif target_value == ExpenseStatus.REJECTED.value:
        if not reason or not reason.strip():
            return TransitionResult(success=False, error_message="Rejection reason is required")
        updates.update({"approvedBy": actor_id, "approvalDate": now, "rejectionReason": reason.strip()})

    return TransitionResult(success=True, updates=updates)


def compute_stats(expenses: Iterable[Dict[str, Any]]) -> ExpenseStats:
    """Counts and amount totals overall and per status."""
    stats = ExpenseStats()
    for expense in expenses:
        amount = float(expense.get("amount") or 0)
        stats.total_count += 1
        stats.total_amount += amount

        status = str(expense.get("status", "")).lower()
        if status in ("pending", "approved", "rejected", "paid"):
            setattr(stats, f"{status}_count", getattr(stats, f"{status}_count") + 1)
            setattr(stats, f"{status}_amount", getattr(stats, f"{status}_amount") + amount)

    for field in ("total", "pending", "approved", "rejected", "paid"):
        setattr(stats, f"{field}_amount", round(getattr(stats, f"{field}_amount"), 2))
    return stats
