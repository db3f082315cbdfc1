# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the field CRM platform.
"""

from enum import Enum


class ClientCategory(str, Enum):
    """Client business category."""
    ENTERPRISE = "Enterprise"
    SMB = "SMB"
    STARTUP = "Startup"
    GOVERNMENT = "Government"
    NON_PROFIT = "Non-Profit"
    OTHER = "Other"


class ClientStatus(str, Enum):
    """Client account status."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    SUSPENDED = "Suspended"


class MeetingType(str, Enum):
    """Meeting type enumeration."""
    INITIAL_CONSULTATION = "Initial Consultation"
    FOLLOW_UP = "Follow-up"
    PRESENTATION = "Presentation"
    TRAINING = "Training"
    SUPPORT = "Support"
    OTHER = "Other"


class MeetingStatus(str, Enum):
    """Meeting lifecycle status."""
    SCHEDULED = "scheduled"
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ProjectStatus(str, Enum):
    """Project lifecycle status."""
    PLANNING = "Planning"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"


class ProjectPriority(str, Enum):
    """Project priority levels."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ExpenseCategory(str, Enum):
    """Expense category enumeration."""
    TRAVEL = "Travel"
    MEALS = "Meals"
    ACCOMMODATION = "Accommodation"
    EQUIPMENT = "Equipment"
    OFFICE_SUPPLIES = "Office Supplies"
    OTHER = "Other"


class ExpenseStatus(str, Enum):
    """Expense approval workflow status."""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PAID = "Paid"


class LocationEventType(str, Enum):
    """Origin of a location sample."""
    LOGIN = "login"
    LOGOUT = "logout"
    TRACKING = "tracking"


class PresenceStatus(str, Enum):
    """Presence derived from the recency or kind of the latest sample."""
    ONLINE = "online"
    IDLE = "idle"
    OFFLINE = "offline"
    NO_DATA = "no_data"


class MarkerType(str, Enum):
    """Map marker kinds for location history."""
    ONLINE = "online"
    OFFLINE = "offline"


class Department(str, Enum):
    """Employee departments."""
    SALES = "sales"
    MARKETING = "marketing"
    HR = "hr"
    FINANCE = "finance"
    IT = "it"
    OPERATIONS = "operations"
