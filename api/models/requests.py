# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

import re
import datetime as dt
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import (
    ClientCategory,
    ClientStatus,
    MeetingType,
    MeetingStatus,
    ProjectStatus,
    ProjectPriority,
    ExpenseCategory,
    ExpenseStatus,
)


class RequestModel(BaseModel):
    """Request bodies accept camelCase or snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        str_strip_whitespace=True
    )


# Path and query parameters

class ClientPath(BaseModel):
    client_id: str = Field(..., description="Client ID")


class MeetingPath(BaseModel):
    meeting_id: str = Field(..., description="Meeting ID")


class ProjectPath(BaseModel):
    project_id: str = Field(..., description="Project ID")


class ExpensePath(BaseModel):
    expense_id: str = Field(..., description="Expense ID")


class EmployeePath(BaseModel):
    employee_id: str = Field(..., description="Employee (user) ID")


class DepartmentPath(BaseModel):
    department: str = Field(..., description="Department key")


class RolePath(BaseModel):
    role: str = Field(..., description="Role key")


class MovementQuery(BaseModel):
    date: Optional[dt.date] = Field(None, description="Day to report (YYYY-MM-DD), defaults to today")


class LocationHistoryQuery(BaseModel):
    days: Optional[int] = Field(None, ge=1, le=90, description="Look-back window in days")


class DateRangeQuery(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    start_date: Optional[dt.date] = Field(None, description="Range start (inclusive)")
    end_date: Optional[dt.date] = Field(None, description="Range end (inclusive)")


class ExpenseFilters(DateRangeQuery):
    status: Optional[ExpenseStatus] = Field(None, description="Filter by status")
    category: Optional[ExpenseCategory] = Field(None, description="Filter by category")


# Authentication

class LocationFix(RequestModel):
    """Optional coordinates sent with login and logout."""

    latitude: Optional[float] = Field(None, ge=-90, le=90, description="Latitude")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="Longitude")
    accuracy: Optional[float] = Field(None, ge=0, description="Accuracy in meters")

    def has_fix(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class LoginRequest(LocationFix):
    """Request model for user login."""

    email: str = Field(..., description="User email")
    password: str = Field(..., min_length=1, description="User password")

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class LogoutRequest(LocationFix):
    """Request model for logout; coordinates are optional."""


class RefreshTokenRequest(RequestModel):
    """Request model for token refresh."""

    refresh_token: str = Field(..., description="Refresh token")


class RegisterRequest(RequestModel):
    """Request model for self registration."""

    name: str = Field(..., min_length=1, max_length=200, description="Full name")
    email: str = Field(..., description="Email address")
    password: str = Field(..., min_length=6, description="Password")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()


class RegisterEmployeeRequest(RegisterRequest):
    """Request model for creating an employee account."""

    role: str = Field(default="user", description="Role key")
    employee_id: Optional[str] = Field(None, description="HR employee number")
    first_name: Optional[str] = Field(None, description="First name")
    last_name: Optional[str] = Field(None, description="Last name")
    designation: Optional[str] = Field(None, description="Job title")
    mobile: Optional[str] = Field(None, description="Mobile number")
    department: Optional[str] = Field(None, description="Department key")
    reporting: Optional[str] = Field(None, description="Reporting line")
    address_line1: Optional[str] = Field(None, description="Address line 1")
    address_line2: Optional[str] = Field(None, description="Address line 2")
    city: Optional[str] = Field(None, description="City")
    state: Optional[str] = Field(None, description="State")
    country: Optional[str] = Field(None, description="Country")


# Clients

class ContactPersonInput(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    designation: Optional[str] = None


class BranchLocationInput(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    contacts: List[ContactPersonInput] = Field(default_factory=list)


class CreateClientRequest(RequestModel):
    """Request model for creating a client with its locations and contacts."""

    category: ClientCategory = Field(..., description="Business category")
    client_name: str = Field(..., min_length=1, max_length=200, description="Client name")
    sales_person: Optional[str] = Field(None, description="Responsible sales person")
    status: ClientStatus = Field(default=ClientStatus.ACTIVE, description="Account status")
    locations: List[BranchLocationInput] = Field(default_factory=list, description="Branch locations")


class UpdateClientRequest(RequestModel):
    """Request model for updating client fields."""

    category: Optional[ClientCategory] = None
    client_name: Optional[str] = Field(None, min_length=1, max_length=200)
    sales_person: Optional[str] = None
    status: Optional[ClientStatus] = None


# Meetings

class CreateMeetingRequest(RequestModel):
    """Request model for scheduling a meeting."""

    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    date: datetime = Field(..., description="Meeting date")
    time: str = Field(..., description="Meeting time (HH:MM)")
    duration: int = Field(default=60, ge=1, le=24 * 60)
    location: Optional[str] = None
    type: MeetingType = Field(default=MeetingType.OTHER)
    status: MeetingStatus = Field(default=MeetingStatus.SCHEDULED)
    client: str = Field(..., description="Client ID")
    attendees: List[str] = Field(default_factory=list)
    meeting_notes: Optional[str] = None
    follow_up_required: bool = False


class UpdateMeetingRequest(RequestModel):
    """Request model for updating a meeting."""

    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    date: Optional[datetime] = None
    time: Optional[str] = None
    duration: Optional[int] = Field(None, ge=1, le=24 * 60)
    location: Optional[str] = None
    type: Optional[MeetingType] = None
    status: Optional[MeetingStatus] = None
    attendees: Optional[List[str]] = None
    meeting_notes: Optional[str] = None
    follow_up_required: Optional[bool] = None


# Projects

class MilestoneInput(RequestModel):
    name: str = Field(..., min_length=1)
    due_date: Optional[datetime] = None
    completed: bool = False


class CreateProjectRequest(RequestModel):
    """Request model for creating a project."""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    budget: Optional[float] = Field(None, ge=0)
    status: ProjectStatus = Field(default=ProjectStatus.PLANNING)
    priority: ProjectPriority = Field(default=ProjectPriority.MEDIUM)
    progress: int = Field(default=0, ge=0, le=100)
    client: str = Field(..., description="Client ID")
    team_members: List[str] = Field(default_factory=list)
    milestones: List[MilestoneInput] = Field(default_factory=list)
    notes: Optional[str] = None
    assign_to: Optional[str] = None


class UpdateProjectRequest(RequestModel):
    """Request model for updating a project."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    budget: Optional[float] = Field(None, ge=0)
    status: Optional[ProjectStatus] = None
    priority: Optional[ProjectPriority] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    team_members: Optional[List[str]] = None
    milestones: Optional[List[MilestoneInput]] = None
    notes: Optional[str] = None
    assign_to: Optional[str] = None


# Expenses

class CreateExpenseRequest(RequestModel):
    """Request model for submitting an expense."""

    category: ExpenseCategory
    amount: float = Field(..., ge=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)
    description: str = Field(..., min_length=1, max_length=1000)
    receipt: Optional[str] = None
    date: datetime
    location: Optional[str] = None
    client: Optional[str] = None


class UpdateExpenseRequest(RequestModel):
    """Request model for editing a pending expense."""

    category: Optional[ExpenseCategory] = None
    amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    receipt: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    client: Optional[str] = None


class RejectExpenseRequest(RequestModel):
    """Request model for rejecting an expense."""

    reason: str = Field(..., min_length=1, max_length=1000, description="Rejection reason")


# Location tracking

class LogLocationRequest(RequestModel):
    """Request model for a periodic GPS fix."""

    latitude: float = Field(..., ge=-90, le=90, description="Latitude")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude")
    accuracy: Optional[float] = Field(None, ge=0, description="Accuracy in meters")

    @model_validator(mode='before')
    @classmethod
    def reject_non_numeric(cls, data):
        """Booleans are not coordinates."""
        if isinstance(data, dict):
            for key in ('latitude', 'longitude', 'accuracy'):
                if isinstance(data.get(key), bool):
                    raise ValueError(f'{key} must be numeric')
        return data
