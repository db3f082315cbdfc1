# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the field CRM platform.
"""

import re
from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from utils.clock import ensure_utc, day_bucket, utc_now
from .base import BaseEntity, DocumentModel
from .enums import (
    ClientCategory,
    ClientStatus,
    MeetingType,
    MeetingStatus,
    ProjectStatus,
    ProjectPriority,
    ExpenseCategory,
    ExpenseStatus,
    LocationEventType,
)

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def _required_text(value: str, label: str) -> str:
    if not value or not value.strip():
        raise ValueError(f'{label} cannot be empty')
    return value.strip()


class Client(BaseEntity):
    """Client aggregate root. Owns branch locations."""

    category: ClientCategory = Field(..., description="Business category")
    client_name: str = Field(..., min_length=1, max_length=200, description="Client name")
    sales_person: Optional[str] = Field(None, max_length=200, description="Responsible sales person")
    status: ClientStatus = Field(default=ClientStatus.ACTIVE, description="Account status")

    @field_validator('client_name')
    @classmethod
    def validate_client_name(cls, v):
        """Validate client name."""
        return _required_text(v, 'Client name')


class BranchLocation(BaseEntity):
    """Physical branch of a client."""

    name: str = Field(..., min_length=1, max_length=200, description="Branch name")
    address_line1: Optional[str] = Field(None, description="Address line 1")
    address_line2: Optional[str] = Field(None, description="Address line 2")
    city: Optional[str] = Field(None, description="City")
    state: Optional[str] = Field(None, description="State or province")
    country: Optional[str] = Field(None, description="Country")
    latitude: Optional[float] = Field(None, ge=-90, le=90, description="Latitude")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="Longitude")
    client: str = Field(..., description="Owning client ID")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate branch name."""
        return _required_text(v, 'Branch name')


class ContactPerson(BaseEntity):
    """Contact person at a branch location."""

    name: str = Field(..., min_length=1, max_length=200, description="Contact name")
    email: Optional[str] = Field(None, description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone")
    designation: Optional[str] = Field(None, description="Job title")
    branch_location: str = Field(..., description="Owning branch location ID")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format when given."""
        if v is None or v == '':
            return None
        if not re.match(EMAIL_PATTERN, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()


class Meeting(BaseEntity):
    """Meeting with a client."""

    title: Optional[str] = Field(None, max_length=200, description="Meeting title")
    description: Optional[str] = Field(None, max_length=2000, description="Meeting description")
    date: datetime = Field(..., description="Meeting date")
    time: str = Field(..., description="Meeting time of day (HH:MM)")
    duration: int = Field(default=60, ge=1, le=24 * 60, description="Duration in minutes")
    location: Optional[str] = Field(None, description="Meeting place")
    type: MeetingType = Field(default=MeetingType.OTHER, description="Meeting type")
    status: MeetingStatus = Field(default=MeetingStatus.SCHEDULED, description="Meeting status")
    client: str = Field(..., description="Client ID")
    attendees: List[str] = Field(default_factory=list, description="Attendee names")
    meeting_notes: Optional[str] = Field(None, description="Notes taken during the meeting")
    follow_up_required: bool = Field(default=False, description="Whether a follow-up is needed")

    @field_validator('time')
    @classmethod
    def validate_time(cls, v):
        """Validate HH:MM time format."""
        if not re.match(r'^([01]\d|2[0-3]):[0-5]\d$', v):
            raise ValueError('Time must use HH:MM format')
        return v

    @model_validator(mode='after')
    def default_title(self):
        """Title defaults to the meeting date."""
        if not self.title:
            self.title = f"Meeting - {self.date.date().isoformat()}"
        return self


class Milestone(BaseModel):
    """Project milestone."""

    name: str = Field(..., min_length=1, description="Milestone name")
    due_date: Optional[datetime] = Field(None, alias="dueDate", description="Due date")
    completed: bool = Field(default=False, description="Completion flag")

    model_config = ConfigDict(populate_by_name=True)


class Project(BaseEntity):
    """Project delivered for a client."""

    title: str = Field(..., min_length=1, max_length=200, description="Project title")
    description: Optional[str] = Field(None, max_length=5000, description="Project description")
    start_date: Optional[datetime] = Field(None, description="Start date")
    end_date: Optional[datetime] = Field(None, description="End date")
    budget: Optional[float] = Field(None, ge=0, description="Budget amount")
    status: ProjectStatus = Field(default=ProjectStatus.PLANNING, description="Project status")
    priority: ProjectPriority = Field(default=ProjectPriority.MEDIUM, description="Project priority")
    progress: int = Field(default=0, ge=0, le=100, description="Completion percentage")
    client: str = Field(..., description="Client ID")
    team_members: List[str] = Field(default_factory=list, description="Team member names")
    milestones: List[Milestone] = Field(default_factory=list, description="Milestones")
    notes: Optional[str] = Field(None, description="Free-form notes")
    assign_to: Optional[str] = Field(None, description="Assigned employee ID")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        """Validate project title."""
        return _required_text(v, 'Project title')

    @model_validator(mode='after')
    def validate_dates(self):
        """End date must not precede the start date."""
        if self.start_date and self.end_date and ensure_utc(self.end_date) < ensure_utc(self.start_date):
            raise ValueError('End date cannot be before start date')
        return self


class Expense(BaseEntity):
    """Employee expense claim."""

    employee_id: str = Field(..., description="Employee who incurred the expense")
    category: ExpenseCategory = Field(..., description="Expense category")
    amount: float = Field(..., ge=0, description="Expense amount")
    currency: str = Field(default="INR", min_length=3, max_length=3, description="ISO currency code")
    description: str = Field(..., min_length=1, max_length=1000, description="What was purchased")
    receipt: Optional[str] = Field(None, description="Receipt reference or URL")
    date: datetime = Field(..., description="Date the expense was incurred")
    location: Optional[str] = Field(None, description="Where the expense was incurred")
    client: Optional[str] = Field(None, description="Related client ID")
    status: ExpenseStatus = Field(default=ExpenseStatus.PENDING, description="Approval status")
    approved_by: Optional[str] = Field(None, description="Approver user ID")
    approval_date: Optional[datetime] = Field(None, description="Approval or rejection timestamp")
    rejection_reason: Optional[str] = Field(None, description="Reason for rejection")

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        """Currency codes are upper case."""
        return v.upper()

    @model_validator(mode='after')
    def validate_status_fields(self):
        """Validate status-dependent fields."""
        if self.status == ExpenseStatus.REJECTED and not self.rejection_reason:
            raise ValueError('Rejection reason is required when status is Rejected')
        return self


class LocationSample(DocumentModel):
    """One GPS fix reported for an employee. Append-only."""

    organization_id: Optional[str] = Field(None, description="Organization scope identifier")
    employee: str = Field(..., description="Employee (user) ID")
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")
    accuracy: Optional[float] = Field(None, ge=0, description="Reported accuracy in meters")
    timestamp: datetime = Field(default_factory=utc_now, description="Time of the fix")
    date: Optional[datetime] = Field(None, description="UTC day bucket of the timestamp")
    event_type: LocationEventType = Field(default=LocationEventType.TRACKING, description="Sample origin")

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v):
        """Store timestamps as aware UTC datetimes."""
        return ensure_utc(v)

    @model_validator(mode='after')
    def fill_day_bucket(self):
        """Derive the day bucket from the timestamp when missing."""
        if self.date is None:
            self.date = day_bucket(self.timestamp)
        return self


class User(BaseEntity):
    """Employee account with a single role from the role table."""

    email: str = Field(..., description="User email address")
    name: str = Field(..., min_length=1, max_length=200, description="User full name")
    password_hash: str = Field(..., description="Hashed password")
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
    last_login: Optional[datetime] = Field(None, description="Last login timestamp")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if not re.match(EMAIL_PATTERN, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate user name."""
        return _required_text(v, 'User name')

    def to_public_dict(self) -> Dict[str, Any]:
        """Serialize without the password hash."""
        data = self.model_dump(by_alias=True, mode='json', exclude={'password_hash'})
        data['id'] = data.pop('_id')
        return data


class AuditLog(DocumentModel):
    """Audit log entry for compliance and accountability."""

    timestamp: datetime = Field(default_factory=utc_now, description="Action timestamp")
    user_id: str = Field(..., description="User who performed the action")
    organization_id: str = Field(..., description="Organization scope")
    entity: str = Field(..., description="Entity type")
    entity_id: str = Field(..., description="Entity identifier")
    action: str = Field(..., description="Action performed")
    before: Optional[Dict[str, Any]] = Field(None, description="State before action")
    after: Optional[Dict[str, Any]] = Field(None, description="State after action")
    changes: List[Dict[str, Any]] = Field(default_factory=list, description="Field-level changes of an update")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    session_id: Optional[str] = Field(None, description="Session identifier")
    trace_id: Optional[str] = Field(None, description="OpenTelemetry trace ID")
    span_id: Optional[str] = Field(None, description="OpenTelemetry span ID")
    schema_version: int = Field(default=1, description="Schema version")

    @field_validator('entity')
    @classmethod
    def validate_entity(cls, v):
        """Validate entity type."""
        valid_entities = [
            'client', 'branch_location', 'contact_person', 'meeting',
            'project', 'expense', 'user', 'location_sample'
        ]
        if v not in valid_entities:
            raise ValueError(f'Invalid entity type: {v}')
        return v

    @field_validator('action')
    @classmethod
    def validate_action(cls, v):
        """Validate action type."""
        valid_actions = [
            'create', 'update', 'delete', 'approve', 'reject', 'pay',
            'login', 'logout', 'reset'
        ]
        if v not in valid_actions:
            raise ValueError(f'Invalid action type: {v}')
        return v


class UserContext(BaseModel):
    """User context for request processing with authentication and authorization data."""

    user_id: str = Field(..., description="Authenticated user ID")
    org_id: str = Field(..., description="User's organization ID")
    email: Optional[str] = Field(None, description="User email")
    name: Optional[str] = Field(None, description="User display name")
    role: str = Field(default="user", description="Role key")
    permissions: List[str] = Field(default_factory=list, description="User's effective permissions")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    session_id: Optional[str] = Field(None, description="Session identifier")

    model_config = ConfigDict(
        use_enum_values=True
    )

    def has_permission(self, permission: str) -> bool:
        """Check if user has a specific permission."""
        return permission in self.permissions
