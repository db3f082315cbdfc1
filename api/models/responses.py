# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel

from .enums import PresenceStatus, MarkerType


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class ResponseModel(BaseModel):
    """Responses are rendered with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True
    )

    def to_json(self) -> dict:
        return self.model_dump(mode='json', by_alias=True)


class DeletedCounts(ResponseModel):
    """Number of dependents removed with a client."""

    branch_locations: int = Field(default=0, ge=0)
    contact_persons: int = Field(default=0, ge=0)
    meetings: int = Field(default=0, ge=0)
    projects: int = Field(default=0, ge=0)


class DeletionSummary(ResponseModel):
    """Outcome of a client cascade deletion."""

    client_id: str = Field(..., description="Deleted client ID")
    client_name: str = Field(..., description="Deleted client name")
    counts: DeletedCounts = Field(default_factory=DeletedCounts)


class TrackPoint(ResponseModel):
    """A location sample annotated with its distance and time from the previous one."""

    id: Optional[str] = None
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    timestamp: datetime
    event_type: Optional[str] = None
    distance_from_previous_km: float = 0.0
    minutes_from_previous: float = 0.0


class TrackReport(ResponseModel):
    """Movement of one employee over a time window."""

    points: List[TrackPoint] = Field(default_factory=list)
    total_distance_km: float = 0.0
    total_time_minutes: float = 0.0

    @property
    def total_points(self) -> int:
        return len(self.points)


class LocationMarker(ResponseModel):
    """Map marker derived from a location sample."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    timestamp: datetime
    type: MarkerType


class PresenceResult(ResponseModel):
    """Presence status derived from the most recent sample."""

    status: PresenceStatus
    minutes_since_update: Optional[float] = None
    location: Optional[LocationMarker] = None


class ClassifiedHistory(ResponseModel):
    """Current marker, past sign-off points and the sample trail, oldest first."""

    status: PresenceStatus
    locations: List[TrackPoint] = Field(default_factory=list)
    online_marker: Optional[LocationMarker] = None
    offline_markers: List[LocationMarker] = Field(default_factory=list)


class DashboardMetrics(ResponseModel):
    """Headline numbers for the reports dashboard."""

    total_meetings: int = 0
    total_clients: int = 0
    repeat_visits: int = 0


class GroupCount(ResponseModel):
    """Number of records sharing one value of a field."""

    key: Optional[str] = None
    count: int = 0


class LocationMeetings(ResponseModel):
    """Meetings held at one place."""

    location: str
    total_meetings: int = 0
    clients_visited: int = 0


class DailyActivity(ResponseModel):
    """Meetings held on one UTC day."""

    day: date
    count: int = 0
    types: List[str] = Field(default_factory=list)


class ActivityReport(ResponseModel):
    """Meeting activity per day, newest first, and per meeting type."""

    daily_activity: List[DailyActivity] = Field(default_factory=list)
    type_distribution: List[GroupCount] = Field(default_factory=list)


class ClientVisits(ResponseModel):
    """Visit statistics for one client."""

    client_id: str
    client_name: Optional[str] = None
    visit_count: int = 0
    first_visit_date: Optional[datetime] = None
    last_visit_date: Optional[datetime] = None


class ProjectStatusReport(ResponseModel):
    """Project counts by status and priority."""

    total_projects: int = 0
    active_projects: int = 0
    planned_projects: int = 0
    by_status: List[GroupCount] = Field(default_factory=list)
    by_priority: List[GroupCount] = Field(default_factory=list)


class DashboardReport(ResponseModel):
    """Dashboard metrics with meetings per place for a date range."""

    metrics: DashboardMetrics
    meeting_locations: List[LocationMeetings] = Field(default_factory=list)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class MeetingSummary(ResponseModel):
    """Meeting as shown in employee reports."""

    id: Optional[str] = None
    title: Optional[str] = None
    date: Optional[datetime] = None
    time: Optional[str] = None
    type: Optional[str] = None
    client: Optional[str] = None
    client_name: Optional[str] = None
    location: Optional[str] = None


class EmployeeSummary(ResponseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    designation: Optional[str] = None


class EmployeeLocation(ResponseModel):
    """Meetings one employee held at one place."""

    location: str
    meeting_count: int = 0
    unique_clients: int = 0
    clients_list: List[str] = Field(default_factory=list)
    recent_meetings: List[MeetingSummary] = Field(default_factory=list)


class EmployeeLocationReport(ResponseModel):
    """Where one employee meets clients."""

    employee: EmployeeSummary
    total_meetings: int = 0
    locations: List[EmployeeLocation] = Field(default_factory=list)


class EmployeeDetails(ResponseModel):
    """Clients created and meetings held by one employee."""

    id: str
    name: Optional[str] = None
    designation: Optional[str] = None
    total_clients: int = 0
    total_meetings: int = 0
    meetings: List[MeetingSummary] = Field(default_factory=list)


class ExpenseStats(ResponseModel):
    """Expense counts and amounts per status."""

    total_count: int = 0
    total_amount: float = 0.0
    pending_count: int = 0
    pending_amount: float = 0.0
    approved_count: int = 0
    approved_amount: float = 0.0
    rejected_count: int = 0
    rejected_amount: float = 0.0
    paid_count: int = 0
    paid_amount: float = 0.0
