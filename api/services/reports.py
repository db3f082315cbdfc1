# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Reporting over meetings, clients and projects.

Every report is limited to the requester's organization. Meeting, client and
project reports are further limited to the requester's own records unless
they hold the matching ``<resource>:manage_all`` permission. Employee reports
follow the tracking rule: your own data, or anyone's with employee:track.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional
from opentelemetry import trace

from domain import reports
from domain.authorization import can_view_employee, is_elevated
from middleware.error_handler import AuthorizationException, NotFoundException
from models.entities import UserContext
from models.responses import (
    ActivityReport,
    ClientVisits,
    DashboardMetrics,
    DashboardReport,
    EmployeeDetails,
    EmployeeLocationReport,
    LocationMeetings,
    MeetingSummary,
    ProjectStatusReport,
)
from services.mongodb import MongoDBService
from utils.clock import day_range

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def date_filter(start_date: Optional[date], end_date: Optional[date]) -> Dict[str, Any]:
    """Half-open UTC range condition covering whole days, empty when unbounded."""
    condition: Dict[str, Any] = {}
    if start_date:
        condition["$gte"] = day_range(start_date)[0]
    if end_date:
        condition["$lt"] = day_range(end_date)[1]
    return condition


class ReportService:
    """Aggregates meetings, clients and projects for the reports pages."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb_service = mongodb_service

    # Lookups

    def _meetings(
        self,
        user_context: UserContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        created_by: Optional[str] = None,
        scoped: bool = True
    ) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {"organizationId": user_context.org_id}
        if created_by is not None:
            query["createdBy"] = created_by
        elif scoped and not is_elevated(user_context, "meeting"):
            query["createdBy"] = user_context.user_id

        condition = date_filter(start_date, end_date)
        if condition:
            query["date"] = condition
        return self.mongodb_service.find("meetings", query, sort=[("date", -1)])

    def _by_id(self, collection: str, org_id: str, ids: Iterable[Optional[str]]) -> Dict[str, Dict[str, Any]]:
        object_ids = [oid for oid in {self.mongodb_service.to_object_id(i) for i in ids if i} if oid is not None]
        if not object_ids:
            return {}
        documents = self.mongodb_service.find(collection, {"organizationId": org_id, "_id": {"$in": object_ids}})
        return {str(d["_id"]): d for d in documents}

    def _client_names(self, org_id: str, meetings: List[Dict[str, Any]]) -> Dict[str, str]:
        clients = self._by_id("clients", org_id, (m.get("client") for m in meetings))
        return {client_id: doc.get("clientName") for client_id, doc in clients.items()}

    def _employee(self, employee_id: str, user_context: UserContext) -> Dict[str, Any]:
        result = can_view_employee(user_context, employee_id)
        if not result.allowed:
            raise AuthorizationException(result.reason)
        employee = self.mongodb_service.find_by_id("users", employee_id, org_id=user_context.org_id)
        if employee is None:
            raise NotFoundException("Employee not found")
        return employee

    # Dashboard

    def dashboard_metrics(
        self,
        user_context: UserContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> DashboardMetrics:
        """
        Meeting and client totals, optionally limited to a date range.

        Users without elevated privilege only see their own meetings and clients.
        """
        with tracer.start_as_current_span("reports.dashboard_metrics") as span:
            meetings = self._meetings(user_context, start_date, end_date)
            date_filtered = bool(date_filter(start_date, end_date))

            total_clients = 0
            if not date_filtered:
                client_query: Dict[str, Any] = {"organizationId": user_context.org_id}
                if not is_elevated(user_context, "client"):
                    client_query["createdBy"] = user_context.user_id
                total_clients = self.mongodb_service.count_documents("clients", client_query)

            metrics = reports.build_dashboard_metrics(meetings, total_clients, date_filtered=date_filtered)
            span.set_attributes({
                "reports.total_meetings": metrics.total_meetings,
                "reports.total_clients": metrics.total_clients,
                "reports.repeat_visits": metrics.repeat_visits
            })
            return metrics

    def dashboard(
        self,
        user_context: UserContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> DashboardReport:
        with tracer.start_as_current_span("reports.dashboard") as span:
            report = reports.build_dashboard_report(
                self._meetings(user_context, start_date, end_date), start_date, end_date
            )
            span.set_attribute("reports.total_meetings", report.metrics.total_meetings)
            return report

    # Meeting reports

    def meeting_locations(
        self,
        user_context: UserContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[LocationMeetings]:
        with tracer.start_as_current_span("reports.meeting_locations") as span:
            locations = reports.meetings_by_location(self._meetings(user_context, start_date, end_date))
            span.set_attribute("reports.locations", len(locations))
            return locations

    def activity(
        self,
        user_context: UserContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> ActivityReport:
        with tracer.start_as_current_span("reports.activity") as span:
            report = reports.activity_report(self._meetings(user_context, start_date, end_date))
            span.set_attribute("reports.active_days", len(report.daily_activity))
            return report

    def client_visits(
        self,
        user_context: UserContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[ClientVisits]:
        with tracer.start_as_current_span("reports.client_visits") as span:
            meetings = self._meetings(user_context, start_date, end_date)
            visits = reports.client_visits(meetings, self._client_names(user_context.org_id, meetings))
            span.set_attribute("reports.clients", len(visits))
            return visits

    # Projects

    def project_status(self, user_context: UserContext) -> ProjectStatusReport:
        """Project totals over the projects the user can see."""
        with tracer.start_as_current_span("reports.project_status") as span:
            query: Dict[str, Any] = {"organizationId": user_context.org_id}
            if not is_elevated(user_context, "project"):
                query["$or"] = [{"createdBy": user_context.user_id}, {"assignTo": user_context.user_id}]

            report = reports.project_status_report(self.mongodb_service.find("projects", query))
            span.set_attribute("reports.total_projects", report.total_projects)
            return report

    # Employees

    def employee_locations(
        self,
        user_context: UserContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[EmployeeLocationReport]:
        """Where each employee of the organization met clients."""
        with tracer.start_as_current_span("reports.employee_locations") as span:
            meetings = self._meetings(user_context, start_date, end_date, scoped=False)
            employees = self._by_id("users", user_context.org_id, (m.get("createdBy") for m in meetings))
            report = reports.employee_locations(
                meetings, employees, self._client_names(user_context.org_id, meetings)
            )
            span.set_attribute("reports.employees", len(report))
            return report

    def employee_meetings(
        self,
        employee_id: str,
        user_context: UserContext,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[MeetingSummary]:
        with tracer.start_as_current_span("reports.employee_meetings") as span:
            span.set_attribute("employee.id", employee_id)
            self._employee(employee_id, user_context)
            meetings = self._meetings(user_context, start_date, end_date, created_by=employee_id)
            client_names = self._client_names(user_context.org_id, meetings)
            return [reports.meeting_summary(m, client_names) for m in meetings]

    def employee_details(self, employee_id: str, user_context: UserContext) -> EmployeeDetails:
        """Clients created and meetings held by one employee."""
        with tracer.start_as_current_span("reports.employee_details") as span:
            span.set_attribute("employee.id", employee_id)
            employee = self._employee(employee_id, user_context)
            meetings = self._meetings(user_context, created_by=employee_id)
            client_names = self._client_names(user_context.org_id, meetings)
            total_clients = self.mongodb_service.count_documents(
                "clients", {"organizationId": user_context.org_id, "createdBy": employee_id}
            )

            logger.debug(
                "Employee details report",
                extra={"employee_id": employee_id, "meetings": len(meetings), "clients": total_clients}
            )
            return EmployeeDetails(
                id=employee_id,
                name=employee.get("name"),
                designation=employee.get("designation") or employee.get("role"),
                total_clients=total_clients,
                total_meetings=len(meetings),
                meetings=[reports.meeting_summary(m, client_names) for m in meetings]
            )
