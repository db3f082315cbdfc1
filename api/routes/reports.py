# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Reporting endpoints: employee location tracking, movement and presence,
dashboard metrics, meeting and project reports.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from middleware.auth import require_auth, require_permission
from middleware.validation import parse_body
from models.entities import UserContext
from models.requests import (
    DateRangeQuery,
    EmployeePath,
    LocationHistoryQuery,
    LogLocationRequest,
    MovementQuery
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

reports_tag = Tag(name="Reports", description="Location tracking and dashboard reports")
reports_bp = APIBlueprint(
    'reports',
    __name__,
    url_prefix='/api/reports',
    abp_tags=[reports_tag]
)

COLLECTION_PATH = '/api/reports'


def _employee_path(employee_id: str, report: str) -> str:
    return f"{COLLECTION_PATH}/employee/{employee_id}/{report}"


@reports_bp.post('/log-location')
@require_auth
def log_location(user_context: UserContext):
    """
    Record a GPS fix for the current user.

    Latitude must be within [-90, 90], longitude within [-180, 180] and
    accuracy non-negative.
    """
    with tracer.start_as_current_span("reports.log_location") as span:
        fix = parse_body(LogLocationRequest)
        sample = current_app.location_service.record_sample(
            user_context.user_id,
            user_context.org_id,
            fix.latitude,
            fix.longitude,
            fix.accuracy
        )
        span.set_attribute("user.id", user_context.user_id)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            sample, f"{COLLECTION_PATH}/log-location"
        )), 201


@reports_bp.get('/employee/<string:employee_id>/movement')
@require_auth
def employee_movement(user_context: UserContext, path: EmployeePath, query: MovementQuery):
    """
    Movement track for one day with per-segment and total distance.

    Employees may read their own track; others need employee:track.
    """
    with tracer.start_as_current_span("reports.employee_movement") as span:
        span.set_attribute("employee.id", path.employee_id)
        report = current_app.location_service.movement(path.employee_id, user_context, query.date)

        data = report.to_json()
        data["totalPoints"] = report.total_points
        data["employeeId"] = path.employee_id
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            data, _employee_path(path.employee_id, "movement")
        ))


@reports_bp.get('/employee/<string:employee_id>/live-location')
@require_auth
def employee_live_location(user_context: UserContext, path: EmployeePath):
    """
    Presence status (online, idle, offline or no_data) and last known position.
    """
    with tracer.start_as_current_span("reports.employee_live_location") as span:
        span.set_attribute("employee.id", path.employee_id)
        presence = current_app.location_service.live_location(path.employee_id, user_context)

        data = {"employeeId": path.employee_id, **presence.to_json()}
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            data, _employee_path(path.employee_id, "live-location")
        ))


@reports_bp.get('/employee/<string:employee_id>/location-history')
@require_auth
def employee_location_history(user_context: UserContext, path: EmployeePath, query: LocationHistoryQuery):
    """
    Online marker, logout markers and the sample trail over the last N days.
    """
    with tracer.start_as_current_span("reports.employee_location_history") as span:
        span.set_attribute("employee.id", path.employee_id)
        history = current_app.location_service.location_history(path.employee_id, user_context, query.days)

        data = {"employeeId": path.employee_id, **history.to_json()}
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            data, _employee_path(path.employee_id, "location-history")
        ))


@reports_bp.delete('/employee/<string:employee_id>/locations')
@require_permission("employee:manage")
def reset_employee_locations(user_context: UserContext, path: EmployeePath):
    """
    Delete all location samples of an employee.
    """
    with tracer.start_as_current_span("reports.reset_employee_locations") as span:
        deleted = current_app.location_service.reset_locations(path.employee_id, user_context)
        span.set_attributes({"employee.id": path.employee_id, "location.deleted": deleted})
        span.set_status(Status(StatusCode.OK))
        return jsonify({
            "message": "Location history reset",
            "employeeId": path.employee_id,
            "deletedCount": deleted
        })


@reports_bp.get('/dashboard/metrics')
@require_permission("report:read")
def dashboard_metrics(user_context: UserContext, query: DateRangeQuery):
    """
    Total meetings, total clients and repeat visits, optionally within a date range.
    """
    with tracer.start_as_current_span("reports.dashboard_metrics") as span:
        metrics = current_app.report_service.dashboard_metrics(user_context, query.start_date, query.end_date)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            metrics.to_json(), f"{COLLECTION_PATH}/dashboard/metrics"
        ))


def _date_range(query: DateRangeQuery) -> dict:
    return {
        "startDate": query.start_date.isoformat() if query.start_date else None,
        "endDate": query.end_date.isoformat() if query.end_date else None
    }


@reports_bp.get('/dashboard')
@require_permission("report:read")
def dashboard(user_context: UserContext, query: DateRangeQuery):
    """
    Dashboard metrics together with meetings per place.

    The client total counts distinct clients met, with or without a range.
    """
    with tracer.start_as_current_span("reports.dashboard") as span:
        report = current_app.report_service.dashboard(user_context, query.start_date, query.end_date)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            report.to_json(), f"{COLLECTION_PATH}/dashboard"
        ))


@reports_bp.get('/meeting-locations')
@require_permission("report:read")
def meeting_locations(user_context: UserContext, query: DateRangeQuery):
    """
    Meetings held and distinct clients visited per meeting place.
    """
    with tracer.start_as_current_span("reports.meeting_locations") as span:
        locations = current_app.report_service.meeting_locations(user_context, query.start_date, query.end_date)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_collection_response(
            [loc.to_json() for loc in locations], f"{COLLECTION_PATH}/meeting-locations", _date_range(query)
        ))


@reports_bp.get('/activity')
@require_permission("report:read")
def activity(user_context: UserContext, query: DateRangeQuery):
    """
    Meetings per day and distribution by meeting type.
    """
    with tracer.start_as_current_span("reports.activity") as span:
        report = current_app.report_service.activity(user_context, query.start_date, query.end_date)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            {**report.to_json(), **_date_range(query)}, f"{COLLECTION_PATH}/activity"
        ))


@reports_bp.get('/client-visits')
@require_permission("report:read")
def client_visits(user_context: UserContext, query: DateRangeQuery):
    """
    Visit count and first and last visit per client, most visited first.
    """
    with tracer.start_as_current_span("reports.client_visits") as span:
        visits = current_app.report_service.client_visits(user_context, query.start_date, query.end_date)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_collection_response(
            [visit.to_json() for visit in visits], f"{COLLECTION_PATH}/client-visits", _date_range(query)
        ))


@reports_bp.get('/project-status')
@require_permission("report:read")
def project_status(user_context: UserContext):
    """
    Project totals by status and priority.
    """
    with tracer.start_as_current_span("reports.project_status") as span:
        report = current_app.report_service.project_status(user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            report.to_json(), f"{COLLECTION_PATH}/project-status"
        ))


@reports_bp.get('/employee-locations')
@require_permission("employee:track")
def employee_locations(user_context: UserContext, query: DateRangeQuery):
    """
    Meetings of every employee grouped by place, with recent meetings per place.
    """
    with tracer.start_as_current_span("reports.employee_locations") as span:
        employees = current_app.report_service.employee_locations(user_context, query.start_date, query.end_date)
        span.set_attribute("reports.employees", len(employees))
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_collection_response(
            [e.to_json() for e in employees], f"{COLLECTION_PATH}/employee-locations", _date_range(query)
        ))


@reports_bp.get('/employee-meetings/<string:employee_id>')
@require_auth
def employee_meetings(user_context: UserContext, path: EmployeePath, query: DateRangeQuery):
    """
    Meetings logged by one employee, newest first.

    Employees may read their own; others need employee:track.
    """
    with tracer.start_as_current_span("reports.employee_meetings") as span:
        span.set_attribute("employee.id", path.employee_id)
        meetings = current_app.report_service.employee_meetings(
            path.employee_id, user_context, query.start_date, query.end_date
        )
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_collection(
            [m.to_json() for m in meetings], '/api/meetings', extra={"employeeId": path.employee_id}
        ))


@reports_bp.get('/employee/<string:employee_id>/details')
@require_auth
def employee_details(user_context: UserContext, path: EmployeePath):
    """
    Clients created and meetings held by one employee.
    """
    with tracer.start_as_current_span("reports.employee_details") as span:
        span.set_attribute("employee.id", path.employee_id)
        details = current_app.report_service.employee_details(path.employee_id, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.builder.build_resource_response(
            details.to_json(), _employee_path(path.employee_id, "details")
        ))
