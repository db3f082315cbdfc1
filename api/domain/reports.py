# SPDX-License-Identifier: Apache-2.0

"""
Reporting domain logic.

Pure aggregations over raw meeting and project documents. Lookups of
client names and employee profiles are passed in as dictionaries keyed by
id, so nothing here touches the database.
"""

from collections import Counter
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from models.enums import ProjectStatus
from models.responses import (
    ActivityReport,
    ClientVisits,
    DailyActivity,
    DashboardMetrics,
    DashboardReport,
    EmployeeLocation,
    EmployeeLocationReport,
    EmployeeSummary,
    GroupCount,
    LocationMeetings,
    MeetingSummary,
    ProjectStatusReport,
)
from utils.clock import ensure_utc

UNKNOWN_CLIENT = "Unknown"
RECENT_MEETINGS = 3


def count_repeat_visits(meetings: Iterable[Dict[str, Any]]) -> int:
    """Meetings beyond the first, summed over clients met more than once."""
    per_client = Counter(m.get("client") for m in meetings if m.get("client"))
    return sum(count - 1 for count in per_client.values() if count > 1)


def build_dashboard_metrics(
    meetings: Iterable[Dict[str, Any]],
    total_clients: int,
    date_filtered: bool
) -> DashboardMetrics:
    """
    Summarize meetings for the dashboard.

    Without a date filter the client total is the tenant's client count;
    with one it is the number of distinct clients met in the range.
    """
    meetings = list(meetings)
    if date_filtered:
        total_clients = len({m.get("client") for m in meetings if m.get("client")})

    return DashboardMetrics(
        total_meetings=len(meetings),
        total_clients=total_clients,
        repeat_visits=count_repeat_visits(meetings)
    )


def _group_counts(values: Iterable[Optional[str]]) -> List[GroupCount]:
    """Counts per value, largest first, ties by value."""
    counts = Counter(values)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))
    return [GroupCount(key=key, count=count) for key, count in ordered]


def _newest_first(meetings: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(
        (m for m in meetings if m.get("date") is not None),
        key=lambda m: ensure_utc(m["date"]),
        reverse=True
    )


def meetings_by_location(meetings: Iterable[Dict[str, Any]]) -> List[LocationMeetings]:
    """
    Meeting count and distinct clients per meeting place.

    Meetings without a place are left out. Busiest place first.
    """
    counts: Counter = Counter()
    clients: Dict[str, set] = {}
    for meeting in meetings:
        place = meeting.get("location")
        if not place:
            continue
        counts[place] += 1
        if meeting.get("client"):
            clients.setdefault(place, set()).add(meeting["client"])

    return [
        LocationMeetings(location=place, total_meetings=count, clients_visited=len(clients.get(place, ())))
        for place, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def activity_report(meetings: Iterable[Dict[str, Any]]) -> ActivityReport:
    """Meetings per UTC day (newest day first) and per meeting type."""
    meetings = list(meetings)
    days: Dict[date, List[str]] = {}
    for meeting in meetings:
        if meeting.get("date") is None:
            continue
        day = ensure_utc(meeting["date"]).date()
        days.setdefault(day, []).append(meeting.get("type"))

    return ActivityReport(
        daily_activity=[
            DailyActivity(day=day, count=len(types), types=[t for t in types if t])
            for day, types in sorted(days.items(), reverse=True)
        ],
        type_distribution=_group_counts(m.get("type") for m in meetings)
    )


def client_visits(meetings: Iterable[Dict[str, Any]], client_names: Mapping[str, str]) -> List[ClientVisits]:
    """
    Visit count with first and last visit per client, most visited first.

    Clients missing from ``client_names`` are still reported, without a name,
    after the named clients with the same count.
    """
    visits: Dict[str, List] = {}
    for meeting in meetings:
        client_id = meeting.get("client")
        if not client_id or meeting.get("date") is None:
            continue
        visits.setdefault(client_id, []).append(ensure_utc(meeting["date"]))

    report = [
        ClientVisits(
            client_id=client_id,
            client_name=client_names.get(client_id),
            visit_count=len(dates),
            first_visit_date=min(dates),
            last_visit_date=max(dates)
        )
        for client_id, dates in visits.items()
    ]
    report.sort(key=lambda v: (-v.visit_count, v.client_name is None, v.client_name or "", v.client_id))
    return report


def project_status_report(projects: Iterable[Dict[str, Any]]) -> ProjectStatusReport:
    """Totals by status and priority; active means in progress, planned means planning."""
    projects = list(projects)
    statuses = [p.get("status") for p in projects]
    return ProjectStatusReport(
        total_projects=len(projects),
        active_projects=statuses.count(ProjectStatus.IN_PROGRESS.value),
        planned_projects=statuses.count(ProjectStatus.PLANNING.value),
        by_status=_group_counts(statuses),
        by_priority=_group_counts(p.get("priority") for p in projects)
    )


def build_dashboard_report(
    meetings: Iterable[Dict[str, Any]],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> DashboardReport:
    """
    Dashboard for a date range.

    The client total here always counts distinct clients met, whether or
    not a range is given.
    """
    meetings = list(meetings)
    return DashboardReport(
        metrics=build_dashboard_metrics(meetings, 0, date_filtered=True),
        meeting_locations=meetings_by_location(meetings),
        start_date=start_date,
        end_date=end_date
    )


def meeting_summary(meeting: Dict[str, Any], client_names: Mapping[str, str]) -> MeetingSummary:
    client_id = meeting.get("client")
    return MeetingSummary(
        id=str(meeting["_id"]) if meeting.get("_id") is not None else meeting.get("id"),
        title=meeting.get("title"),
        date=meeting.get("date"),
        time=meeting.get("time"),
        type=meeting.get("type"),
        client=client_id,
        client_name=client_names.get(client_id) if client_id else None,
        location=meeting.get("location")
    )


def employee_locations(
    meetings: Iterable[Dict[str, Any]],
    employees: Mapping[str, Dict[str, Any]],
    client_names: Mapping[str, str],
    recent: int = RECENT_MEETINGS
) -> List[EmployeeLocationReport]:
    """
    Meetings grouped by the employee who logged them, then by place.

    Only meetings with both a known employee and a place count. Each place
    lists the distinct client names met there and its ``recent`` newest
    meetings. Employees with the most meetings come first.
    """
    grouped: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
    for meeting in _newest_first(meetings):
        employee_id = meeting.get("createdBy")
        place = meeting.get("location")
        if employee_id not in employees or not place:
            continue
        grouped.setdefault(employee_id, {}).setdefault(place, []).append(meeting)

    reports = []
    for employee_id, places in grouped.items():
        profile = employees[employee_id]
        locations = []
        for place, held in places.items():
            names = sorted({client_names.get(m.get("client"), UNKNOWN_CLIENT) for m in held})
            locations.append(EmployeeLocation(
                location=place,
                meeting_count=len(held),
                unique_clients=len(names),
                clients_list=names,
                recent_meetings=[meeting_summary(m, client_names) for m in held[:recent]]
            ))
        locations.sort(key=lambda loc: (-loc.meeting_count, loc.location))

        reports.append(EmployeeLocationReport(
            employee=EmployeeSummary(
                id=employee_id,
                name=profile.get("name"),
                email=profile.get("email"),
                designation=profile.get("designation")
            ),
            total_meetings=sum(loc.meeting_count for loc in locations),
            locations=locations
        ))

    reports.sort(key=lambda r: (-r.total_meetings, r.employee.name or "", r.employee.id))
    return reports
