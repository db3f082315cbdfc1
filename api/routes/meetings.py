# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Meeting endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from middleware.auth import require_permission
from middleware.validation import parse_body
from models.entities import UserContext
from models.requests import CreateMeetingRequest, MeetingPath, UpdateMeetingRequest

tracer = trace.get_tracer(__name__)

meetings_tag = Tag(name="Meetings", description="Client meeting scheduling")
meetings_bp = APIBlueprint(
    'meetings',
    __name__,
    url_prefix='/api/meetings',
    abp_tags=[meetings_tag]
)

COLLECTION_PATH = '/api/meetings'
MEETING_ACTIONS = {
    "update": ("", "PUT"),
    "delete": ("", "DELETE")
}


@meetings_bp.get('')
@require_permission("meeting:read")
def list_meetings(user_context: UserContext):
    """
    List meetings, newest first.
    """
    with tracer.start_as_current_span("meetings.list_meetings") as span:
        meetings = current_app.meeting_service.list_meetings(user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_collection(meetings, COLLECTION_PATH, MEETING_ACTIONS))


@meetings_bp.get('/<string:meeting_id>')
@require_permission("meeting:read")
def get_meeting(user_context: UserContext, path: MeetingPath):
    """
    Get a meeting.
    """
    with tracer.start_as_current_span("meetings.get_meeting") as span:
        meeting = current_app.meeting_service.get_meeting(path.meeting_id, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(meeting, COLLECTION_PATH, MEETING_ACTIONS))


@meetings_bp.post('')
@require_permission("meeting:create")
def create_meeting(user_context: UserContext):
    """
    Schedule a meeting with a client. Date, time and client are required.
    """
    with tracer.start_as_current_span("meetings.create_meeting") as span:
        meeting = current_app.meeting_service.create_meeting(parse_body(CreateMeetingRequest), user_context)
        span.set_attribute("meeting.id", meeting["id"])
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(meeting, COLLECTION_PATH, MEETING_ACTIONS)), 201


@meetings_bp.put('/<string:meeting_id>')
@require_permission("meeting:update")
def update_meeting(user_context: UserContext, path: MeetingPath):
    """
    Update a meeting.
    """
    with tracer.start_as_current_span("meetings.update_meeting") as span:
        meeting = current_app.meeting_service.update_meeting(
            path.meeting_id, parse_body(UpdateMeetingRequest), user_context
        )
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(meeting, COLLECTION_PATH, MEETING_ACTIONS))


@meetings_bp.delete('/<string:meeting_id>')
@require_permission("meeting:delete")
def delete_meeting(user_context: UserContext, path: MeetingPath):
    """
    Delete a meeting.
    """
    with tracer.start_as_current_span("meetings.delete_meeting") as span:
        current_app.meeting_service.delete_meeting(path.meeting_id, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify({"message": "Meeting deleted successfully", "id": path.meeting_id})
