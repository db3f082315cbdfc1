# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Project endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from middleware.auth import require_permission
from middleware.validation import parse_body
from models.entities import UserContext
from models.requests import CreateProjectRequest, ProjectPath, UpdateProjectRequest

tracer = trace.get_tracer(__name__)

projects_tag = Tag(name="Projects", description="Client project tracking")
projects_bp = APIBlueprint(
    'projects',
    __name__,
    url_prefix='/api/projects',
    abp_tags=[projects_tag]
)

COLLECTION_PATH = '/api/projects'
PROJECT_ACTIONS = {
    "update": ("", "PUT"),
    "delete": ("", "DELETE")
}


@projects_bp.get('')
@require_permission("project:read")
def list_projects(user_context: UserContext):
    """
    List projects created by or assigned to the user (all with project:manage_all).
    """
    with tracer.start_as_current_span("projects.list_projects") as span:
        projects = current_app.project_service.list_projects(user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_collection(projects, COLLECTION_PATH, PROJECT_ACTIONS))


@projects_bp.get('/<string:project_id>')
@require_permission("project:read")
def get_project(user_context: UserContext, path: ProjectPath):
    """
    Get a project.
    """
    with tracer.start_as_current_span("projects.get_project") as span:
        project = current_app.project_service.get_project(path.project_id, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(project, COLLECTION_PATH, PROJECT_ACTIONS))


@projects_bp.post('')
@require_permission("project:create")
def create_project(user_context: UserContext):
    """
    Create a project for a client.
    """
    with tracer.start_as_current_span("projects.create_project") as span:
        project = current_app.project_service.create_project(parse_body(CreateProjectRequest), user_context)
        span.set_attribute("project.id", project["id"])
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(project, COLLECTION_PATH, PROJECT_ACTIONS)), 201


@projects_bp.put('/<string:project_id>')
@require_permission("project:update")
def update_project(user_context: UserContext, path: ProjectPath):
    """
    Update a project.
    """
    with tracer.start_as_current_span("projects.update_project") as span:
        project = current_app.project_service.update_project(
            path.project_id, parse_body(UpdateProjectRequest), user_context
        )
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(project, COLLECTION_PATH, PROJECT_ACTIONS))


@projects_bp.delete('/<string:project_id>')
@require_permission("project:delete")
def delete_project(user_context: UserContext, path: ProjectPath):
    """
    Delete a project.
    """
    with tracer.start_as_current_span("projects.delete_project") as span:
        current_app.project_service.delete_project(path.project_id, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify({"message": "Project deleted successfully", "id": path.project_id})
