# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Client endpoints: the client aggregate with its branch locations and contacts.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from middleware.auth import require_permission
from middleware.validation import parse_body
from models.entities import UserContext
from models.requests import ClientPath, CreateClientRequest, UpdateClientRequest

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

clients_tag = Tag(name="Clients", description="Clients, branch locations and contact persons")
clients_bp = APIBlueprint(
    'clients',
    __name__,
    url_prefix='/api/clients',
    abp_tags=[clients_tag]
)

COLLECTION_PATH = '/api/clients'
CLIENT_ACTIONS = {
    "update": ("", "PUT"),
    "delete": ("", "DELETE")
}


@clients_bp.get('')
@require_permission("client:read")
def list_clients(user_context: UserContext):
    """
    List clients with meeting and project counts and nested locations.

    Users with client:manage_all see every client of the organization,
    others only the clients they created.
    """
    with tracer.start_as_current_span("clients.list_clients") as span:
        clients = current_app.client_service.list_clients(user_context)
        span.set_attribute("clients.count", len(clients))
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_collection(clients, COLLECTION_PATH, CLIENT_ACTIONS))


@clients_bp.get('/<string:client_id>')
@require_permission("client:read")
def get_client(user_context: UserContext, path: ClientPath):
    """
    Get a client with its locations, contacts, meetings and projects.
    """
    with tracer.start_as_current_span("clients.get_client") as span:
        span.set_attribute("client.id", path.client_id)
        client = current_app.client_service.get_client(path.client_id, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(client, COLLECTION_PATH, CLIENT_ACTIONS))


@clients_bp.post('')
@require_permission("client:create")
def create_client(user_context: UserContext):
    """
    Create a client together with its branch locations and contacts.
    """
    with tracer.start_as_current_span("clients.create_client") as span:
        client_request = parse_body(CreateClientRequest)
        client = current_app.client_service.create_client(client_request, user_context)
        span.set_attribute("client.id", client["id"])
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(client, COLLECTION_PATH, CLIENT_ACTIONS)), 201


@clients_bp.put('/<string:client_id>')
@require_permission("client:update")
def update_client(user_context: UserContext, path: ClientPath):
    """
    Update category, name, sales person or status of a client.
    """
    with tracer.start_as_current_span("clients.update_client") as span:
        span.set_attribute("client.id", path.client_id)
        update_request = parse_body(UpdateClientRequest)
        client = current_app.client_service.update_client(path.client_id, update_request, user_context)
        span.set_status(Status(StatusCode.OK))
        return jsonify(current_app.hal_formatter.format_resource(client, COLLECTION_PATH, CLIENT_ACTIONS))


@clients_bp.delete('/<string:client_id>')
@require_permission("client:delete")
def delete_client(user_context: UserContext, path: ClientPath):
    """
    Delete a client and all of its locations, contacts, meetings and projects.

    Returns the number of dependents removed. Nothing is deleted when any
    step fails.
    """
    with tracer.start_as_current_span("clients.delete_client") as span:
        span.set_attribute("client.id", path.client_id)
        summary = current_app.client_deletion.delete_client_cascade(path.client_id, user_context)
        span.set_status(Status(StatusCode.OK))

        data = {"message": "Client and all related data deleted successfully", **summary.to_json()}
        return jsonify(current_app.hal_formatter.builder.build_resource_response(data, COLLECTION_PATH))
