# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Project tracking service.
"""

import logging
from typing import Any, Dict, List
from opentelemetry import trace

from domain.authorization import check_ownership, is_elevated
from middleware.error_handler import AuthorizationException, ValidationException
from middleware.validation import validate_model
from models.entities import Project, UserContext
from models.requests import CreateProjectRequest, UpdateProjectRequest
from services.base import TenantScopedService
from services.mongodb import serialize_document

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ProjectService(TenantScopedService):
    """CRUD for client projects. Assignees may read and update their projects."""

    collection = "projects"
    resource = "project"

    def _get_visible(self, project_id: str, user_context: UserContext) -> Dict[str, Any]:
        project = self._get_in_org(project_id, user_context)
        if project.get("assignTo") == user_context.user_id:
            return project
        result = check_ownership(user_context, project.get("createdBy"), self.resource)
        if not result.allowed:
            raise AuthorizationException(result.reason)
        return project

    def list_projects(self, user_context: UserContext) -> List[Dict[str, Any]]:
        with tracer.start_as_current_span("projects.list"):
            query: Dict[str, Any] = {"organizationId": user_context.org_id}
            if not is_elevated(user_context, self.resource):
                query["$or"] = [
                    {"createdBy": user_context.user_id},
                    {"assignTo": user_context.user_id}
                ]
            documents = self.mongodb_service.find(self.collection, query, sort=[("createdAt", -1)])
            return [serialize_document(d) for d in documents]

    def get_project(self, project_id: str, user_context: UserContext) -> Dict[str, Any]:
        with tracer.start_as_current_span("projects.get"):
            return serialize_document(self._get_visible(project_id, user_context))

    def create_project(self, request: CreateProjectRequest, user_context: UserContext) -> Dict[str, Any]:
        with tracer.start_as_current_span("projects.create") as span:
            if self.mongodb_service.find_by_id("clients", request.client, org_id=user_context.org_id) is None:
                raise ValidationException(
                    "Client does not exist",
                    [{"field": "client", "message": "Unknown client", "type": "reference_error", "input": request.client}]
                )

            now = self.clock()
            project = validate_model(Project, {
                **request.model_dump(),
                "organization_id": user_context.org_id,
                "created_by": user_context.user_id,
                "created_at": now,
                "updated_at": now
            })
            project_id = self.mongodb_service.insert_one(self.collection, project.to_document())

            span.set_attribute("project.id", project_id)
            logger.info(
                f"Project created: {project.title}",
                extra={"project_id": project_id, "client_id": project.client, "user_id": user_context.user_id}
            )
            self._audit(user_context, project_id, "create", after={"title": project.title, "client": project.client})
            return serialize_document(project.to_document())

    def update_project(self, project_id: str, request: UpdateProjectRequest, user_context: UserContext) -> Dict[str, Any]:
        with tracer.start_as_current_span("projects.update"):
            existing = self._get_visible(project_id, user_context)
            updates = request.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
            validate_model(Project, {**existing, **updates}, "Invalid project update")

            updated = self.mongodb_service.update_one(
                self.collection, {"_id": existing["_id"]}, self._stamp(updates, user_context)
            )
            self._audit(user_context, project_id, "update", after=serialize_document(
                {k: updated.get(k) for k in updates}
            ))
            return serialize_document(updated)

    def delete_project(self, project_id: str, user_context: UserContext) -> None:
        with tracer.start_as_current_span("projects.delete"):
            existing = self._get_owned(project_id, user_context)
            self.mongodb_service.find_by_id_and_delete(self.collection, project_id)
            logger.info(f"Project deleted: {project_id}", extra={"user_id": user_context.user_id})
            self._audit(user_context, project_id, "delete", before={"title": existing.get("title")})
