# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Shared plumbing for tenant-scoped resource services.
"""

import logging
from typing import Any, Dict, Optional

from domain.authorization import check_ownership
from middleware.error_handler import AuthorizationException, NotFoundException
from models.entities import UserContext
from services.audit import AuditService
from services.mongodb import MongoDBService
from utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class TenantScopedService:
    """Base for services whose documents belong to one organization."""

    collection: str = ""
    resource: str = ""
    owner_field: str = "createdBy"

    def __init__(
        self,
        mongodb_service: MongoDBService,
        audit_service: Optional[AuditService] = None,
        clock: Clock = utc_now
    ):
        self.mongodb_service = mongodb_service
        self.audit_service = audit_service
        self.clock = clock

    def _get_in_org(self, doc_id: str, user_context: UserContext, session=None) -> Dict[str, Any]:
        """Load a document of this tenant or raise NotFound."""
        document = self.mongodb_service.find_by_id(
            self.collection, doc_id, org_id=user_context.org_id, session=session
        )
        if document is None:
            raise NotFoundException(f"{self.resource.replace('_', ' ').capitalize()} not found")
        return document

    def _get_owned(self, doc_id: str, user_context: UserContext, session=None) -> Dict[str, Any]:
        """Load a document the user owns (or may manage) or raise NotFound / Forbidden."""
        document = self._get_in_org(doc_id, user_context, session=session)
        result = check_ownership(user_context, document.get(self.owner_field), self.resource)
        if not result.allowed:
            logger.warning(
                f"Ownership check failed for {self.resource} {doc_id}",
                extra={"user_id": user_context.user_id, "organization_id": user_context.org_id}
            )
            raise AuthorizationException(result.reason)
        return document

    def _audit(self, user_context: UserContext, entity_id: str, action: str,
               before: Optional[Dict[str, Any]] = None, after: Optional[Dict[str, Any]] = None) -> None:
        if self.audit_service:
            self.audit_service.log_action(user_context, self.resource, entity_id, action, before, after)

    def _stamp(self, updates: Dict[str, Any], user_context: UserContext) -> Dict[str, Any]:
        """Add modification metadata to a $set payload."""
        updates["updatedAt"] = self.clock()
        updates["updatedBy"] = user_context.user_id
        return updates
