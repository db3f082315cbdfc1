# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.

Resources carry a ``_links`` map with their own URL, the owning collection
and the actions the caller may take next. Errors are RFC 7807 problem
documents with a help link and, for some problem types, a link to the
place the client can recover (login, permissions, schema).
"""

from typing import Dict, List, Any, Optional, Tuple

from opentelemetry import trace

from models.responses import HalLink

PROBLEM_BASE_URI = "https://api.field-crm.example/problems"

# (sub-path under the resource, HTTP method)
Action = Tuple[str, str]

PROBLEM_TITLES: Dict[str, str] = {
    "bad-request": "Bad Request",
    "validation-error": "Validation Error",
    "authentication-required": "Authentication Required",
    "insufficient-permissions": "Insufficient Permissions",
    "resource-not-found": "Resource Not Found",
    "method-not-allowed": "Method Not Allowed",
    "resource-conflict": "Resource Conflict",
    "transaction-failure": "Transaction Failed",
    "internal-server-error": "Internal Server Error",
    "service-unavailable": "Service Unavailable",
}

# Problem type -> (rel, path, method, title) of the recovery link
RECOVERY_LINKS: Dict[str, Tuple[str, str, str, str]] = {
    "validation-error": ("schema", "/openapi/openapi.json", "GET", "API schema"),
    "authentication-required": ("login", "/api/auth/login", "POST", "Login"),
    "insufficient-permissions": ("permissions", "/api/auth/me", "GET", "Current user permissions"),
}


def problem_title(error_type: str) -> str:
    """Title for a problem type, derived from the type when unknown."""
    return PROBLEM_TITLES.get(error_type) or error_type.replace("-", " ").title()


def current_trace_id() -> Optional[str]:
    """Hex trace id of the active span, if one is recording."""
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return None
    return format(context.trace_id, "032x")


class HalLinkBuilder:
    """Absolute links rooted at the public base URL."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        return HalLink(
            href=f"{self.base_url}/{path.lstrip('/')}",
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_action_link(self, resource_path: str, action: str, method: str = "POST") -> HalLink:
        """Link to a resource action. An empty action targets the resource itself (PUT, DELETE)."""
        path = f"{resource_path}/{action}" if action else resource_path
        return self.build_link(
            path,
            method=method,
            content_type="application/json",
            title=action.replace("-", " ").title() if action else method.title()
        )


def _dump_links(links: Dict[str, HalLink]) -> Dict[str, Any]:
    return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}


class HalResponseBuilder:
    """Builds HAL resources, collections and problem documents."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)

    def build_resource_response(
        self,
        data: Dict[str, Any],
        collection_path: str,
        resource_id: Optional[str] = None,
        actions: Optional[Dict[str, Action]] = None
    ) -> Dict[str, Any]:
        """
        Build a HAL resource response.

        Args:
            data: Resource body
            collection_path: Path of the owning collection (e.g. /api/clients)
            resource_id: Resource identifier, None for singleton resources
            actions: rel -> (sub-path, method) for affordances the caller may use
        """
        resource_path = f"{collection_path}/{resource_id}" if resource_id else collection_path

        links = {'self': self.link_builder.build_link(resource_path, title="Self")}
        if resource_id:
            links['collection'] = self.link_builder.build_link(collection_path, title="Collection")
        for rel, (action, method) in (actions or {}).items():
            links[rel] = self.link_builder.build_action_link(resource_path, action, method)

        return {**data, '_links': _dump_links(links)}

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        extra: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Collection with its item count and the items under ``_embedded``."""
        return {
            'count': len(items),
            **(extra or {}),
            '_links': _dump_links({'self': self.link_builder.build_link(collection_path, title="Self")}),
            '_embedded': {'items': items}
        }

    def build_error_response(
        self,
        error_type: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None,
        title: Optional[str] = None
    ) -> Dict[str, Any]:
        """Build an RFC 7807 problem document with help and recovery links."""
        problem = {
            'type': f"{PROBLEM_BASE_URI}/{error_type}",
            'title': title or problem_title(error_type),
            'status': status,
            'detail': detail,
            'instance': instance
        }
        if validation_errors:
            problem['errors'] = validation_errors

        trace_id = current_trace_id()
        if trace_id:
            problem['traceId'] = trace_id

        links = {'help': self.link_builder.build_link(f"/docs/errors#{error_type}", title="Error documentation")}
        if error_type in RECOVERY_LINKS:
            rel, path, method, link_title = RECOVERY_LINKS[error_type]
            links[rel] = self.link_builder.build_link(
                path,
                method=method,
                content_type="application/json" if method != "GET" else None,
                title=link_title
            )

        problem['_links'] = _dump_links(links)
        return problem


class HalFormatter:
    """Entry point used by routes and error handlers."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_resource(
        self,
        data: Dict[str, Any],
        collection_path: str,
        actions: Optional[Dict[str, Action]] = None
    ) -> Dict[str, Any]:
        """Format a stored resource (its ``id`` drives the self link)."""
        return self.builder.build_resource_response(data, collection_path, data.get('id'), actions)

    def format_collection(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        actions: Optional[Dict[str, Action]] = None,
        extra: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format a collection, linking each embedded item."""
        formatted = [self.format_resource(item, collection_path, actions) for item in items]
        return self.builder.build_collection_response(formatted, collection_path, extra)

    def format_error(
        self,
        error_type: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        return self.builder.build_error_response(error_type, status, detail, instance, validation_errors)

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return self.format_error("validation-error", 400, detail, instance, validation_errors)


def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
