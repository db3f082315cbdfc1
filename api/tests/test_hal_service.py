# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for HAL response formatting utilities.
"""

from services.hal import (
    HalLinkBuilder, HalResponseBuilder, HalFormatter, create_hal_formatter
)
from models.responses import HalLink


class TestHalLinkBuilder:
    """Test HAL link builder functionality."""

    def test_build_basic_link(self):
        """Test building a basic HAL link."""
        builder = HalLinkBuilder("https://api.example.com")

        link = builder.build_link("/api/clients/123")

        assert isinstance(link, HalLink)
        assert link.href == "https://api.example.com/api/clients/123"
        assert link.method == "GET"
        assert link.type is None
        assert link.templated is None

    def test_build_link_with_options(self):
        """Test building a link with all options."""
        builder = HalLinkBuilder("https://api.example.com")

        link = builder.build_link(
            "/api/expenses/123/approve",
            method="POST",
            content_type="application/json",
            title="Approve Expense",
            templated=True
        )

        assert link.href == "https://api.example.com/api/expenses/123/approve"
        assert link.method == "POST"
        assert link.type == "application/json"
        assert link.title == "Approve Expense"
        assert link.templated is True

    def test_build_action_link(self):
        """Test building an action link."""
        builder = HalLinkBuilder("https://api.example.com")

        link = builder.build_action_link("/api/expenses/123", "approve")

        assert link.href == "https://api.example.com/api/expenses/123/approve"
        assert link.method == "POST"
        assert link.type == "application/json"
        assert link.title == "Approve"

    def test_empty_action_targets_resource(self):
        """Update and delete links point at the resource itself."""
        builder = HalLinkBuilder("https://api.example.com")

        link = builder.build_action_link("/api/clients/123", "", "DELETE")

        assert link.href == "https://api.example.com/api/clients/123"
        assert link.method == "DELETE"
        assert link.title == "Delete"

    def test_base_url_normalization(self):
        """Test that base URL is properly normalized."""
        builder = HalLinkBuilder("https://api.example.com/")  # Trailing slash

        link = builder.build_link("/api/test")

        assert link.href == "https://api.example.com/api/test"


class TestHalResponseBuilder:
    """Test HAL response builder functionality."""

    def test_build_resource_response(self):
        """Test building a resource response with affordances."""
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_resource_response(
            {"id": "123", "status": "Pending"},
            "/api/expenses",
            "123",
            {"approve": ("approve", "POST"), "update": ("", "PUT")}
        )

        assert response["status"] == "Pending"
        links = response["_links"]
        assert links["self"]["href"] == "https://api.example.com/api/expenses/123"
        assert links["collection"]["href"] == "https://api.example.com/api/expenses"
        assert links["approve"]["href"] == "https://api.example.com/api/expenses/123/approve"
        assert links["update"]["method"] == "PUT"
        assert "templated" not in links["self"]

    def test_singleton_resource_has_no_collection_link(self):
        """Resources without an id link only to themselves."""
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_resource_response({"status": "healthy"}, "/api/healthz")

        assert list(response["_links"]) == ["self"]

    def test_input_not_mutated(self):
        builder = HalResponseBuilder("https://api.example.com")
        data = {"id": "1"}

        builder.build_resource_response(data, "/api/clients", "1")

        assert "_links" not in data

    def test_build_collection_response(self):
        """Test building a collection response."""
        builder = HalResponseBuilder("https://api.example.com")
        items = [{"id": "1"}, {"id": "2"}]

        response = builder.build_collection_response(items, "/api/roles/department/hr", {"department": "hr"})

        assert response["count"] == 2
        assert response["department"] == "hr"
        assert response["_embedded"]["items"] == items
        assert response["_links"]["self"]["href"] == "https://api.example.com/api/roles/department/hr"

    def test_build_error_response(self):
        """Validation problems carry field errors and a schema link."""
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_error_response(
            "validation-error",
            400,
            "Request validation failed",
            "/api/clients",
            [{"field": "clientName", "message": "Required"}]
        )

        assert response["type"] == "https://api.field-crm.example/problems/validation-error"
        assert response["title"] == "Validation Error"
        assert response["status"] == 400
        assert response["detail"] == "Request validation failed"
        assert response["instance"] == "/api/clients"
        assert response["errors"] == [{"field": "clientName", "message": "Required"}]
        assert "help" in response["_links"]
        assert response["_links"]["schema"]["href"] == "https://api.example.com/openapi/openapi.json"

    def test_error_without_details_has_no_errors_key(self):
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_error_response("resource-not-found", 404, "Gone", "/x")

        assert "errors" not in response
        assert list(response["_links"]) == ["help"]

    def test_unknown_problem_type_title(self):
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_error_response("quota-exceeded", 429, "Slow down", "/x")

        assert response["title"] == "Quota Exceeded"

    def test_explicit_title_wins(self):
        builder = HalResponseBuilder("https://api.example.com")

        response = builder.build_error_response("resource-conflict", 409, "Taken", "/x", title="Email Taken")

        assert response["title"] == "Email Taken"


class TestHalFormatter:
    """Test HAL formatter functionality."""

    def setup_method(self):
        self.formatter = create_hal_formatter("https://api.example.com")

    def test_create_hal_formatter(self):
        assert isinstance(self.formatter, HalFormatter)
        assert self.formatter.builder.base_url == "https://api.example.com"

    def test_format_resource_uses_id(self):
        response = self.formatter.format_resource({"id": "abc", "clientName": "Acme"}, "/api/clients")

        assert response["_links"]["self"]["href"] == "https://api.example.com/api/clients/abc"

    def test_format_collection_links_items(self):
        response = self.formatter.format_collection(
            [{"id": "a"}, {"id": "b"}], "/api/meetings", {"delete": ("", "DELETE")}
        )

        items = response["_embedded"]["items"]
        assert response["count"] == 2
        assert items[1]["_links"]["self"]["href"] == "https://api.example.com/api/meetings/b"
        assert items[0]["_links"]["delete"]["method"] == "DELETE"

    def test_authentication_problem_links_login(self):
        response = self.formatter.format_error(
            "authentication-required", 401, "Missing authorization token", "/api/auth/me"
        )

        assert response["status"] == 401
        assert response["title"] == "Authentication Required"
        assert response["_links"]["login"]["method"] == "POST"

    def test_authorization_problem_links_permissions(self):
        response = self.formatter.format_error(
            "insufficient-permissions", 403, "Missing required permission", "/api/roles"
        )

        assert response["status"] == 403
        assert response["_links"]["permissions"]["href"] == "https://api.example.com/api/auth/me"

    def test_format_validation_error(self):
        response = self.formatter.format_validation_error(
            "Request validation failed", "/api/meetings", [{"field": "client", "message": "Unknown client"}]
        )

        assert response["status"] == 400
        assert response["errors"][0]["field"] == "client"

    def test_no_trace_id_outside_a_span(self):
        response = self.formatter.format_error("transaction-failure", 500, "Client deletion failed", "/api/clients/1")

        assert response["type"].endswith("/transaction-failure")
        assert response["title"] == "Transaction Failed"
        assert "traceId" not in response
