"""
Field CRM API - Flask Application Factory

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the services used by the sales CRM:
clients, meetings, projects, expenses and employee location tracking.
"""

import os
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from middleware.validation import request_validation_error
from middleware.auth import AuthMiddleware
from services.hal import create_hal_formatter
from services.mongodb import MongoDBService
from services.redis import RedisService
from services.auth import AuthService
from services.audit import AuditService
from services.client_deletion import ClientDeletionCoordinator
from services.clients import ClientService
from services.expenses import ExpenseService
from services.health import HealthCheckService
from services.location_tracking import LocationTrackingService
from services.meetings import MeetingService
from services.projects import ProjectService
from services.reports import ReportService
from services.users import UserService
from utils.clock import Clock, utc_now

info = Info(
    title="Field CRM API",
    version="1.0.0",
    description="Multi-tenant sales CRM API with HAL responses and employee location tracking"
)

health_tag = Tag(name="Health", description="System health and status")


def _pem_from_env(name: str) -> Optional[str]:
    """PEM keys may be stored on one line with escaped newlines."""
    value = os.getenv(name)
    return value.replace("\\n", "\n") if value else None


def load_config() -> Dict[str, Any]:
    """Read configuration from the environment."""
    environment = os.getenv('ENVIRONMENT', 'development')
    return {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/field_crm_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'field_crm_dev'),
        'REDIS_URL': os.getenv('REDIS_URL', 'redis://localhost:6379'),
        'JWT_PRIVATE_KEY': _pem_from_env('JWT_PRIVATE_KEY'),
        'JWT_PUBLIC_KEY': _pem_from_env('JWT_PUBLIC_KEY'),
        'JWT_ACCESS_TOKEN_MINUTES': int(os.getenv('JWT_ACCESS_TOKEN_MINUTES', '15')),
        'JWT_REFRESH_TOKEN_DAYS': int(os.getenv('JWT_REFRESH_TOKEN_DAYS', '7')),
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000'),
        'OTEL_ENABLED': os.getenv('OTEL_ENABLED', 'true').lower() == 'true',
        'DEFAULT_ORGANIZATION_ID': os.getenv('DEFAULT_ORGANIZATION_ID', 'default'),
        'PRESENCE_ONLINE_MINUTES': float(os.getenv('PRESENCE_ONLINE_MINUTES', '5')),
        'PRESENCE_IDLE_MINUTES': float(os.getenv('PRESENCE_IDLE_MINUTES', '15')),
        'LOCATION_HISTORY_DEFAULT_DAYS': int(os.getenv('LOCATION_HISTORY_DEFAULT_DAYS', '7')),
    }


def create_app(
    config_overrides: Optional[Dict[str, Any]] = None,
    mongodb_service: Optional[MongoDBService] = None,
    redis_service: Optional[RedisService] = None,
    auth_service: Optional[AuthService] = None,
    clock: Clock = utc_now
) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        config_overrides: Values replacing the environment configuration
        mongodb_service: Pre-built store (tests pass an in-memory one)
        redis_service: Pre-built Redis service
        auth_service: Pre-built authentication service
        clock: Source of "now" for every service

    Returns:
        Configured OpenAPI (Flask) application
    """
    config = load_config()
    config.update(config_overrides or {})

    otel_installed = setup_observability(config['ENVIRONMENT'], config['OTEL_ENABLED'])

    app = OpenAPI(
        __name__,
        info=info,
        validation_error_status=400,
        validation_error_callback=request_validation_error
    )
    app.config.update(config)

    add_observability_middleware(app, instrument=otel_installed)

    # Services
    mongodb_service = mongodb_service or MongoDBService(config['MONGODB_URI'], config['MONGODB_DATABASE'])
    redis_service = redis_service or RedisService(config['REDIS_URL'])
    auth_service = auth_service or AuthService(
        config['JWT_PRIVATE_KEY'],
        config['JWT_PUBLIC_KEY'],
        access_token_expire_minutes=config['JWT_ACCESS_TOKEN_MINUTES'],
        refresh_token_expire_days=config['JWT_REFRESH_TOKEN_DAYS']
    )
    audit_service = AuditService(mongodb_service, clock=clock)

    hal_formatter = create_hal_formatter(config['BASE_URL'])
    ErrorHandlerMiddleware(app, config['BASE_URL'])
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.clock = clock
    app.mongodb_service = mongodb_service
    app.redis_service = redis_service
    app.auth_service = auth_service
    app.audit_service = audit_service
    app.hal_formatter = hal_formatter
    app.auth_middleware = AuthMiddleware(auth_service, redis_service)
    app.user_service = UserService(mongodb_service, auth_service, audit_service, clock)
    app.client_service = ClientService(mongodb_service, audit_service, clock)
    app.client_deletion = ClientDeletionCoordinator(mongodb_service, audit_service)
    app.meeting_service = MeetingService(mongodb_service, audit_service, clock)
    app.project_service = ProjectService(mongodb_service, audit_service, clock)
    app.expense_service = ExpenseService(mongodb_service, audit_service, clock)
    app.location_service = LocationTrackingService(
        mongodb_service,
        audit_service,
        clock,
        online_minutes=config['PRESENCE_ONLINE_MINUTES'],
        idle_minutes=config['PRESENCE_IDLE_MINUTES'],
        history_default_days=config['LOCATION_HISTORY_DEFAULT_DAYS']
    )
    app.report_service = ReportService(mongodb_service)
    app.health_service = HealthCheckService(mongodb_service, redis_service, clock)

    # Register routes
    from routes.auth import auth_bp
    from routes.clients import clients_bp
    from routes.meetings import meetings_bp
    from routes.projects import projects_bp
    from routes.expenses import expenses_bp
    from routes.reports import reports_bp
    from routes.roles import roles_bp

    app.register_api(auth_bp)
    app.register_api(clients_bp)
    app.register_api(meetings_bp)
    app.register_api(projects_bp)
    app.register_api(expenses_bp)
    app.register_api(reports_bp)
    app.register_api(roles_bp)

    @app.get('/api/healthz', tags=[health_tag])
    def health_check():
        """Health check with dependency status"""
        health_data = app.health_service.get_health()
        status_code = 503 if health_data["status"] == "unhealthy" else 200
        return jsonify(hal_formatter.format_resource(health_data, '/api/healthz')), status_code

    return app


if __name__ == '__main__':
    # Development server
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=app.config['DEBUG']
    )
