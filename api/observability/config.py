"""
OpenTelemetry Configuration

Sets up distributed tracing and logging levels for the field CRM API.
"""

import os
import logging
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SAMPLING_RATIOS = {
    'production': 0.1,
    'staging': 0.5,
}


def setup_observability(environment: str = None, otel_enabled: bool = None) -> bool:
    """
    Initialize OpenTelemetry instrumentation based on environment configuration.

    Returns:
        True when a tracer provider was installed
    """
    environment = environment or os.getenv('ENVIRONMENT', 'development')
    if otel_enabled is None:
        otel_enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'
    service_name = 'field-crm-api'
    service_version = os.getenv('SERVICE_VERSION', '1.0.0')

    setup_structured_logging(environment)

    if not otel_enabled or environment == 'test':
        # Without a provider the API tracer is a no-op
        return False

    sampler = TraceIdRatioBased(SAMPLING_RATIOS.get(environment, 1.0))

    resource = Resource.create({
        "service.name": service_name,
        "service.version": service_version,
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(
        sampler=sampler,
        resource=resource
    )

    otlp_endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    if otlp_endpoint:
        headers = None
        if os.getenv('OTEL_API_KEY'):
            headers = {"Authorization": f"Bearer {os.getenv('OTEL_API_KEY')}"}
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, headers=headers), max_export_batch_size=512)
        )
    elif environment == 'development':
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    return True


def setup_structured_logging(environment: str):
    """Configure log levels per environment."""
    log_level = {
        'production': logging.WARNING,
        'staging': logging.INFO,
        'development': logging.INFO,
        'test': logging.WARNING
    }.get(environment, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        handlers=[logging.StreamHandler()]
    )

    if environment == 'production':
        # Reduce noise, focus on errors and business events
        logging.getLogger('pymongo').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)

    elif environment == 'development':
        logging.getLogger('domain').setLevel(logging.DEBUG)
        logging.getLogger('services').setLevel(logging.DEBUG)
