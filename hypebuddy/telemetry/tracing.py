from __future__ import annotations

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from hypebuddy.config import TelemetrySettings
from hypebuddy.telemetry.logging import get_logger

_configured = False


def tracing_resource(settings: TelemetrySettings) -> Resource:
    return Resource.create({SERVICE_NAME: settings.service_name, DEPLOYMENT_ENVIRONMENT: settings.environment})


def configure_tracing(settings: TelemetrySettings) -> bool:
    """Install the OTLP exporter; returns False when no endpoint is configured."""
    global _configured
    if _configured:
        return True
    if settings.otlp_endpoint is None:
        return False

    provider = TracerProvider(resource=tracing_resource(settings))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
    trace.set_tracer_provider(provider)
    get_logger(__name__).info(
        "tracing.enabled",
        endpoint=settings.otlp_endpoint,
        service_name=settings.service_name,
        environment=settings.environment,
    )
    _configured = True
    return True


def get_tracer(name: str) -> trace.Tracer:
    # Falls back to the no-op provider until configure_tracing installs one.
    return trace.get_tracer(name)


__all__ = ["configure_tracing", "get_tracer", "tracing_resource"]
