"""OpenTelemetry instrumentation for the prediction service.

Sets up tracing, metrics, and structured logging. Spans and metrics are only
exported when an OTLP collector endpoint is configured.
"""

import os
from opentelemetry import trace, metrics
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_NAMESPACE
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from potability.logging_config import configure_logging


def _create_resource(service_name: str, namespace: str) -> Resource:
    attrs = {
        SERVICE_NAME: service_name,
        SERVICE_NAMESPACE: namespace,
        "service.version": os.getenv("SERVICE_VERSION", "1.0.0"),
        "service.instance.id": os.getenv("POD_UID", f"{service_name}-local"),
        "deployment.environment": os.getenv("ENVIRONMENT", "dev"),
    }
    return Resource.create(attrs)


def setup_telemetry(app, service_name: str, namespace: str = "potability"):
    """Initialize OpenTelemetry for a FastAPI application."""
    resource = _create_resource(service_name, namespace)

    # Exporters only when a collector is configured
    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "")

    trace_provider = TracerProvider(resource=resource)
    metric_readers = []
    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

        trace_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        metric_readers.append(PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=otlp_endpoint, insecure=True),
            export_interval_millis=30000
        ))
    trace.set_tracer_provider(trace_provider)

    meter_provider = MeterProvider(resource=resource, metric_readers=metric_readers)
    metrics.set_meter_provider(meter_provider)

    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()

    configure_logging(service_name, os.getenv("LOG_LEVEL", "INFO"))

    return trace.get_tracer(service_name), metrics.get_meter(service_name)
