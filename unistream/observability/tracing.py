"""
unistream - OpenTelemetry Tracing

Client spans around provider calls.

Features:
- One CLIENT span per stream or validation probe
- OTLP exporter support when installed (Jaeger, Tempo, ...)
- Console exporter for debugging

Usage:
    from unistream.observability.tracing import setup_tracing, trace_provider_call

    setup_tracing(service_name="unistream", otlp_endpoint="http://localhost:4317")

    with trace_provider_call("openai", "gpt-4o", "stream") as span:
        span.set_attribute("unistream.chunks", 12)
"""

import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.trace import SpanKind, Status, StatusCode

# Optional OTLP exporter (requires opentelemetry-exporter-otlp)
try:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    OTLP_AVAILABLE = True
except ImportError:
    OTLP_AVAILABLE = False


class TracingManager:
    """Owns the tracer provider used for provider call spans."""

    _instance: Optional["TracingManager"] = None

    def __init__(
        self,
        service_name: str = "unistream",
        service_version: str = "0.1.0",
        otlp_endpoint: Optional[str] = None,
        console_export: bool = False,
        exporter: Optional[SpanExporter] = None,
        set_global: bool = True,
    ):
        """
        Initialize tracing.

        Args:
            service_name: Name of the service
            service_version: Version of the service
            otlp_endpoint: OTLP collector endpoint (e.g., http://localhost:4317)
            console_export: Whether to export spans to console
            exporter: Extra exporter attached with a simple processor (tests use
                an in-memory exporter here)
            set_global: Register the provider as the global tracer provider
        """
        self.service_name = service_name
        self.service_version = service_version

        resource = Resource.create({
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
        })

        self.provider = TracerProvider(resource=resource)

        if otlp_endpoint and OTLP_AVAILABLE:
            self.provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint))
            )

        if console_export:
            self.provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        if exporter is not None:
            self.provider.add_span_processor(SimpleSpanProcessor(exporter))

        if set_global:
            trace.set_tracer_provider(self.provider)

        self.tracer = self.provider.get_tracer(service_name, service_version)

    @classmethod
    def get_instance(cls) -> "TracingManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def get_tracer(self) -> trace.Tracer:
        return self.tracer

    def start_client_span(self, name: str, attributes: Optional[Dict[str, Any]] = None):
        """Start a client span for an outgoing provider call."""
        return self.tracer.start_as_current_span(
            name,
            kind=SpanKind.CLIENT,
            attributes=attributes,
        )

    def add_span_attributes(self, attributes: Dict[str, Any]):
        """Add attributes to the current span."""
        span = trace.get_current_span()
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)

    def record_exception(self, exception: BaseException):
        """Record an exception on the current span."""
        span = trace.get_current_span()
        span.record_exception(exception)
        span.set_status(Status(StatusCode.ERROR, str(exception)))

    def shutdown(self):
        self.provider.shutdown()


_tracing_instance: Optional[TracingManager] = None


def setup_tracing(
    service_name: str = "unistream",
    service_version: str = "0.1.0",
    otlp_endpoint: Optional[str] = None,
    console_export: bool = False,
    exporter: Optional[SpanExporter] = None,
    set_global: bool = True,
) -> TracingManager:
    """
    Setup tracing.

    OTEL_EXPORTER_OTLP_ENDPOINT and OTEL_CONSOLE_EXPORT are honored when the
    corresponding arguments are not given.
    """
    global _tracing_instance

    if otlp_endpoint is None:
        otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    if os.getenv("OTEL_CONSOLE_EXPORT", "").lower() == "true":
        console_export = True

    _tracing_instance = TracingManager(
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint,
        console_export=console_export,
        exporter=exporter,
        set_global=set_global,
    )
    TracingManager._instance = _tracing_instance
    return _tracing_instance


def get_tracing_manager() -> TracingManager:
    """Get the tracing manager instance."""
    global _tracing_instance
    if _tracing_instance is None:
        _tracing_instance = TracingManager.get_instance()
    return _tracing_instance


def get_tracer() -> trace.Tracer:
    return get_tracing_manager().get_tracer()


@contextmanager
def trace_provider_call(provider: str, model: str, operation: str = "stream") -> Iterator[Any]:
    """
    Context manager for tracing provider API calls.

    Usage:
        with trace_provider_call("anthropic", "claude-3-5-sonnet-latest") as span:
            ...
            span.set_attribute("unistream.outcome", "completed")
    """
    tracing = get_tracing_manager()

    with tracing.start_client_span(
        name=f"{provider}.{operation}",
        attributes={
            "ai.provider": provider,
            "ai.model": model,
            "ai.operation": operation,
        },
    ) as span:
        yield span
