"""
unistream - Observability Module

- Prometheus metrics (Counter, Histogram, Gauge)
- OpenTelemetry client spans for provider calls
- Structured JSON logging with context injection

Usage:
    from unistream.observability import setup_logging, setup_metrics, setup_tracing

    setup_logging(level="INFO")
    setup_metrics()
    setup_tracing(service_name="my-service")
"""

from .metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
    render_metrics,
)
from .tracing import (
    TracingManager,
    get_tracer,
    get_tracing_manager,
    setup_tracing,
    trace_provider_call,
)
from .logging import (
    StructuredLogger,
    get_logger,
    setup_logging,
    LogContext,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "setup_metrics",
    "render_metrics",
    # Tracing
    "TracingManager",
    "get_tracer",
    "get_tracing_manager",
    "setup_tracing",
    "trace_provider_call",
    # Logging
    "StructuredLogger",
    "get_logger",
    "setup_logging",
    "LogContext",
]
