"""
unistream - Prometheus Metrics

Metrics collection for streaming sessions with the Prometheus client library.

Metrics exposed:
- unistream_streams_total: Counter of finished streams by provider, model, outcome
- unistream_stream_duration_seconds: Histogram of stream wall time
- unistream_time_to_first_token_seconds: Histogram of latency to first text chunk
- unistream_active_streams: Gauge of streams currently in flight
- unistream_frames_total: Counter of classified frames by event type
- unistream_validations_total: Counter of credential probes by result

Usage:
    from unistream.observability.metrics import get_metrics, render_metrics

    metrics = get_metrics()
    metrics.record_stream(provider="openai", model="gpt-4o", outcome="completed", duration_seconds=1.5)

    body, content_type = render_metrics()
"""

from typing import Optional, Tuple

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)


class MetricsCollector:
    """
    Central metrics collector using Prometheus client.

    One collector per registry; tests pass a fresh CollectorRegistry.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.streams_total = Counter(
            "unistream_streams_total",
            "Total number of finished streams",
            labelnames=["provider", "model", "outcome"],
            registry=registry,
        )

        # LLM streams typically range from 0.5s to several minutes
        self.stream_duration = Histogram(
            "unistream_stream_duration_seconds",
            "Stream duration in seconds",
            labelnames=["provider", "model"],
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, 300.0, float("inf")),
            registry=registry,
        )

        self.time_to_first_token = Histogram(
            "unistream_time_to_first_token_seconds",
            "Time to first text chunk in streaming responses",
            labelnames=["provider", "model"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, float("inf")),
            registry=registry,
        )

        self.active_streams = Gauge(
            "unistream_active_streams",
            "Number of streams currently in flight",
            labelnames=["provider"],
            registry=registry,
        )

        self.frames_total = Counter(
            "unistream_frames_total",
            "Total classified frames",
            labelnames=["provider", "event"],
            registry=registry,
        )

        self.validations_total = Counter(
            "unistream_validations_total",
            "Total credential validation probes",
            labelnames=["provider", "result"],
            registry=registry,
        )

        self.validation_duration = Histogram(
            "unistream_validation_duration_seconds",
            "Credential validation probe duration",
            labelnames=["provider"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=registry,
        )

    def record_stream(
        self,
        provider: str,
        model: str,
        outcome: str,
        duration_seconds: float,
    ):
        """Record a finished stream."""
        self.streams_total.labels(provider=provider, model=model, outcome=outcome).inc()
        self.stream_duration.labels(provider=provider, model=model).observe(duration_seconds)

    def record_time_to_first_token(self, provider: str, model: str, ttft_seconds: float):
        self.time_to_first_token.labels(provider=provider, model=model).observe(ttft_seconds)

    def record_frame(self, provider: str, event: str):
        self.frames_total.labels(provider=provider, event=event).inc()

    def record_validation(self, provider: str, success: bool, duration_seconds: float):
        """Record a credential probe result."""
        self.validation_duration.labels(provider=provider).observe(duration_seconds)
        self.validations_total.labels(
            provider=provider,
            result="valid" if success else "invalid",
        ).inc()

    def track_active_stream(self, provider: str) -> "ActiveStreamTracker":
        """Context manager to track in-flight streams."""
        return ActiveStreamTracker(self, provider)


class ActiveStreamTracker:
    """Context manager for tracking active streams."""

    def __init__(self, collector: MetricsCollector, provider: str):
        self.collector = collector
        self.provider = provider

    def __enter__(self):
        self.collector.active_streams.labels(provider=self.provider).inc()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.collector.active_streams.labels(provider=self.provider).dec()


_metrics_instance: Optional[MetricsCollector] = None


def setup_metrics(registry: CollectorRegistry = REGISTRY) -> MetricsCollector:
    """
    Setup metrics collection.

    Safe to call multiple times with the same registry.
    """
    global _metrics_instance

    if _metrics_instance is not None and _metrics_instance.registry is registry:
        return _metrics_instance

    _metrics_instance = MetricsCollector(registry)
    return _metrics_instance


def get_metrics() -> MetricsCollector:
    """Get the metrics collector, initializing on the default registry if needed."""
    if _metrics_instance is None:
        return setup_metrics()
    return _metrics_instance


def render_metrics(registry: Optional[CollectorRegistry] = None) -> Tuple[bytes, str]:
    """Render the Prometheus text exposition for a registry."""
    if registry is None:
        registry = get_metrics().registry
    return generate_latest(registry), CONTENT_TYPE_LATEST
