"""
unistream - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Fresh Prometheus registries per test
- Scripted provider responses served through httpx.MockTransport
"""

import os
import asyncio
from typing import Any, Callable, List, Optional, Sequence

import httpx
import pytest
from prometheus_client import CollectorRegistry

from unistream.core.models import SinkEvent
from unistream.observability.metrics import MetricsCollector


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


# ============================================================
# Pytest Markers
# ============================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )

    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# Metrics
# ============================================================

@pytest.fixture
def metrics():
    """Metrics collector on its own registry."""
    return MetricsCollector(CollectorRegistry())


# ============================================================
# Recording Sink
# ============================================================

class RecordingSink:
    """Sink that keeps every event it receives."""

    def __init__(self, on_event: Optional[Callable[[SinkEvent], None]] = None):
        self.events: List[SinkEvent] = []
        self._on_event = on_event

    def __call__(self, event: SinkEvent):
        self.events.append(event)
        if self._on_event is not None:
            self._on_event(event)

    @property
    def chunks(self) -> List[SinkEvent]:
        return [event for event in self.events if not event.done]

    @property
    def terminals(self) -> List[SinkEvent]:
        return [event for event in self.events if event.done]

    @property
    def terminal(self) -> SinkEvent:
        assert len(self.terminals) == 1, f"expected one terminal event, got {self.terminals}"
        return self.terminals[0]

    @property
    def text(self) -> str:
        return "".join(event.chunk for event in self.chunks)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_sink():
    """RecordingSink factory for tests that react to events."""
    return RecordingSink


# ============================================================
# Mock HTTP Provider
# ============================================================

class ScriptedStream(httpx.AsyncByteStream):
    """
    Response body that yields pre-recorded chunks.

    With hang=True the stream blocks after the last chunk until it is
    cancelled, like a provider that stops sending mid-response.
    """

    def __init__(self, chunks: Sequence[bytes], hang: bool = False):
        self.chunks = list(chunks)
        self.hang = hang
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.hang:
            await asyncio.Event().wait()

    async def aclose(self):
        self.closed = True


class MockProvider:
    """Scripted provider endpoint behind an httpx.AsyncClient."""

    def __init__(
        self,
        chunks: Sequence[bytes] = (),
        status_code: int = 200,
        body: bytes = b"",
        hang: bool = False,
        error: Optional[Exception] = None,
    ):
        self.stream = ScriptedStream(chunks, hang=hang)
        self.status_code = status_code
        self.body = body
        self.error = error
        self.requests: List[httpx.Request] = []
        self.client = httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.status_code >= 400 or self.body:
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, stream=self.stream)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def called(self) -> bool:
        return bool(self.requests)


@pytest.fixture
def mock_provider() -> Callable[..., MockProvider]:
    """
    Factory for scripted providers.

    Usage:
        def test_something(mock_provider):
            provider = mock_provider([b"data: ...\\n"])
            transport = StreamTransport(adapter, client=provider.client)
    """
    def factory(*args: Any, **kwargs: Any) -> MockProvider:
        return MockProvider(*args, **kwargs)

    return factory
