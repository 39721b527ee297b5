"""
unistream - Unified LLM Streaming

Send one completion request to OpenAI, Anthropic, Gemini, DeepSeek, Mistral
or Grok and receive the same incremental event sequence from each, with
cancellation and exactly-once finalization.
"""

from .adapters import ProviderAdapter, get_adapter
from .client import StreamingClient
from .core.config import CredentialProvider, EnvCredentialProvider
from .core.errors import (
    CancellationError,
    ConfigurationError,
    DecodeError,
    ProviderError,
    TransportError,
    UniStreamError,
    UpstreamHTTPError,
)
from .core.models import (
    HistoryTurn,
    ModelSettings,
    ProviderId,
    RequestSpec,
    Role,
    SinkEvent,
)
from .core.params import compose_prompt, resolve_request_spec
from .streaming import CancellationToken, StreamResult, StreamTransport, TransportState
from .validation import ValidationProbe

__version__ = "0.1.0"

__all__ = [
    "StreamingClient",
    "StreamTransport",
    "ValidationProbe",
    "ProviderAdapter",
    "get_adapter",
    "CredentialProvider",
    "EnvCredentialProvider",
    "CancellationToken",
    "StreamResult",
    "TransportState",
    "HistoryTurn",
    "ModelSettings",
    "ProviderId",
    "RequestSpec",
    "Role",
    "SinkEvent",
    "compose_prompt",
    "resolve_request_spec",
    "UniStreamError",
    "ConfigurationError",
    "TransportError",
    "UpstreamHTTPError",
    "DecodeError",
    "ProviderError",
    "CancellationError",
]
