"""
unistream Core Module

Canonical data models, error taxonomy, configuration and parameter resolution.
"""

from .models import (
    # Enums
    ProviderId,
    Role,
    ReasoningEffort,
    ParameterStyle,
    EventType,
    ScanMode,

    # Requests
    HistoryTurn,
    RequestSpec,
    ProviderRequest,

    # Events
    StreamEvent,
    SinkEvent,

    # Configuration
    ModelInfo,
    ProviderConfig,
    Credentials,
    ModelSettings,
)

from .errors import (
    ErrorCategory,
    ErrorDetails,
    UniStreamError,
    ConfigurationError,
    TransportError,
    UpstreamHTTPError,
    ConnectionFailedError,
    RequestTimeoutError,
    DecodeError,
    ProviderError,
    CancellationError,
    extract_api_error_message,
    map_transport_exception,
)
