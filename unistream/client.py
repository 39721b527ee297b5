"""
unistream - Streaming Client

One entry point for callers: looks up credentials and provider defaults,
resolves request parameters, then runs the stream transport.

Usage:
    client = StreamingClient(EnvCredentialProvider())

    async def on_event(event):
        print(event.chunk, end="")

    result = await client.stream_completion("claude", "Summarize this", on_event)
"""

from typing import Dict, List, Optional, Sequence, Union

import httpx

from .adapters import get_adapter
from .core.config import CredentialProvider, EnvCredentialProvider
from .core.errors import ConfigurationError
from .core.models import HistoryTurn, ModelInfo, ModelSettings, ProviderId, SinkEvent
from .core.params import compose_prompt, resolve_request_spec
from .observability.logging import get_logger
from .observability.metrics import MetricsCollector
from .streaming.cancellation import CancellationToken
from .streaming.session import StreamResult, generate_request_id
from .streaming.transport import Sink, StreamTransport, deliver_event
from .validation import ValidationProbe

logger = get_logger("unistream.client")

SETUP_ERROR_PREFIX = "API Request Setup Error"


class StreamingClient:
    """Facade over credential lookup, parameter resolution and streaming."""

    def __init__(
        self,
        credentials: Optional[CredentialProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[httpx.Timeout] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.credentials = credentials or EnvCredentialProvider()
        self._http_client = http_client
        self._timeout = timeout
        self._metrics = metrics

    async def stream_completion(
        self,
        provider: Union[ProviderId, str],
        prompt: str,
        sink: Sink,
        *,
        model: Optional[str] = None,
        formatted_content: Optional[str] = None,
        conversation_history: Sequence[Union[HistoryTurn, Dict[str, str]]] = (),
        settings: Optional[ModelSettings] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> StreamResult:
        """
        Stream a completion from a provider into the sink.

        Setup failures (unknown provider, missing key or model) are delivered
        to the sink as the terminal event and raised as ConfigurationError;
        no request is sent.
        """
        request_id = generate_request_id()
        resolved_model = model or ""

        try:
            provider_id = ProviderId.parse(provider)
            adapter = get_adapter(provider_id)
            creds = self.credentials.get_credentials(provider_id)
            config = self.credentials.get_provider_config(provider_id)
            resolved_model = model or creds.model or config.default_model
            spec = resolve_request_spec(
                config,
                resolved_model,
                compose_prompt(prompt, formatted_content),
                settings,
                conversation_history,
            )
        except Exception as e:
            message = f"{SETUP_ERROR_PREFIX}: {e}"
            logger.error(message, request_id=request_id)
            await deliver_event(
                sink,
                SinkEvent(
                    chunk="",
                    done=True,
                    model=resolved_model,
                    error=message,
                    request_id=request_id,
                ),
            )
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(message, provider=str(provider), request_id=request_id) from e

        logger.info(
            "Dispatching completion request",
            request_id=request_id,
            provider=provider_id.value,
            model=spec.model,
            history_turns=len(spec.conversation_history),
        )

        transport = StreamTransport(
            adapter,
            client=self._http_client,
            timeout=self._timeout,
            metrics=self._metrics,
        )
        return await transport.execute(
            spec,
            sink,
            api_key=creds.api_key,
            cancellation=cancellation,
            endpoint=config.endpoint,
            request_id=request_id,
        )

    async def validate_credentials(
        self,
        provider: Union[ProviderId, str],
        api_key: Optional[str] = None,
        model: Optional[str] = None,
    ) -> bool:
        """
        Check a key against the provider.

        Uses the configured key and default model when not given. Never raises.
        """
        try:
            provider_id = ProviderId.parse(provider)
            adapter = get_adapter(provider_id)
            config = self.credentials.get_provider_config(provider_id)
            if api_key is None:
                api_key = self.credentials.get_credentials(provider_id).api_key
        except Exception as e:
            logger.warning("Credential validation not attempted", error_message=str(e))
            return False

        probe = ValidationProbe(
            adapter,
            client=self._http_client,
            timeout=self._timeout,
            metrics=self._metrics,
        )
        return await probe.validate(api_key, model or config.default_model, config.endpoint)

    def available_models(self, provider: Union[ProviderId, str]) -> List[ModelInfo]:
        """Models configured for a provider."""
        return list(self.credentials.get_provider_config(ProviderId.parse(provider)).models)
