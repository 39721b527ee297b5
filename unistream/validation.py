"""
unistream - Credential Validation

Sends the smallest legal non-streaming request to check that a provider
accepts an API key. Success is judged purely from the HTTP status.
"""

import time
from typing import Optional

import httpx

from .adapters.base import ProviderAdapter
from .core.config import get_http_timeout
from .core.errors import extract_api_error_message
from .observability.logging import LogContext, get_logger, redact_url
from .observability.metrics import MetricsCollector, get_metrics
from .observability.tracing import trace_provider_call

logger = get_logger("unistream.validation")


class ValidationProbe:
    """Credential probe for one provider adapter."""

    def __init__(
        self,
        adapter: ProviderAdapter,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[httpx.Timeout] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.adapter = adapter
        self._client = client
        self._timeout = timeout
        self._metrics = metrics

    async def validate(self, api_key: str, model: str, endpoint: Optional[str] = None) -> bool:
        """
        Return True when the provider accepts the key for this model.

        Never raises: every failure is logged and reported as False.
        """
        start = time.monotonic()
        provider = self.adapter.name
        valid = False

        with LogContext.scope(provider=provider, model=model, operation="validate"):
            with trace_provider_call(provider, model, "validate") as span:
                try:
                    valid = await self._probe(api_key, model, endpoint)
                except Exception as e:
                    logger.warning(
                        "Credential validation failed",
                        error_type=type(e).__name__,
                        error_message=str(e),
                    )
                span.set_attribute("unistream.valid", valid)

        (self._metrics or get_metrics()).record_validation(provider, valid, time.monotonic() - start)
        return valid

    async def _probe(self, api_key: str, model: str, endpoint: Optional[str]) -> bool:
        if not api_key:
            logger.warning("Credential validation skipped: empty API key")
            return False
        if not model:
            logger.warning("Credential validation skipped: no model")
            return False

        request = self.adapter.build_validation_request(api_key, model, endpoint)
        logger.debug("Sending validation request", url=redact_url(request.url))

        client = self._client or httpx.AsyncClient(timeout=self._timeout or get_http_timeout())
        try:
            response = await client.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                content=request.body,
            )
        finally:
            if self._client is None:
                await client.aclose()

        if response.is_success:
            logger.info("Credential accepted", status_code=response.status_code)
            return True

        logger.warning(
            "Credential rejected",
            status_code=response.status_code,
            error_message=extract_api_error_message(
                response.status_code, response.reason_phrase, response.content
            ),
        )
        return False
