"""
unistream - Credential Validation Tests

Verifies the probe reports True only for a 2xx answer and never raises.
"""

import json

import httpx
import pytest

from unistream.adapters import get_adapter
from unistream.validation import ValidationProbe


class TestValidationProbe:
    """Test the one-token credential probe."""

    @pytest.mark.asyncio
    async def test_accepted_key(self, mock_provider, metrics):
        provider = mock_provider(body=b'{"id": "chatcmpl-1", "choices": []}')
        probe = ValidationProbe(get_adapter("openai"), client=provider.client, metrics=metrics)

        assert await probe.validate("sk-good", "gpt-4o-mini") is True

        body = json.loads(provider.last_request.content)
        assert body["max_tokens"] == 1
        assert body["model"] == "gpt-4o-mini"
        assert metrics.registry.get_sample_value(
            "unistream_validations_total", {"provider": "openai", "result": "valid"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_rejected_key(self, mock_provider, metrics):
        provider = mock_provider(
            status_code=401,
            body=b'{"error": {"type": "authentication_error", "message": "invalid x-api-key"}}',
        )
        probe = ValidationProbe(get_adapter("anthropic"), client=provider.client, metrics=metrics)

        assert await probe.validate("sk-bad", "claude-3-5-haiku-latest") is False
        assert provider.last_request.headers["x-api-key"] == "sk-bad"
        assert metrics.registry.get_sample_value(
            "unistream_validations_total", {"provider": "anthropic", "result": "invalid"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_gemini_probe_uses_generate_content(self, mock_provider, metrics):
        provider = mock_provider(body=b'{"candidates": []}')
        probe = ValidationProbe(get_adapter("gemini"), client=provider.client, metrics=metrics)

        assert await probe.validate("gk", "gemini-1.5-flash") is True
        assert ":generateContent" in str(provider.last_request.url)
        assert json.loads(provider.last_request.content)["generationConfig"] == {"maxOutputTokens": 1}

    @pytest.mark.asyncio
    async def test_empty_key_skips_request(self, mock_provider, metrics):
        provider = mock_provider(body=b"{}")
        probe = ValidationProbe(get_adapter("openai"), client=provider.client, metrics=metrics)

        assert await probe.validate("", "gpt-4o-mini") is False
        assert provider.called is False

    @pytest.mark.asyncio
    async def test_empty_model_skips_request(self, mock_provider, metrics):
        provider = mock_provider(body=b"{}")
        probe = ValidationProbe(get_adapter("mistral"), client=provider.client, metrics=metrics)

        assert await probe.validate("key", "") is False
        assert provider.called is False

    @pytest.mark.asyncio
    async def test_network_failure_returns_false(self, mock_provider, metrics):
        provider = mock_provider(error=httpx.ConnectError("unreachable"))
        probe = ValidationProbe(get_adapter("deepseek"), client=provider.client, metrics=metrics)

        assert await probe.validate("key", "deepseek-chat") is False

    @pytest.mark.asyncio
    async def test_endpoint_override(self, mock_provider, metrics):
        provider = mock_provider(body=b"{}")
        probe = ValidationProbe(get_adapter("grok"), client=provider.client, metrics=metrics)

        await probe.validate("key", "grok-2-latest", "http://localhost:7000/v1/chat/completions")

        assert str(provider.last_request.url) == "http://localhost:7000/v1/chat/completions"
