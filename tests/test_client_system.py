"""
unistream - Streaming Client Tests

Verifies the facade wires credentials, parameter resolution and the
transport together, and reports setup failures through the sink.
"""

import json

import pytest

from unistream.client import StreamingClient
from unistream.core.catalog import default_provider_config
from unistream.core.config import EnvCredentialProvider
from unistream.core.errors import ConfigurationError
from unistream.core.models import Credentials, ModelSettings, ProviderId


OPENAI_BODY = (
    b'data: {"choices": [{"delta": {"content": "Hi"}}]}\n\n'
    b"data: [DONE]\n\n"
)


class StaticCredentials:
    """In-memory credential provider."""

    def __init__(self, api_key="sk-static", model=None):
        self.api_key = api_key
        self.model = model

    def get_credentials(self, provider_id):
        return Credentials(api_key=self.api_key, model=self.model)

    def get_provider_config(self, provider_id):
        return default_provider_config(provider_id)


class BrokenCredentials(StaticCredentials):
    """Credential store that cannot be read."""

    def get_credentials(self, provider_id):
        raise RuntimeError("credential store unavailable")


# ============================================================
# Streaming Tests
# ============================================================

class TestStreamCompletion:
    """Test StreamingClient.stream_completion."""

    @pytest.mark.asyncio
    async def test_streams_with_default_model(self, mock_provider, sink, metrics):
        provider = mock_provider([OPENAI_BODY])
        client = StreamingClient(StaticCredentials(), http_client=provider.client, metrics=metrics)

        result = await client.stream_completion("chatgpt", "Say hi", sink)

        assert result.ok
        assert result.model == "gpt-4o-mini"
        assert sink.text == "Hi"
        body = json.loads(provider.last_request.content)
        assert body["model"] == "gpt-4o-mini"
        assert body["messages"][-1] == {"role": "user", "content": "Say hi"}
        assert provider.last_request.headers["authorization"] == "Bearer sk-static"

    @pytest.mark.asyncio
    async def test_model_priority(self, mock_provider, make_sink, metrics):
        provider = mock_provider([OPENAI_BODY])
        client = StreamingClient(
            StaticCredentials(model="gpt-4o"), http_client=provider.client, metrics=metrics
        )

        await client.stream_completion("openai", "x", make_sink())
        assert json.loads(provider.last_request.content)["model"] == "gpt-4o"

        provider = mock_provider([OPENAI_BODY])
        client = StreamingClient(
            StaticCredentials(model="gpt-4o"), http_client=provider.client, metrics=metrics
        )
        await client.stream_completion("openai", "x", make_sink(), model="o3-mini")
        assert json.loads(provider.last_request.content)["model"] == "o3-mini"

    @pytest.mark.asyncio
    async def test_structured_prompt_and_settings(self, mock_provider, sink, metrics):
        provider = mock_provider([OPENAI_BODY])
        client = StreamingClient(StaticCredentials(), http_client=provider.client, metrics=metrics)

        await client.stream_completion(
            ProviderId.OPENAI,
            "Summarize",
            sink,
            formatted_content="Page text",
            conversation_history=[{"role": "assistant", "content": "earlier"}],
            settings=ModelSettings(max_tokens=50, system_prompt="be brief"),
        )

        body = json.loads(provider.last_request.content)
        assert body["max_tokens"] == 50
        assert body["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "assistant", "content": "earlier"},
            {"role": "user", "content": "# INSTRUCTION\nSummarize\n# EXTRACTED CONTENT\nPage text"},
        ]

    @pytest.mark.asyncio
    async def test_env_endpoint_override(self, mock_provider, sink, metrics, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        monkeypatch.setenv("UNISTREAM_ANTHROPIC_ENDPOINT", "http://localhost:5555/v1/messages")
        monkeypatch.delenv("UNISTREAM_ANTHROPIC_MODEL", raising=False)
        provider = mock_provider([
            b'data: {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "ok"}}\n'
        ])
        client = StreamingClient(EnvCredentialProvider(), http_client=provider.client, metrics=metrics)

        result = await client.stream_completion("claude", "x", sink)

        assert result.content == "ok"
        assert str(provider.last_request.url) == "http://localhost:5555/v1/messages"
        assert provider.last_request.headers["x-api-key"] == "sk-ant"

    @pytest.mark.asyncio
    async def test_unknown_provider_reported_to_sink(self, mock_provider, sink, metrics):
        provider = mock_provider([OPENAI_BODY])
        client = StreamingClient(StaticCredentials(), http_client=provider.client, metrics=metrics)

        with pytest.raises(ConfigurationError):
            await client.stream_completion("nonexistent", "x", sink)

        assert sink.terminal.error.startswith("API Request Setup Error: ")
        assert provider.called is False

    @pytest.mark.asyncio
    async def test_missing_key_reported_to_sink(self, mock_provider, sink, metrics, monkeypatch):
        monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
        provider = mock_provider([OPENAI_BODY])
        client = StreamingClient(EnvCredentialProvider(), http_client=provider.client, metrics=metrics)

        with pytest.raises(ConfigurationError):
            await client.stream_completion("mistral", "x", sink)

        assert sink.terminal.error.startswith("API Request Setup Error: No API key configured")
        assert provider.called is False

    @pytest.mark.asyncio
    async def test_unknown_model_reported_to_sink(self, mock_provider, sink, metrics):
        provider = mock_provider([OPENAI_BODY])
        client = StreamingClient(StaticCredentials(), http_client=provider.client, metrics=metrics)

        with pytest.raises(ConfigurationError):
            await client.stream_completion("openai", "x", sink, model="gpt-99")

        assert sink.terminal.model == "gpt-99"
        assert "gpt-99" in sink.terminal.error

    @pytest.mark.asyncio
    async def test_credential_store_failure_reported_to_sink(self, mock_provider, sink, metrics):
        provider = mock_provider([OPENAI_BODY])
        client = StreamingClient(BrokenCredentials(), http_client=provider.client, metrics=metrics)

        with pytest.raises(ConfigurationError) as exc_info:
            await client.stream_completion("openai", "x", sink)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert sink.terminal.error == "API Request Setup Error: credential store unavailable"
        assert provider.called is False

    @pytest.mark.asyncio
    async def test_malformed_history_is_skipped(self, mock_provider, sink, metrics):
        provider = mock_provider([OPENAI_BODY])
        client = StreamingClient(StaticCredentials(), http_client=provider.client, metrics=metrics)

        result = await client.stream_completion(
            "openai", "x", sink, conversation_history=[{"content": "no role"}]
        )

        assert result.ok
        assert json.loads(provider.last_request.content)["messages"] == [
            {"role": "user", "content": "x"},
        ]


# ============================================================
# Credential Validation Tests
# ============================================================

class TestValidateCredentials:
    """Test StreamingClient.validate_credentials."""

    @pytest.mark.asyncio
    async def test_uses_configured_key_and_default_model(self, mock_provider, metrics):
        provider = mock_provider(body=b"{}")
        client = StreamingClient(StaticCredentials(), http_client=provider.client, metrics=metrics)

        assert await client.validate_credentials("deepseek") is True

        body = json.loads(provider.last_request.content)
        assert body["model"] == "deepseek-chat"
        assert provider.last_request.headers["authorization"] == "Bearer sk-static"

    @pytest.mark.asyncio
    async def test_explicit_key(self, mock_provider, metrics):
        provider = mock_provider(status_code=401, body=b'{"error": {"message": "bad key"}}')
        client = StreamingClient(StaticCredentials(), http_client=provider.client, metrics=metrics)

        assert await client.validate_credentials("openai", api_key="sk-other") is False
        assert provider.last_request.headers["authorization"] == "Bearer sk-other"

    @pytest.mark.asyncio
    async def test_unknown_provider_is_invalid(self, mock_provider, metrics):
        provider = mock_provider(body=b"{}")
        client = StreamingClient(StaticCredentials(), http_client=provider.client, metrics=metrics)

        assert await client.validate_credentials("nonexistent") is False
        assert provider.called is False

    @pytest.mark.asyncio
    async def test_credential_store_failure_is_invalid(self, mock_provider, metrics):
        provider = mock_provider(body=b"{}")
        client = StreamingClient(BrokenCredentials(), http_client=provider.client, metrics=metrics)

        assert await client.validate_credentials("openai") is False
        assert provider.called is False


class TestAvailableModels:
    """Test StreamingClient.available_models."""

    def test_lists_catalog_models(self):
        client = StreamingClient(StaticCredentials())

        ids = [model.id for model in client.available_models("claude")]

        assert "claude-3-5-sonnet-latest" in ids
        assert "claude-3-7-sonnet-latest" in ids
