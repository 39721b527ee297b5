"""
unistream - OpenAI-style Adapter

Request building and frame classification for the OpenAI chat completions
protocol. Mistral and Grok speak the same protocol at different endpoints.

Wire format:
    data: {"choices":[{"delta":{"content":"Hel"}}]}
    data: {"choices":[{"delta":{},"finish_reason":"stop"}]}
    data: [DONE]
"""

import json
from typing import Any, Dict, List, Optional

from .base import (
    ProviderAdapter,
    VALIDATION_PROMPT,
    dig,
    effective_system_prompt,
    history_pairs,
    json_request,
    require_inputs,
    token_field,
)
from ..core.catalog import DEFAULT_ENDPOINTS
from ..core.models import (
    ParameterStyle,
    ProviderId,
    ProviderRequest,
    RequestSpec,
    ScanMode,
    StreamEvent,
)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


# ============================================================
# Request Building
# ============================================================

def build_messages(spec: RequestSpec, provider: ProviderId) -> List[Dict[str, str]]:
    """System prompt first, then history, then the current prompt."""
    messages: List[Dict[str, str]] = []
    system_prompt = effective_system_prompt(spec, provider)
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    for role, content in history_pairs(spec):
        messages.append({"role": role.value, "content": content})
    return messages


def build_payload(
    spec: RequestSpec,
    messages: List[Dict[str, str]],
    default_token_field: str = "max_tokens",
) -> Dict[str, Any]:
    """
    Chat completions body.

    Reasoning model families take max_completion_tokens and reject
    sampling parameters; they accept reasoning_effort instead.
    """
    payload: Dict[str, Any] = {
        "model": spec.model,
        "messages": messages,
        "stream": True,
    }

    if spec.parameter_style == ParameterStyle.REASONING:
        payload[token_field(spec, "max_completion_tokens")] = spec.max_tokens
        if spec.reasoning_effort is not None:
            payload["reasoning_effort"] = spec.reasoning_effort.value
        return payload

    payload[token_field(spec, default_token_field)] = spec.max_tokens
    if spec.temperature is not None:
        payload["temperature"] = spec.temperature
    if spec.top_p is not None:
        payload["top_p"] = spec.top_p
    return payload


def bearer_headers(api_key: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


def request_builder(provider: ProviderId, default_endpoint: str):
    """Build function for an OpenAI-compatible endpoint."""

    def build_request(
        spec: RequestSpec,
        api_key: str,
        endpoint: Optional[str] = None,
    ) -> ProviderRequest:
        require_inputs(spec, api_key, provider)
        payload = build_payload(spec, build_messages(spec, provider))
        return json_request(endpoint or default_endpoint, payload, bearer_headers(api_key))

    return build_request


def validation_builder(default_endpoint: str, token_parameter: str = "max_tokens"):
    """Non-streaming one-token request used to probe a credential."""

    def build_validation_request(
        api_key: str,
        model: str,
        endpoint: Optional[str] = None,
    ) -> ProviderRequest:
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": VALIDATION_PROMPT}],
            token_parameter: 1,
        }
        return json_request(endpoint or default_endpoint, payload, bearer_headers(api_key))

    return build_validation_request


# ============================================================
# Frame Classification
# ============================================================

def classify_frame(frame: str) -> StreamEvent:
    """Classify one SSE line of an OpenAI-style stream."""
    if not frame.startswith(DATA_PREFIX):
        # Comments, keep-alives, event: lines
        return StreamEvent.ignore()

    payload = frame[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return StreamEvent.done()
    if not payload:
        return StreamEvent.ignore()

    try:
        data = json.loads(payload)
    except ValueError as e:
        return StreamEvent.decode_failure(f"Error parsing stream data: {e}")

    error = dig(data, "error")
    if error:
        message = dig(error, "message") if isinstance(error, dict) else str(error)
        return StreamEvent.error(f"Stream error: {message or 'Unknown error'}")

    content = dig(data, "choices", 0, "delta", "content")
    if isinstance(content, str) and content:
        return StreamEvent.content(content)
    return StreamEvent.ignore()


def create_openai_style_adapter(provider: ProviderId) -> ProviderAdapter:
    """Adapter for OpenAI, Mistral or Grok."""
    endpoint = DEFAULT_ENDPOINTS[provider]
    return ProviderAdapter(
        provider=provider,
        default_endpoint=endpoint,
        scan_mode=ScanMode.LINES,
        build_request=request_builder(provider, endpoint),
        build_validation_request=validation_builder(endpoint),
        classify_frame=classify_frame,
    )
