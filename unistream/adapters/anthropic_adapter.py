"""
unistream - Anthropic Adapter

Messages API with typed SSE events:

    event: content_block_delta
    data: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hi"}}

    event: message_stop
    data: {"type":"message_stop"}

Extended thinking arrives as thinking_delta blocks and is surfaced as
Thinking events; signatures and redacted blocks carry nothing readable.
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
    logger,
    require_inputs,
    token_field,
)
from ..core.catalog import DEFAULT_ENDPOINTS
from ..core.models import ProviderId, ProviderRequest, RequestSpec, ScanMode, StreamEvent

PROVIDER = ProviderId.ANTHROPIC
DEFAULT_ENDPOINT = DEFAULT_ENDPOINTS[PROVIDER]
API_VERSION = "2023-06-01"
MIN_THINKING_BUDGET = 1024


# ============================================================
# Request Building
# ============================================================

def _headers(api_key: str) -> Dict[str, str]:
    return {
        "x-api-key": api_key,
        "anthropic-version": API_VERSION,
    }


def _text_message(role: str, text: str) -> Dict[str, Any]:
    return {"role": role, "content": [{"type": "text", "text": text}]}


def thinking_config(spec: RequestSpec) -> Optional[Dict[str, Any]]:
    """
    Thinking block for the request, or None when the budget is unusable.

    The budget must be at least MIN_THINKING_BUDGET and strictly below
    max_tokens.
    """
    budget = spec.thinking_budget
    if budget is None:
        return None
    if budget < MIN_THINKING_BUDGET or budget >= spec.max_tokens:
        logger.debug(
            "Thinking disabled for request",
            provider=PROVIDER.value,
            thinking_budget_tokens=budget,
            max_tokens=spec.max_tokens,
        )
        return None
    return {"type": "enabled", "budget_tokens": budget}


def build_request(
    spec: RequestSpec,
    api_key: str,
    endpoint: Optional[str] = None,
) -> ProviderRequest:
    require_inputs(spec, api_key, PROVIDER)

    messages: List[Dict[str, Any]] = [
        _text_message(role.value, content) for role, content in history_pairs(spec)
    ]

    payload: Dict[str, Any] = {
        "model": spec.model,
        token_field(spec, "max_tokens"): spec.max_tokens,
        "messages": messages,
        "stream": True,
    }

    system_prompt = effective_system_prompt(spec, PROVIDER)
    if system_prompt:
        payload["system"] = system_prompt
    if spec.temperature is not None:
        payload["temperature"] = spec.temperature
    if spec.top_p is not None:
        payload["top_p"] = spec.top_p

    thinking = thinking_config(spec)
    if thinking:
        payload["thinking"] = thinking

    return json_request(endpoint or DEFAULT_ENDPOINT, payload, _headers(api_key))


def build_validation_request(
    api_key: str,
    model: str,
    endpoint: Optional[str] = None,
) -> ProviderRequest:
    payload = {
        "model": model,
        "max_tokens": 1,
        "messages": [_text_message("user", VALIDATION_PROMPT)],
    }
    return json_request(endpoint or DEFAULT_ENDPOINT, payload, _headers(api_key))


# ============================================================
# Frame Classification
# ============================================================

def classify_frame(frame: str) -> StreamEvent:
    """Classify one line of an Anthropic event stream."""
    if frame.startswith("event:"):
        event_name = frame[len("event:"):].strip()
        if event_name == "message_stop":
            return StreamEvent.done()
        return StreamEvent.ignore()

    if not frame.startswith("data:"):
        return StreamEvent.ignore()

    payload = frame[len("data:"):].strip()
    if not payload:
        return StreamEvent.ignore()

    try:
        data = json.loads(payload)
    except ValueError as e:
        return StreamEvent.decode_failure(f"Error parsing stream data: {e}")

    if not isinstance(data, dict):
        return StreamEvent.ignore()

    event_type = data.get("type")

    if event_type == "error":
        error = data.get("error") or {}
        return StreamEvent.error(
            f"Stream error: {dig(error, 'type') or 'unknown'} - "
            f"{dig(error, 'message') or 'Unknown error'}"
        )

    if event_type == "content_block_delta":
        delta = data.get("delta") or {}
        delta_type = dig(delta, "type")
        if delta_type == "text_delta":
            text = dig(delta, "text")
            return StreamEvent.content(text) if text else StreamEvent.ignore()
        if delta_type == "thinking_delta":
            thinking = dig(delta, "thinking")
            return StreamEvent.thinking(thinking) if thinking else StreamEvent.ignore()
        # signature_delta, input_json_delta
        return StreamEvent.ignore()

    if event_type == "message_stop":
        return StreamEvent.done()

    # message_start, content_block_start (incl. redacted_thinking), ping, ...
    return StreamEvent.ignore()


def create_anthropic_adapter() -> ProviderAdapter:
    return ProviderAdapter(
        provider=PROVIDER,
        default_endpoint=DEFAULT_ENDPOINT,
        scan_mode=ScanMode.LINES,
        build_request=build_request,
        build_validation_request=build_validation_request,
        classify_frame=classify_frame,
    )
