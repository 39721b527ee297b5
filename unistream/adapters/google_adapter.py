"""
unistream - Gemini Adapter

streamGenerateContent without alt=sse returns one JSON array that grows as
the response is generated:

    [{"candidates": [{"content": {"parts": [{"text": "Hel"}], "role": "model"}}]}
    ,
    {"candidates": [{"content": {"parts": [{"text": "lo"}]}, "finishReason": "STOP"}]}
    ]

There is no per-frame delimiter, so the balanced-JSON scanner extracts each
element as it completes. Models with "-exp-" in their id are served by the
v1beta API surface.
"""

import json
from typing import Any, Dict, List, Optional

from .base import (
    ProviderAdapter,
    VALIDATION_PROMPT,
    dig,
    effective_system_prompt,
    first_item,
    history_pairs,
    json_request,
    logger,
    merge_consecutive_turns,
    require_inputs,
    token_field,
)
from ..core.catalog import DEFAULT_ENDPOINTS
from ..core.models import ProviderId, ProviderRequest, RequestSpec, Role, ScanMode, StreamEvent

PROVIDER = ProviderId.GEMINI
DEFAULT_BASE_URL = DEFAULT_ENDPOINTS[PROVIDER]
STREAM_METHOD = ":streamGenerateContent"
GENERATE_METHOD = ":generateContent"


# ============================================================
# Request Building
# ============================================================

PREVIEW_MARKERS = ("-exp-", "-preview-")


def api_version_for(model: str) -> str:
    """Experimental and preview models live on v1beta."""
    return "v1beta" if any(marker in model for marker in PREVIEW_MARKERS) else "v1"


def model_url(model: str, method: str, api_key: str, base_url: Optional[str] = None) -> str:
    base = (base_url or DEFAULT_BASE_URL).rstrip("/")
    return f"{base}/{api_version_for(model)}/models/{model}{method}?key={api_key}"


def _gemini_role(role: Role) -> str:
    return "model" if role == Role.ASSISTANT else "user"


def build_contents(spec: RequestSpec) -> List[Dict[str, Any]]:
    """
    Turn list with strictly alternating roles.

    Consecutive same-role turns are merged so the API never sees two user
    (or two model) turns in a row.
    """
    turns = [(_gemini_role(role), content) for role, content in history_pairs(spec)]
    merged = merge_consecutive_turns(turns)
    if len(merged) != len(turns):
        logger.warning(
            "Merged consecutive same-role turns to keep roles alternating",
            provider=PROVIDER.value,
            turns_in=len(turns),
            turns_out=len(merged),
        )
    return [{"role": role, "parts": [{"text": text}]} for role, text in merged]


def build_request(
    spec: RequestSpec,
    api_key: str,
    endpoint: Optional[str] = None,
) -> ProviderRequest:
    require_inputs(spec, api_key, PROVIDER)

    generation_config: Dict[str, Any] = {
        token_field(spec, "maxOutputTokens"): spec.max_tokens,
    }
    if spec.temperature is not None:
        generation_config["temperature"] = spec.temperature
    if spec.top_p is not None:
        generation_config["topP"] = spec.top_p

    payload: Dict[str, Any] = {
        "contents": build_contents(spec),
        "generationConfig": generation_config,
    }

    system_prompt = effective_system_prompt(spec, PROVIDER)
    if system_prompt:
        payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

    if spec.thinking_budget:
        payload["thinkingMode"] = {"type": "enabled", "budget": {"tokens": spec.thinking_budget}}

    return json_request(model_url(spec.model, STREAM_METHOD, api_key, endpoint), payload)


def build_validation_request(
    api_key: str,
    model: str,
    endpoint: Optional[str] = None,
) -> ProviderRequest:
    payload = {
        "contents": [{"role": "user", "parts": [{"text": VALIDATION_PROMPT}]}],
        "generationConfig": {"maxOutputTokens": 1},
    }
    return json_request(model_url(model, GENERATE_METHOD, api_key, endpoint), payload)


# ============================================================
# Frame Classification
# ============================================================

def classify_frame(frame: str) -> StreamEvent:
    """Classify one complete JSON value from the stream array."""
    try:
        data = first_item(json.loads(frame))
    except ValueError as e:
        return StreamEvent.decode_failure(f"Error parsing stream data: {e}")

    if not isinstance(data, dict):
        return StreamEvent.ignore()

    error = data.get("error")
    if error:
        message = dig(error, "message") if isinstance(error, dict) else str(error)
        return StreamEvent.error(f"API Error in stream: {message or 'Unknown error'}")

    text = dig(data, "candidates", 0, "content", "parts", 0, "text")

    finish_reason = dig(data, "candidates", 0, "finishReason")
    if finish_reason:
        logger.debug("Gemini finish reason", provider=PROVIDER.value, finish_reason=finish_reason)

    if isinstance(text, str) and text:
        return StreamEvent.content(text)
    return StreamEvent.ignore()


def create_gemini_adapter() -> ProviderAdapter:
    return ProviderAdapter(
        provider=PROVIDER,
        default_endpoint=DEFAULT_BASE_URL,
        scan_mode=ScanMode.JSON,
        build_request=build_request,
        build_validation_request=build_validation_request,
        classify_frame=classify_frame,
        unwrap_array=True,
    )
