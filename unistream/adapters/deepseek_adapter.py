"""
unistream - DeepSeek Adapter

OpenAI-compatible protocol, but the API rejects two consecutive turns with
the same role. Consecutive turns are merged (joined by a blank line), both
inside the history and when the current prompt follows a user turn.
"""

from typing import Dict, List, Optional

from . import openai_adapter
from .base import (
    ProviderAdapter,
    effective_system_prompt,
    history_pairs,
    json_request,
    merge_consecutive_turns,
    require_inputs,
)
from ..core.catalog import DEFAULT_ENDPOINTS
from ..core.models import ProviderId, ProviderRequest, RequestSpec, ScanMode

PROVIDER = ProviderId.DEEPSEEK
DEFAULT_ENDPOINT = DEFAULT_ENDPOINTS[PROVIDER]


def build_messages(spec: RequestSpec) -> List[Dict[str, str]]:
    messages: List[Dict[str, str]] = []
    system_prompt = effective_system_prompt(spec, PROVIDER)
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})

    turns = [(role.value, content) for role, content in history_pairs(spec)]
    for role, content in merge_consecutive_turns(turns):
        messages.append({"role": role, "content": content})
    return messages


def build_request(
    spec: RequestSpec,
    api_key: str,
    endpoint: Optional[str] = None,
) -> ProviderRequest:
    require_inputs(spec, api_key, PROVIDER)
    payload = openai_adapter.build_payload(spec, build_messages(spec))
    return json_request(
        endpoint or DEFAULT_ENDPOINT,
        payload,
        openai_adapter.bearer_headers(api_key),
    )


def create_deepseek_adapter() -> ProviderAdapter:
    return ProviderAdapter(
        provider=PROVIDER,
        default_endpoint=DEFAULT_ENDPOINT,
        scan_mode=ScanMode.LINES,
        build_request=build_request,
        build_validation_request=openai_adapter.validation_builder(DEFAULT_ENDPOINT),
        classify_frame=openai_adapter.classify_frame,
    )
