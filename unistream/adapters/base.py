"""
unistream - Provider Adapter Base

A provider adapter is a plain record of functions: how to build the
streaming request, how to build the credential probe, how to frame the
response bytes and how to classify each frame. Providers are selected
through a lookup table, not a class hierarchy.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.errors import ConfigurationError
from ..core.models import (
    ProviderId,
    ProviderRequest,
    RequestSpec,
    Role,
    ScanMode,
    StreamEvent,
)
from ..observability.logging import get_logger
from ..streaming.scanner import FrameScanner, create_scanner

logger = get_logger("unistream.adapters")

VALIDATION_PROMPT = "API validation check"

BuildRequest = Callable[[RequestSpec, str, Optional[str]], ProviderRequest]
BuildValidationRequest = Callable[[str, str, Optional[str]], ProviderRequest]
ClassifyFrame = Callable[[str], StreamEvent]


@dataclass(frozen=True)
class ProviderAdapter:
    """Everything the transport needs to talk to one provider."""
    provider: ProviderId
    default_endpoint: str
    scan_mode: ScanMode
    build_request: BuildRequest
    build_validation_request: BuildValidationRequest
    classify_frame: ClassifyFrame
    unwrap_array: bool = False

    @property
    def name(self) -> str:
        return self.provider.value

    def create_scanner(self) -> FrameScanner:
        """Fresh scanner for one session."""
        return create_scanner(self.scan_mode, unwrap_array=self.unwrap_array)


# ============================================================
# Request Helpers
# ============================================================

def require_inputs(spec: RequestSpec, api_key: str, provider: ProviderId):
    """Reject requests that cannot be sent."""
    if not spec.model:
        raise ConfigurationError("No model specified", provider=provider.value, param="model")
    if not api_key:
        raise ConfigurationError("No API key provided", provider=provider.value, param="api_key")


def encode_body(payload: Mapping[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


def json_request(
    url: str,
    payload: Mapping[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> ProviderRequest:
    """POST request with a JSON body."""
    all_headers = {"Content-Type": "application/json"}
    all_headers.update(headers or {})
    return ProviderRequest(url=url, method="POST", headers=all_headers, body=encode_body(payload))


def effective_system_prompt(spec: RequestSpec, provider: ProviderId) -> Optional[str]:
    """System prompt to send, honoring the model capability flag."""
    if not spec.system_prompt:
        return None
    if not spec.supports_system_prompt:
        logger.warning(
            "Model does not support system prompts; system prompt ignored",
            provider=provider.value,
            model=spec.model,
        )
        return None
    return spec.system_prompt


def history_pairs(spec: RequestSpec) -> List[Tuple[Role, str]]:
    """History turns followed by the current prompt as a user turn."""
    turns = [(turn.role, turn.content) for turn in spec.conversation_history]
    turns.append((Role.USER, spec.prompt))
    return turns


def merge_consecutive_turns(turns: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """
    Collapse runs of same-role turns into one turn joined by a blank line.

    [("user", "a"), ("user", "b"), ("assistant", "c")]
        -> [("user", "a\\n\\nb"), ("assistant", "c")]
    """
    merged: List[Tuple[str, str]] = []
    for role, content in turns:
        if merged and merged[-1][0] == role:
            previous_role, previous = merged[-1]
            merged[-1] = (previous_role, f"{previous}\n\n{content}")
        else:
            merged.append((role, content))
    return merged


def token_field(spec: RequestSpec, default: str) -> str:
    return spec.token_parameter_name or default


# ============================================================
# Frame Helpers
# ============================================================

def first_item(value: Any) -> Any:
    """Arrays stand for their first element; None when empty."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def dig(data: Any, *path: Any) -> Any:
    """Safe nested lookup over dicts and lists."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
        elif not isinstance(current, dict):
            return None
        current = current[key] if isinstance(key, int) else current.get(key)
        if current is None:
            return None
    return current
