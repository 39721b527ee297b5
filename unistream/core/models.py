"""
unistream - Core Data Models

Canonical, provider-agnostic data models shared by the request builders,
the frame scanners, the stream transport and the result sink.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


# ============================================================
# Enums
# ============================================================

class ProviderId(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"
    MISTRAL = "mistral"
    GROK = "grok"

    @classmethod
    def parse(cls, value: "ProviderId | str") -> "ProviderId":
        """Resolve a provider id or one of its aliases."""
        if isinstance(value, ProviderId):
            return value
        key = str(value).strip().lower()
        key = PROVIDER_ALIASES.get(key, key)
        return cls(key)


PROVIDER_ALIASES = {
    "chatgpt": "openai",
    "claude": "anthropic",
    "google": "gemini",
    "xai": "grok",
}


class Role(str, Enum):
    """Conversation turn roles."""
    USER = "user"
    ASSISTANT = "assistant"


class ReasoningEffort(str, Enum):
    """Reasoning effort hint for reasoning model families."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ParameterStyle(str, Enum):
    """Body shape selector for the token limit and sampling fields."""
    STANDARD = "standard"
    REASONING = "reasoning"


class EventType(str, Enum):
    """Canonical classification of one decoded frame."""
    CONTENT = "content"
    THINKING = "thinking"
    ERROR = "error"
    DONE = "done"
    IGNORE = "ignore"


class ScanMode(str, Enum):
    """Frame discipline used by a provider's response stream."""
    LINES = "lines"
    JSON = "json"


# ============================================================
# Request Side
# ============================================================

@dataclass(frozen=True)
class HistoryTurn:
    """One prior turn of the conversation."""
    role: Role
    content: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoryTurn":
        return cls(role=Role(data["role"]), content=str(data.get("content", "")))


@dataclass(frozen=True)
class RequestSpec:
    """
    Canonical description of one completion request.

    Immutable once handed to a request builder.
    """
    prompt: str
    model: str
    max_tokens: int
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    system_prompt: Optional[str] = None
    conversation_history: Tuple[HistoryTurn, ...] = ()
    thinking_budget: Optional[int] = None
    reasoning_effort: Optional[ReasoningEffort] = None
    token_parameter_name: Optional[str] = None
    parameter_style: ParameterStyle = ParameterStyle.STANDARD
    supports_system_prompt: bool = True

    def __post_init__(self):
        # Accept lists of turns or dicts for convenience, store as tuple
        turns = tuple(
            turn if isinstance(turn, HistoryTurn) else HistoryTurn.from_dict(turn)
            for turn in self.conversation_history
        )
        object.__setattr__(self, "conversation_history", turns)


@dataclass(frozen=True)
class ProviderRequest:
    """Transport-ready HTTP request description."""
    url: str
    method: str
    headers: Mapping[str, str]
    body: bytes

    def json(self) -> Dict[str, Any]:
        """Decode the body back into a dict."""
        return json.loads(self.body.decode("utf-8"))


# ============================================================
# Stream Events
# ============================================================

@dataclass(frozen=True)
class StreamEvent:
    """One classified frame."""
    type: EventType
    text: str = ""
    message: str = ""
    malformed: bool = False

    @classmethod
    def content(cls, text: str) -> "StreamEvent":
        return cls(EventType.CONTENT, text=text)

    @classmethod
    def thinking(cls, text: str) -> "StreamEvent":
        return cls(EventType.THINKING, text=text)

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(EventType.ERROR, message=message)

    @classmethod
    def decode_failure(cls, message: str) -> "StreamEvent":
        """Error event for a frame that could not be decoded."""
        return cls(EventType.ERROR, message=message, malformed=True)

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(EventType.DONE)

    @classmethod
    def ignore(cls) -> "StreamEvent":
        return cls(EventType.IGNORE)

    @property
    def carries_text(self) -> bool:
        return self.type in (EventType.CONTENT, EventType.THINKING)


@dataclass(frozen=True)
class SinkEvent:
    """Event delivered to the caller's sink."""
    chunk: str
    done: bool
    model: str
    full_content: Optional[str] = None
    error: Optional[str] = None
    is_thinking: bool = False
    request_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "chunk": self.chunk,
            "done": self.done,
            "model": self.model,
        }
        if self.full_content is not None:
            result["fullContent"] = self.full_content
        if self.error is not None:
            result["error"] = self.error
        if self.is_thinking:
            result["isThinking"] = True
        return result


# ============================================================
# Provider Configuration
# ============================================================

@dataclass
class ModelInfo:
    """Information about a model offered by a provider."""
    id: str
    context_window: int
    max_tokens: int
    supports_temperature: bool = True
    supports_top_p: bool = False
    supports_system_prompt: bool = True
    parameter_style: ParameterStyle = ParameterStyle.STANDARD
    token_parameter: Optional[str] = None
    thinking_budget: Optional[int] = None


@dataclass
class ProviderConfig:
    """Per-provider defaults supplied by the credential+config provider."""
    provider: ProviderId
    default_model: str
    models: List[ModelInfo] = field(default_factory=list)
    endpoint: Optional[str] = None
    has_system_prompt: bool = True
    temperature: float = 0.7
    top_p: float = 1.0

    def get_model(self, model_id: str) -> Optional[ModelInfo]:
        for model in self.models:
            if model.id == model_id:
                return model
        return None


@dataclass(frozen=True)
class Credentials:
    """API credentials for one provider."""
    api_key: str
    model: Optional[str] = None

    def __repr__(self) -> str:
        prefix = self.api_key[:4] + "..." if self.api_key else ""
        return f"Credentials(api_key={prefix!r}, model={self.model!r})"


@dataclass
class ModelSettings:
    """User-level overrides applied during parameter resolution."""
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    include_temperature: bool = True
    include_top_p: bool = False
    system_prompt: Optional[str] = None
    thinking_budget: Optional[int] = None
    reasoning_effort: Optional[ReasoningEffort] = None
