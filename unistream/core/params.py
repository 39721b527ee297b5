"""
unistream - Parameter Resolution

Turns provider configuration, user settings and a prompt into a RequestSpec.
"""

from typing import Iterable, Optional, Sequence, Union

from .errors import ConfigurationError
from .models import HistoryTurn, ModelSettings, ProviderConfig, RequestSpec, Role
from ..observability.logging import get_logger

logger = get_logger("unistream.params")

_HISTORY_ROLES = frozenset(role.value for role in Role)


def compose_prompt(prompt: str, formatted_content: Optional[str] = None) -> str:
    """
    Combine an instruction prompt with extracted content.

    Without content the prompt is returned unchanged.
    """
    if not formatted_content or not formatted_content.strip():
        return prompt
    return f"# INSTRUCTION\n{prompt}\n# EXTRACTED CONTENT\n{formatted_content}"


def resolve_request_spec(
    config: ProviderConfig,
    model_id: str,
    prompt: str,
    settings: Optional[ModelSettings] = None,
    conversation_history: Sequence[Union[HistoryTurn, dict]] = (),
) -> RequestSpec:
    """
    Resolve the effective request parameters for one call.

    Rules:
    - max tokens: user override, else the model's default
    - temperature: only if the model supports it and the user includes it
    - top_p: only if the model supports it and the user includes it
    - system prompt: only if both platform and model allow it
    """
    settings = settings or ModelSettings()
    provider = config.provider.value

    if not model_id:
        raise ConfigurationError("No model specified", provider=provider, param="model")

    model = config.get_model(model_id)
    if model is None:
        raise ConfigurationError(
            f"Model '{model_id}' is not configured for {provider}",
            provider=provider,
            param="model",
        )

    max_tokens = settings.max_tokens or model.max_tokens
    if max_tokens <= 0:
        raise ConfigurationError("max_tokens must be positive", provider=provider, param="max_tokens")

    temperature = None
    if model.supports_temperature and settings.include_temperature:
        temperature = settings.temperature if settings.temperature is not None else config.temperature

    top_p = None
    if model.supports_top_p and settings.include_top_p:
        top_p = settings.top_p if settings.top_p is not None else config.top_p

    system_prompt = settings.system_prompt or None
    if system_prompt and not config.has_system_prompt:
        logger.warning(
            "System prompt dropped: platform has no system prompt support",
            provider=provider,
        )
        system_prompt = None

    thinking_budget = settings.thinking_budget
    if thinking_budget is None:
        thinking_budget = model.thinking_budget

    return RequestSpec(
        prompt=prompt,
        model=model.id,
        max_tokens=max_tokens,
        temperature=temperature,
        top_p=top_p,
        system_prompt=system_prompt,
        conversation_history=tuple(_coerce_history(conversation_history)),
        thinking_budget=thinking_budget,
        reasoning_effort=settings.reasoning_effort,
        token_parameter_name=model.token_parameter,
        parameter_style=model.parameter_style,
        supports_system_prompt=model.supports_system_prompt,
    )


def _coerce_history(turns: Iterable[Union[HistoryTurn, dict]]) -> Iterable[HistoryTurn]:
    """Accept HistoryTurn or role/content dicts; turns with other roles are skipped."""
    for index, turn in enumerate(turns):
        if isinstance(turn, HistoryTurn):
            yield turn
            continue
        role = turn.get("role")
        if role not in _HISTORY_ROLES:
            logger.warning("Skipping history turn with unsupported role", role=role, turn_index=index)
            continue
        yield HistoryTurn.from_dict(turn)
