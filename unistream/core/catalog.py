"""
unistream - Built-in Provider Catalog

Default endpoints and model entries for each supported provider.
Used by EnvCredentialProvider when no external configuration is supplied.
"""

from typing import Dict

from .models import ModelInfo, ParameterStyle, ProviderConfig, ProviderId


DEFAULT_ENDPOINTS: Dict[ProviderId, str] = {
    ProviderId.OPENAI: "https://api.openai.com/v1/chat/completions",
    ProviderId.ANTHROPIC: "https://api.anthropic.com/v1/messages",
    ProviderId.GEMINI: "https://generativelanguage.googleapis.com",
    ProviderId.DEEPSEEK: "https://api.deepseek.com/v1/chat/completions",
    ProviderId.MISTRAL: "https://api.mistral.ai/v1/chat/completions",
    ProviderId.GROK: "https://api.x.ai/v1/chat/completions",
}


def _openai_config() -> ProviderConfig:
    return ProviderConfig(
        provider=ProviderId.OPENAI,
        default_model="gpt-4o-mini",
        models=[
            ModelInfo(
                id="gpt-4o",
                context_window=128000,
                max_tokens=16384,
                supports_top_p=True,
            ),
            ModelInfo(
                id="gpt-4o-mini",
                context_window=128000,
                max_tokens=16384,
                supports_top_p=True,
            ),
            ModelInfo(
                id="o3-mini",
                context_window=200000,
                max_tokens=100000,
                supports_temperature=False,
                parameter_style=ParameterStyle.REASONING,
                token_parameter="max_completion_tokens",
            ),
        ],
    )


def _anthropic_config() -> ProviderConfig:
    return ProviderConfig(
        provider=ProviderId.ANTHROPIC,
        default_model="claude-3-5-sonnet-latest",
        models=[
            ModelInfo(
                id="claude-3-7-sonnet-latest",
                context_window=200000,
                max_tokens=64000,
                supports_top_p=True,
                thinking_budget=16000,
            ),
            ModelInfo(
                id="claude-3-5-sonnet-latest",
                context_window=200000,
                max_tokens=8192,
                supports_top_p=True,
            ),
            ModelInfo(
                id="claude-3-5-haiku-latest",
                context_window=200000,
                max_tokens=8192,
                supports_top_p=True,
            ),
        ],
    )


def _gemini_config() -> ProviderConfig:
    return ProviderConfig(
        provider=ProviderId.GEMINI,
        default_model="gemini-1.5-flash",
        models=[
            ModelInfo(
                id="gemini-1.5-pro",
                context_window=2000000,
                max_tokens=8192,
                supports_top_p=True,
            ),
            ModelInfo(
                id="gemini-1.5-flash",
                context_window=1000000,
                max_tokens=8192,
                supports_top_p=True,
            ),
            ModelInfo(
                id="gemini-2.0-flash-exp-image-generation",
                context_window=32000,
                max_tokens=8192,
                supports_system_prompt=False,
            ),
        ],
    )


def _deepseek_config() -> ProviderConfig:
    return ProviderConfig(
        provider=ProviderId.DEEPSEEK,
        default_model="deepseek-chat",
        models=[
            ModelInfo(
                id="deepseek-chat",
                context_window=64000,
                max_tokens=8192,
                supports_top_p=True,
            ),
            ModelInfo(
                id="deepseek-reasoner",
                context_window=64000,
                max_tokens=8192,
                supports_temperature=False,
            ),
        ],
    )


def _mistral_config() -> ProviderConfig:
    return ProviderConfig(
        provider=ProviderId.MISTRAL,
        default_model="mistral-small-latest",
        models=[
            ModelInfo(
                id="mistral-large-latest",
                context_window=128000,
                max_tokens=8192,
                supports_top_p=True,
            ),
            ModelInfo(
                id="mistral-small-latest",
                context_window=32000,
                max_tokens=8192,
                supports_top_p=True,
            ),
        ],
    )


def _grok_config() -> ProviderConfig:
    return ProviderConfig(
        provider=ProviderId.GROK,
        default_model="grok-2-latest",
        models=[
            ModelInfo(
                id="grok-2-latest",
                context_window=131072,
                max_tokens=8192,
                supports_top_p=True,
            ),
        ],
    )


_FACTORIES = {
    ProviderId.OPENAI: _openai_config,
    ProviderId.ANTHROPIC: _anthropic_config,
    ProviderId.GEMINI: _gemini_config,
    ProviderId.DEEPSEEK: _deepseek_config,
    ProviderId.MISTRAL: _mistral_config,
    ProviderId.GROK: _grok_config,
}


def default_provider_config(provider: ProviderId) -> ProviderConfig:
    """Return a fresh copy of the built-in configuration for a provider."""
    return _FACTORIES[ProviderId.parse(provider)]()
