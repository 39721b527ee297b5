"""
unistream Adapters Module

Provider-specific request builders and frame classifiers, selected by
provider id through a lookup table.
"""

from typing import Callable, Dict

from .base import ProviderAdapter, merge_consecutive_turns
from .openai_adapter import create_openai_style_adapter
from .anthropic_adapter import create_anthropic_adapter
from .google_adapter import create_gemini_adapter
from .deepseek_adapter import create_deepseek_adapter
from ..core.errors import ConfigurationError
from ..core.models import ProviderId

__all__ = [
    "ProviderAdapter",
    "get_adapter",
    "merge_consecutive_turns",
]


_ADAPTERS: Dict[ProviderId, Callable[[], ProviderAdapter]] = {
    ProviderId.OPENAI: lambda: create_openai_style_adapter(ProviderId.OPENAI),
    ProviderId.MISTRAL: lambda: create_openai_style_adapter(ProviderId.MISTRAL),
    ProviderId.GROK: lambda: create_openai_style_adapter(ProviderId.GROK),
    ProviderId.DEEPSEEK: create_deepseek_adapter,
    ProviderId.ANTHROPIC: create_anthropic_adapter,
    ProviderId.GEMINI: create_gemini_adapter,
}


def get_adapter(provider: "ProviderId | str") -> ProviderAdapter:
    """
    Look up the adapter for a provider.

    Args:
        provider: Provider id or alias ("openai", "chatgpt", "claude", ...)

    Raises:
        ConfigurationError: If provider is not supported
    """
    try:
        provider_id = ProviderId.parse(provider)
    except ValueError:
        raise ConfigurationError(f"Unsupported provider: {provider}", param="provider")
    return _ADAPTERS[provider_id]()
