"""
unistream - Configuration

Environment-driven settings and the default credential+config provider.
"""

import os
from dataclasses import replace
from typing import Dict, Optional, Protocol

import httpx

from .catalog import default_provider_config
from .errors import ConfigurationError
from .models import Credentials, ProviderConfig, ProviderId


DEFAULT_READ_TIMEOUT = 60.0
DEFAULT_CONNECT_TIMEOUT = 10.0

# Checked in order; first non-empty wins
API_KEY_ENV_VARS: Dict[ProviderId, tuple] = {
    ProviderId.OPENAI: ("OPENAI_API_KEY",),
    ProviderId.ANTHROPIC: ("ANTHROPIC_API_KEY",),
    ProviderId.GEMINI: ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    ProviderId.DEEPSEEK: ("DEEPSEEK_API_KEY",),
    ProviderId.MISTRAL: ("MISTRAL_API_KEY",),
    ProviderId.GROK: ("XAI_API_KEY", "GROK_API_KEY"),
}


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}", param=name)


def get_read_timeout() -> float:
    """Read timeout in seconds for streaming responses."""
    return _float_env("UNISTREAM_TIMEOUT", DEFAULT_READ_TIMEOUT)


def get_connect_timeout() -> float:
    """Connect timeout in seconds."""
    return _float_env("UNISTREAM_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)


def get_http_timeout() -> httpx.Timeout:
    """Build the httpx timeout used by transports and probes."""
    return httpx.Timeout(get_read_timeout(), connect=get_connect_timeout())


def get_env_api_key(provider: ProviderId) -> Optional[str]:
    """Get a provider API key from the environment."""
    for name in API_KEY_ENV_VARS[provider]:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return None


def get_env_api_keys() -> Dict[str, Optional[str]]:
    """Get all provider API keys from the environment."""
    return {provider.value: get_env_api_key(provider) for provider in ProviderId}


def get_endpoint_override(provider: ProviderId) -> Optional[str]:
    """Endpoint override from UNISTREAM_<PROVIDER>_ENDPOINT."""
    value = os.getenv(f"UNISTREAM_{provider.value.upper()}_ENDPOINT", "").strip()
    return value or None


def get_model_override(provider: ProviderId) -> Optional[str]:
    """Model override from UNISTREAM_<PROVIDER>_MODEL."""
    value = os.getenv(f"UNISTREAM_{provider.value.upper()}_MODEL", "").strip()
    return value or None


def validate_config() -> None:
    """Fail early on unusable settings."""
    if get_read_timeout() <= 0:
        raise ConfigurationError("UNISTREAM_TIMEOUT must be positive", param="UNISTREAM_TIMEOUT")
    if get_connect_timeout() <= 0:
        raise ConfigurationError(
            "UNISTREAM_CONNECT_TIMEOUT must be positive", param="UNISTREAM_CONNECT_TIMEOUT"
        )


# ============================================================
# Credential + Config Provider
# ============================================================

class CredentialProvider(Protocol):
    """Read-only source of credentials and per-provider defaults."""

    def get_credentials(self, provider_id: ProviderId) -> Credentials:
        ...

    def get_provider_config(self, provider_id: ProviderId) -> ProviderConfig:
        ...


class EnvCredentialProvider:
    """
    Credential provider backed by environment variables and the
    built-in provider catalog.
    """

    def __init__(self, configs: Optional[Dict[ProviderId, ProviderConfig]] = None):
        self._configs = dict(configs or {})

    def get_credentials(self, provider_id: ProviderId) -> Credentials:
        provider_id = ProviderId.parse(provider_id)
        api_key = get_env_api_key(provider_id)
        if not api_key:
            names = " or ".join(API_KEY_ENV_VARS[provider_id])
            raise ConfigurationError(
                f"No API key configured for {provider_id.value} (set {names})",
                provider=provider_id.value,
                param="api_key",
            )
        return Credentials(api_key=api_key, model=get_model_override(provider_id))

    def get_provider_config(self, provider_id: ProviderId) -> ProviderConfig:
        provider_id = ProviderId.parse(provider_id)
        config = self._configs.get(provider_id) or default_provider_config(provider_id)
        endpoint = get_endpoint_override(provider_id)
        if endpoint:
            config = replace(config, endpoint=endpoint)
        return config
