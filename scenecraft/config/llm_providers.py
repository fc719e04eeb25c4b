"""
LLM provider configuration - bring your own key.

Each provider is enabled by its API key. SCENECRAFT_* variables choose the
default provider and model and set the per-agent deadline.
"""

import os
from enum import Enum
from typing import Dict, List, Optional, Type

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    GEMINI = "gemini"
    CLAUDE = "claude"


class ProviderConfig(BaseModel):
    """Key and default model for one provider."""
    api_key: SecretStr
    enabled: bool = True
    default_model: str


class OpenAIConfig(ProviderConfig):
    organization_id: Optional[str] = None
    base_url: str = "https://api.openai.com/v1"
    default_model: str = "gpt-4o-mini"


class OpenRouterConfig(ProviderConfig):
    """OpenRouter speaks the OpenAI API at its own base URL."""
    base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "openai/gpt-4o-mini"
    site_url: Optional[str] = None


class GeminiConfig(ProviderConfig):
    default_model: str = "gemini-1.5-flash"


class ClaudeConfig(ProviderConfig):
    default_model: str = "claude-3-5-sonnet-20241022"


class LLMConfiguration(BaseModel):
    """Provider keys plus the settings every generation session shares."""

    openai: Optional[OpenAIConfig] = None
    openrouter: Optional[OpenRouterConfig] = None
    gemini: Optional[GeminiConfig] = None
    claude: Optional[ClaudeConfig] = None

    default_provider: LLMProvider = LLMProvider.OPENAI
    default_model: Optional[str] = None

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-agent deadline; unset means calls are never cut short",
    )

    def get_provider_config(self, provider: LLMProvider) -> Optional[ProviderConfig]:
        return getattr(self, provider.value)

    def get_enabled_providers(self) -> List[LLMProvider]:
        """Providers that have a config with enabled set, in enum order."""
        enabled = []
        for provider in LLMProvider:
            provider_config = self.get_provider_config(provider)
            if provider_config is not None and provider_config.enabled:
                enabled.append(provider)
        return enabled

    def resolve_model(self, provider: Optional[LLMProvider] = None) -> str:
        """Model for a provider: explicit default_model, else the provider's own default."""
        provider = provider or self.default_provider
        if self.default_model:
            return self.default_model
        provider_config = self.get_provider_config(provider)
        if not provider_config:
            raise ValueError(f"{provider.value} configuration not provided")
        return provider_config.default_model


# provider -> (config class, API key variable, {config field: variable})
_PROVIDER_ENV: Dict[LLMProvider, tuple] = {
    LLMProvider.OPENAI: (
        OpenAIConfig,
        "OPENAI_API_KEY",
        {"organization_id": "OPENAI_ORG_ID", "default_model": "OPENAI_MODEL"},
    ),
    LLMProvider.OPENROUTER: (OpenRouterConfig, "OPENROUTER_API_KEY", {"site_url": "OPENROUTER_SITE_URL"}),
    LLMProvider.GEMINI: (GeminiConfig, "GEMINI_API_KEY", {}),
    LLMProvider.CLAUDE: (ClaudeConfig, "ANTHROPIC_API_KEY", {}),
}


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else None


def _provider_from_env(config_cls: Type[ProviderConfig], key_var: str, extras: Dict[str, str]) -> Optional[ProviderConfig]:
    api_key = _env(key_var)
    if not api_key:
        return None
    fields = {name: _env(var) for name, var in extras.items()}
    return config_cls(api_key=SecretStr(api_key), **{k: v for k, v in fields.items() if v is not None})


def create_default_config_from_env() -> LLMConfiguration:
    """Create configuration from environment variables (and a local .env file)."""
    load_dotenv()

    timeout = _env("SCENECRAFT_AGENT_TIMEOUT_SECONDS")
    config = LLMConfiguration(
        default_provider=LLMProvider(_env("SCENECRAFT_PROVIDER") or LLMProvider.OPENAI.value),
        default_model=_env("SCENECRAFT_MODEL"),
        timeout_seconds=float(timeout) if timeout else None,
    )
    for provider, (config_cls, key_var, extras) in _PROVIDER_ENV.items():
        provider_config = _provider_from_env(config_cls, key_var, extras)
        if provider_config is not None:
            setattr(config, provider.value, provider_config)
    return config
