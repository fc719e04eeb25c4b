"""
SceneCraft Configuration Module
"""

from .llm_providers import (
    ClaudeConfig,
    GeminiConfig,
    LLMConfiguration,
    LLMProvider,
    OpenAIConfig,
    OpenRouterConfig,
    ProviderConfig,
    create_default_config_from_env,
)

__all__ = [
    "ClaudeConfig",
    "GeminiConfig",
    "LLMConfiguration",
    "LLMProvider",
    "OpenAIConfig",
    "OpenRouterConfig",
    "ProviderConfig",
    "create_default_config_from_env",
]
