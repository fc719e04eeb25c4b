"""
SceneCraft Agents Module
LLM clients shared by every agent invocation.
"""

from .base import (
    ChatHistory,
    ChatRequest,
    ClaudeClient,
    GeminiClient,
    LLMClient,
    OpenAIClient,
    ProviderClient,
    create_llm_client,
    create_llm_client_from_config,
    invoke_with_deadline,
)

__all__ = [
    "ChatHistory",
    "ChatRequest",
    "LLMClient",
    "ProviderClient",
    "OpenAIClient",
    "ClaudeClient",
    "GeminiClient",
    "create_llm_client",
    "create_llm_client_from_config",
    "invoke_with_deadline",
]
