"""
LLM clients for SceneCraft.

Every agent invocation, the scene planning call and the single-prompt call go
through LLMClient.generate. Provider clients (OpenAI and OpenRouter, Claude,
Gemini) create their SDK client lazily on first use.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..config import LLMConfiguration, LLMProvider, ProviderConfig
from ..core.errors import AgentInvocationError, AgentTimeoutError

logger = logging.getLogger("scenecraft.llm")

ChatHistory = List[Dict[str, str]]

# Claude requires max_tokens on every request
CLAUDE_DEFAULT_MAX_TOKENS = 4096
CLAUDE_MAX_TEMPERATURE = 1.0


async def invoke_with_deadline(
    caller_id: str,
    call: Awaitable[str],
    timeout_seconds: Optional[float] = None,
    scene_index: Optional[int] = None,
) -> str:
    """
    Await one model call, mapping failures to AgentInvocationError.

    Expiry of timeout_seconds raises AgentTimeoutError; no retry happens here.
    """
    try:
        if timeout_seconds:
            text = await asyncio.wait_for(call, timeout=timeout_seconds)
        else:
            text = await call
    except asyncio.TimeoutError as e:
        logger.error(f"[invoke_with_deadline] '{caller_id}' timed out after {timeout_seconds}s")
        raise AgentTimeoutError(caller_id, timeout_seconds, scene_index=scene_index) from e
    except Exception as e:
        logger.error(f"[invoke_with_deadline] '{caller_id}' failed: {e}")
        raise AgentInvocationError(caller_id, str(e), scene_index=scene_index) from e
    return text or ""


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        history: Optional[ChatHistory] = None,
    ) -> str:
        """
        Generate a response from the LLM.

        history holds prior {"role", "content"} turns (user/assistant) that are
        sent between the system prompt and the new user prompt.
        """
        pass


@dataclass(frozen=True)
class ChatRequest:
    """One model request in provider-neutral form."""
    system_prompt: str
    user_prompt: str
    temperature: float
    max_tokens: Optional[int]
    history: ChatHistory

    def turns(self) -> ChatHistory:
        """Prior turns followed by the new user prompt."""
        return [*self.history, {"role": "user", "content": self.user_prompt}]


class ProviderClient(LLMClient):
    """LLMClient backed by a provider SDK that is built on first use."""

    def __init__(self, api_key: str, model: str):
        self.api_key = api_key
        self.model = model
        self._sdk = None

    @abstractmethod
    def _build_sdk(self) -> Any:
        ...

    @abstractmethod
    async def _complete(self, sdk: Any, request: ChatRequest) -> str:
        ...

    def _get_sdk(self) -> Any:
        if self._sdk is None:
            self._sdk = self._build_sdk()
        return self._sdk

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        history: Optional[ChatHistory] = None,
    ) -> str:
        request = ChatRequest(system_prompt, user_prompt, temperature, max_tokens, list(history or []))
        return await self._complete(self._get_sdk(), request)


class OpenAIClient(ProviderClient):
    """OpenAI chat completions; OpenRouter reuses it with its own base_url."""

    def __init__(self, api_key: str, model: str, base_url: str = "https://api.openai.com/v1"):
        super().__init__(api_key, model)
        self.base_url = base_url

    def _build_sdk(self) -> Any:
        from openai import AsyncOpenAI
        return AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)

    async def _complete(self, sdk: Any, request: ChatRequest) -> str:
        messages = [{"role": "system", "content": request.system_prompt}, *request.turns()]
        response = await sdk.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
        return response.choices[0].message.content or ""


class ClaudeClient(ProviderClient):
    """Anthropic messages API; the system prompt travels in its own field."""

    def _build_sdk(self) -> Any:
        from anthropic import AsyncAnthropic
        return AsyncAnthropic(api_key=self.api_key)

    async def _complete(self, sdk: Any, request: ChatRequest) -> str:
        response = await sdk.messages.create(
            model=self.model,
            system=request.system_prompt,
            messages=request.turns(),
            max_tokens=request.max_tokens or CLAUDE_DEFAULT_MAX_TOKENS,
            temperature=min(request.temperature, CLAUDE_MAX_TEMPERATURE),
        )
        return "".join(block.text for block in response.content if getattr(block, "text", None))


class GeminiClient(ProviderClient):
    """Google Gemini; system prompt, history and user prompt are sent as one text."""

    def _build_sdk(self) -> Any:
        import google.generativeai as genai
        genai.configure(api_key=self.api_key)
        return genai.GenerativeModel(self.model)

    async def _complete(self, sdk: Any, request: ChatRequest) -> str:
        sections = [request.system_prompt]
        if request.history:
            sections.append("\n\n".join(
                f"{turn['role'].upper()}: {turn['content']}" for turn in request.history
            ))
        sections.append(request.user_prompt)
        response = await sdk.generate_content_async(
            "\n\n---\n\n".join(sections),
            generation_config={
                "temperature": request.temperature,
                "max_output_tokens": request.max_tokens,
            },
        )
        return response.text


def _openai_compatible(provider_config: ProviderConfig, model: str) -> LLMClient:
    return OpenAIClient(
        api_key=provider_config.api_key.get_secret_value(),
        model=model,
        base_url=provider_config.base_url,
    )


_CLIENT_BUILDERS: Dict[LLMProvider, Callable[[ProviderConfig, str], LLMClient]] = {
    LLMProvider.OPENAI: _openai_compatible,
    LLMProvider.OPENROUTER: _openai_compatible,
    LLMProvider.CLAUDE: lambda cfg, model: ClaudeClient(cfg.api_key.get_secret_value(), model),
    LLMProvider.GEMINI: lambda cfg, model: GeminiClient(cfg.api_key.get_secret_value(), model),
}

_PROVIDER_LABELS = {
    LLMProvider.OPENAI: "OpenAI",
    LLMProvider.OPENROUTER: "OpenRouter",
    LLMProvider.CLAUDE: "Claude",
    LLMProvider.GEMINI: "Gemini",
}


def create_llm_client(
    provider: LLMProvider,
    config: LLMConfiguration,
    model: str,
) -> LLMClient:
    """Client for one provider; ValueError when that provider is not configured."""
    builder = _CLIENT_BUILDERS.get(provider)
    if builder is None:
        raise ValueError(f"Unsupported provider: {provider}")
    provider_config = config.get_provider_config(provider)
    if provider_config is None:
        raise ValueError(f"{_PROVIDER_LABELS[provider]} configuration not provided")
    logger.debug(f"[create_llm_client] {provider.value} client for model '{model}'")
    return builder(provider_config, model)


def create_llm_client_from_config(config: LLMConfiguration) -> LLMClient:
    """Client for the configuration's default provider and model."""
    provider = config.default_provider
    return create_llm_client(provider, config, config.resolve_model(provider))
