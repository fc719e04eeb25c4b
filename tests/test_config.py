"""
Unit tests for provider configuration, client creation, logging and tracing setup.
"""

import logging
from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr

from scenecraft import LOG_FORMAT, configure_logging
from scenecraft.agents import ClaudeClient, OpenAIClient, create_llm_client, create_llm_client_from_config
from scenecraft.config import (
    ClaudeConfig,
    LLMConfiguration,
    LLMProvider,
    OpenRouterConfig,
    create_default_config_from_env,
)
from scenecraft.config import llm_providers
from scenecraft.services.tracing import TracingService

ENV_KEYS = [
    "OPENAI_API_KEY",
    "OPENAI_ORG_ID",
    "OPENAI_MODEL",
    "OPENROUTER_API_KEY",
    "OPENROUTER_SITE_URL",
    "GEMINI_API_KEY",
    "ANTHROPIC_API_KEY",
    "SCENECRAFT_PROVIDER",
    "SCENECRAFT_MODEL",
    "SCENECRAFT_AGENT_TIMEOUT_SECONDS",
    "LANGFUSE_PUBLIC_KEY",
    "LANGFUSE_SECRET_KEY",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Environment without provider keys and without .env loading."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(llm_providers, "load_dotenv", lambda *args, **kwargs: False)
    return monkeypatch


class TestConfigFromEnv:
    """Tests for create_default_config_from_env."""

    def test_no_keys(self, clean_env):
        """Test that nothing is enabled without keys."""
        config = create_default_config_from_env()

        assert config.get_enabled_providers() == []
        assert config.default_provider == LLMProvider.OPENAI
        assert config.timeout_seconds is None

    def test_providers_from_keys(self, clean_env):
        """Test that each key enables its provider."""
        clean_env.setenv("OPENAI_API_KEY", "sk-test")
        clean_env.setenv("ANTHROPIC_API_KEY", "ak-test")
        clean_env.setenv("OPENAI_MODEL", "gpt-4o")

        config = create_default_config_from_env()

        assert config.get_enabled_providers() == [LLMProvider.OPENAI, LLMProvider.CLAUDE]
        assert config.openai.api_key.get_secret_value() == "sk-test"
        assert config.resolve_model() == "gpt-4o"

    def test_scenecraft_settings(self, clean_env):
        """Test provider, model and agent deadline overrides."""
        clean_env.setenv("GEMINI_API_KEY", "g-test")
        clean_env.setenv("SCENECRAFT_PROVIDER", "gemini")
        clean_env.setenv("SCENECRAFT_MODEL", "gemini-1.5-pro")
        clean_env.setenv("SCENECRAFT_AGENT_TIMEOUT_SECONDS", "45")

        config = create_default_config_from_env()

        assert config.default_provider == LLMProvider.GEMINI
        assert config.resolve_model() == "gemini-1.5-pro"
        assert config.timeout_seconds == 45.0

    def test_unknown_provider(self, clean_env):
        """Test that an unknown provider name is rejected."""
        clean_env.setenv("SCENECRAFT_PROVIDER", "mystery")

        with pytest.raises(ValueError):
            create_default_config_from_env()


class TestResolveModel:
    """Tests for LLMConfiguration.resolve_model."""

    def test_provider_default(self):
        """Test the provider's own default model."""
        config = LLMConfiguration(
            default_provider=LLMProvider.CLAUDE,
            claude=ClaudeConfig(api_key=SecretStr("k")),
        )

        assert config.resolve_model() == "claude-3-5-sonnet-20241022"

    def test_missing_provider(self):
        """Test that an unconfigured provider is an error."""
        with pytest.raises(ValueError):
            LLMConfiguration().resolve_model(LLMProvider.GEMINI)


class TestCreateClient:
    """Tests for the client factory."""

    def test_missing_config(self):
        """Test that a provider without configuration is rejected."""
        with pytest.raises(ValueError, match="OpenAI configuration not provided"):
            create_llm_client(LLMProvider.OPENAI, LLMConfiguration(), "gpt-4o-mini")

    def test_openrouter_uses_openai_client(self):
        """Test that OpenRouter goes through the OpenAI-compatible client."""
        config = LLMConfiguration(openrouter=OpenRouterConfig(api_key=SecretStr("or-key")))

        client = create_llm_client(LLMProvider.OPENROUTER, config, "openai/gpt-4o-mini")

        assert isinstance(client, OpenAIClient)
        assert client.base_url == "https://openrouter.ai/api/v1"
        assert client.model == "openai/gpt-4o-mini"

    def test_from_config(self):
        """Test the default provider and model path."""
        config = LLMConfiguration(
            default_provider=LLMProvider.CLAUDE,
            default_model="claude-3-haiku-20240307",
            claude=ClaudeConfig(api_key=SecretStr("k")),
        )

        client = create_llm_client_from_config(config)

        assert isinstance(client, ClaudeClient)
        assert client.model == "claude-3-haiku-20240307"


class TestLoggingAndTracing:
    """Tests for ambient setup."""

    def test_configure_logging_once(self):
        """Test that repeated calls attach a single handler."""
        logger = logging.getLogger("scenecraft")
        saved = list(logger.handlers)
        for handler in saved:
            logger.removeHandler(handler)
        try:
            configure_logging(logging.DEBUG)
            configure_logging(logging.DEBUG)

            assert len(logger.handlers) == 1
            assert logger.level == logging.DEBUG
            assert logger.handlers[0].formatter._fmt == LOG_FORMAT
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
            for handler in saved:
                logger.addHandler(handler)
            logger.setLevel(logging.NOTSET)

    def test_tracing_disabled_without_keys(self, clean_env):
        """Test that tracing stays a no-op without Langfuse keys."""
        tracing = TracingService()

        assert tracing.initialize() is False
        assert not tracing.enabled
        assert tracing.start_session("run-1", "ugc_ad", "shared_state") is None
        tracing.record_event("run-1", "noop")
        tracing.end_session("run-1", scene_count=3)

    @pytest.mark.asyncio
    async def test_scene_span_noop_when_disabled(self):
        """Test that scene spans yield None when tracing is off."""
        async with TracingService().scene_span("run-1", 1, "hook") as span:
            assert span is None


class TestTracingService:
    """Tests for the session trace lifecycle against a mocked Langfuse client."""

    @pytest.fixture
    def tracing(self):
        service = TracingService()
        service._client = MagicMock()
        return service

    @pytest.mark.asyncio
    async def test_session_lifecycle(self, tracing):
        """Test that spans, generations and events attach to the run's trace."""
        trace = tracing.start_session("run-1", "ugc_ad", "shared_state")

        async with tracing.scene_span("run-1", 2, "demo") as span:
            tracing.record_generation("run-1", "writer", "sys", "user", "out", scene_index=2, role="copywriter")
        tracing.record_event("run-1", "coercion_degraded", level="WARNING")
        tracing.end_session("run-1", scene_count=3, latency_ms=12.0)

        assert trace is tracing._client.trace.return_value
        trace.span.assert_called_once_with(name="scene_2", input={"purpose": "demo"})
        span.end.assert_called_once()
        generation = trace.generation.call_args.kwargs
        assert generation["name"] == "scene_2_writer"
        assert generation["metadata"]["agent_role"] == "copywriter"
        trace.event.assert_called_once_with(name="coercion_degraded", level="WARNING", metadata={})
        trace.update.assert_called_once_with(output={"scene_count": 3}, metadata={"latency_ms": 12.0})
        tracing._client.flush.assert_called_once()

    @pytest.mark.asyncio
    async def test_span_marks_errors(self, tracing):
        """Test that an exception inside a scene span is recorded and re-raised."""
        trace = tracing.start_session("run-1", "ugc_ad", "shared_state")

        with pytest.raises(RuntimeError):
            async with tracing.scene_span("run-1", 1, "hook"):
                raise RuntimeError("agent failed")

        span = trace.span.return_value
        span.update.assert_called_once_with(level="ERROR", status_message="agent failed")
        span.end.assert_called_once()

    def test_unknown_run_ignored(self, tracing):
        """Test that calls for a run without a trace do nothing."""
        tracing.record_event("missing", "noop")
        tracing.end_session("missing", error="boom")

        tracing._client.flush.assert_not_called()
