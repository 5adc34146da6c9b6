"""
LogAllot - Config Resolver Tests
================================

Unit tests for three-tier provider configuration lookup.
"""

import httpx
import pytest
from unittest.mock import AsyncMock

from ai_analysis.core.config_resolver import (
    ConfigResolver,
    EdgeConfigClient,
    InMemorySettingsStore,
    env_key_name,
    parse_provider,
)
from ai_analysis.core.errors import UnsupportedProviderError
from shared.constants import DEFAULT_BASE_URLS, DEFAULT_MODELS, Defaults, ProviderName


class FailingStore:
    async def get_by_prefix(self, prefix: str) -> dict[str, str]:
        raise ConnectionError("database unavailable")


class TestHelpers:
    """Tests for provider name helpers."""

    def test_env_key_name(self):
        """Test environment variable naming, including z.ai."""
        assert env_key_name(ProviderName.GROQ, "API_KEY") == "GROQ_API_KEY"
        assert env_key_name(ProviderName.ZAI, "API_KEY") == "Z_AI_API_KEY"

    def test_parse_provider(self):
        """Test case-insensitive parsing of provider names."""
        assert parse_provider("OpenAI") == ProviderName.OPENAI
        assert parse_provider(" z.ai ") == ProviderName.ZAI

    def test_parse_unknown_provider(self):
        """Test that unknown names are rejected."""
        with pytest.raises(UnsupportedProviderError) as exc_info:
            parse_provider("anthropic-legacy")
        assert "anthropic-legacy" in str(exc_info.value)


class TestSettingsStoreTier:
    """Tests for tier 1 (settings store)."""

    @pytest.mark.asyncio
    async def test_settings_store_values(self):
        """Test that stored values win and are JSON-decoded."""
        store = InMemorySettingsStore({
            "ai_provider": "openai",
            "ai_temperature": 0.9,
            "ai_max_tokens": 1500,
            "ai_timeout": 12000,
            "openai_api_key": "sk-test",
            "openai_model": "gpt-4o",
        })
        resolver = ConfigResolver(settings_store=store, environ={})

        config = await resolver.resolve()

        assert config.provider == ProviderName.OPENAI
        assert config.api_key == "sk-test"
        assert config.model == "gpt-4o"
        assert config.base_url == DEFAULT_BASE_URLS[ProviderName.OPENAI]
        assert config.temperature == 0.9
        assert config.max_tokens == 1500
        assert config.timeout_seconds == 12.0

    @pytest.mark.asyncio
    async def test_explicit_provider_overrides_stored_one(self):
        """Test that the argument beats ai_provider."""
        store = InMemorySettingsStore({
            "ai_provider": "openai",
            "mistral_api_key": "m-key",
        })
        resolver = ConfigResolver(settings_store=store, environ={})

        config = await resolver.resolve("mistral")

        assert config.provider == ProviderName.MISTRAL
        assert config.api_key == "m-key"
        assert config.model == DEFAULT_MODELS[ProviderName.MISTRAL]

    @pytest.mark.asyncio
    async def test_undecodable_values_used_verbatim(self):
        """Test that raw (non-JSON) strings are accepted."""
        store = InMemorySettingsStore()
        store._values["ai_provider"] = "groq"
        store._values["groq_api_key"] = "gsk_plain"
        resolver = ConfigResolver(settings_store=store, environ={})

        config = await resolver.resolve()

        assert config.provider == ProviderName.GROQ
        assert config.api_key == "gsk_plain"

    @pytest.mark.asyncio
    async def test_invalid_numbers_fall_back_to_defaults(self):
        """Test that bad numeric settings do not break resolution."""
        store = InMemorySettingsStore({
            "ai_temperature": "hot",
            "ai_max_tokens": -5,
            "ai_timeout": 0,
        })
        resolver = ConfigResolver(settings_store=store, environ={})

        config = await resolver.resolve()

        assert config.temperature == Defaults.TEMPERATURE
        assert config.max_tokens == Defaults.MAX_TOKENS
        assert config.timeout_seconds == Defaults.TIMEOUT_SECONDS

    @pytest.mark.asyncio
    async def test_unknown_stored_provider_uses_default(self):
        """Test that a stored provider outside the enum falls back to the default."""
        store = InMemorySettingsStore({"ai_provider": "skynet", "groq_api_key": '"gsk-stored"'})
        resolver = ConfigResolver(settings_store=store, environ={})

        config = await resolver.resolve()

        assert config.provider == ProviderName.GROQ
        assert config.api_key == "gsk-stored"

    @pytest.mark.asyncio
    async def test_unknown_explicit_provider_rejected(self):
        """Test that an explicit provider outside the enum is still rejected."""
        store = InMemorySettingsStore({"ai_provider": "openai"})
        resolver = ConfigResolver(settings_store=store, environ={})

        with pytest.raises(UnsupportedProviderError):
            await resolver.resolve("skynet")

    @pytest.mark.asyncio
    async def test_failing_store_falls_through(self):
        """Test that a store error is logged and the next tier used."""
        resolver = ConfigResolver(
            settings_store=FailingStore(),
            environ={"GROQ_API_KEY": "env-key"}
        )

        config = await resolver.resolve()

        assert config.api_key == "env-key"


class TestRemoteTier:
    """Tests for tier 2 (remote config)."""

    @pytest.mark.asyncio
    async def test_remote_used_when_store_empty(self):
        """Test the remote flat map keys."""
        remote = AsyncMock()
        remote.get_all.return_value = {
            "ai.primaryProvider": "together",
            "ai.together.apiKey": "t-key",
            "ai.together.model": "mixtral",
            "ai.temperature": 0.5,
            "ai.maxTokens": 900,
            "ai.timeout": 5000,
        }
        resolver = ConfigResolver(
            settings_store=InMemorySettingsStore(),
            remote_config=remote,
            environ={}
        )

        config = await resolver.resolve()

        assert config.provider == ProviderName.TOGETHER
        assert config.api_key == "t-key"
        assert config.model == "mixtral"
        assert config.temperature == 0.5
        assert config.max_tokens == 900
        assert config.timeout_seconds == 5.0

    @pytest.mark.asyncio
    async def test_remote_missing_key_uses_environment(self):
        """Test API key fallback from remote map to env var."""
        remote = AsyncMock()
        remote.get_all.return_value = {"ai.primaryProvider": "z.ai"}
        resolver = ConfigResolver(
            remote_config=remote,
            environ={"Z_AI_API_KEY": "zai-env"}
        )

        config = await resolver.resolve()

        assert config.provider == ProviderName.ZAI
        assert config.api_key == "zai-env"

    @pytest.mark.asyncio
    async def test_remote_not_consulted_when_store_has_entries(self):
        """Test tier ordering."""
        remote = AsyncMock()
        resolver = ConfigResolver(
            settings_store=InMemorySettingsStore({"ai_provider": "groq"}),
            remote_config=remote,
            environ={}
        )

        await resolver.resolve()

        remote.get_all.assert_not_awaited()


class TestEnvironmentTier:
    """Tests for tier 3 (environment variables)."""

    @pytest.mark.asyncio
    async def test_remote_failure_uses_environment(self):
        """Test that a failing remote service falls back to env vars."""
        remote = AsyncMock()
        remote.get_all.side_effect = httpx.ConnectError("unreachable")
        resolver = ConfigResolver(
            remote_config=remote,
            environ={
                "GROQ_API_KEY": "gsk-env",
                "GROQ_MODEL": "llama-3.3",
                "GROQ_BASE_URL": "https://proxy.local/v1/",
            }
        )

        config = await resolver.resolve()

        assert config.provider == ProviderName.GROQ
        assert config.api_key == "gsk-env"
        assert config.model == "llama-3.3"
        assert config.base_url == "https://proxy.local/v1"

    @pytest.mark.asyncio
    async def test_defaults_without_any_configuration(self):
        """Test that every field except the key is always populated."""
        resolver = ConfigResolver(environ={})

        config = await resolver.resolve("cohere")

        assert config.api_key == ""
        assert config.model == DEFAULT_MODELS[ProviderName.COHERE]
        assert config.base_url == DEFAULT_BASE_URLS[ProviderName.COHERE]
        assert config.temperature == Defaults.TEMPERATURE
        assert config.max_tokens == Defaults.MAX_TOKENS
        assert config.timeout_seconds == Defaults.TIMEOUT_SECONDS

    @pytest.mark.asyncio
    async def test_configured_default_provider(self):
        """Test the constructor's default provider."""
        resolver = ConfigResolver(environ={}, default_provider="openrouter")

        config = await resolver.resolve()

        assert config.provider == ProviderName.OPENROUTER


class TestProviderStatus:
    """Tests for the per-provider status report."""

    @pytest.mark.asyncio
    async def test_status_lists_every_provider(self):
        """Test configured flags and the active marker."""
        resolver = ConfigResolver(environ={"OPENAI_API_KEY": "sk", "GROQ_API_KEY": "gsk"})

        statuses = await resolver.provider_status()

        assert [s.provider for s in statuses] == list(ProviderName)
        configured = {s.provider for s in statuses if s.configured}
        assert configured == {ProviderName.OPENAI, ProviderName.GROQ}
        active = [s.provider for s in statuses if s.active]
        assert active == [ProviderName.GROQ]

    @pytest.mark.asyncio
    async def test_status_with_unsupported_stored_provider(self):
        """Test that a bad stored provider still yields a full report."""
        store = InMemorySettingsStore({"ai_provider": "anthropic"})
        resolver = ConfigResolver(settings_store=store, environ={})

        statuses = await resolver.provider_status()

        assert len(statuses) == len(ProviderName)
        assert [s.provider for s in statuses if s.active] == [ProviderName.GROQ]


class TestEdgeConfigClient:
    """Tests for the HTTP remote config client."""

    @pytest.mark.asyncio
    async def test_get_all(self):
        """Test the items request and token handling."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"ai.primaryProvider": "openai"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            remote = EdgeConfigClient(
                "https://edge-config.vercel.com/ecfg_abc?token=tok-123",
                client=client
            )
            data = await remote.get_all()

        assert data == {"ai.primaryProvider": "openai"}
        assert seen["url"] == "https://edge-config.vercel.com/ecfg_abc/items"
        assert seen["auth"] == "Bearer tok-123"

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        """Test that non-2xx responses surface as errors."""
        transport = httpx.MockTransport(lambda request: httpx.Response(401))

        async with httpx.AsyncClient(transport=transport) as client:
            remote = EdgeConfigClient("https://edge.example/ecfg?token=t", client=client)
            with pytest.raises(httpx.HTTPStatusError):
                await remote.get_all()
