"""
LogAllot - Provider Adapter Tests
=================================

Wire-format tests for every vendor adapter, using httpx.MockTransport.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from ai_analysis.api.schemas import AnalysisRequest, ProviderConfig
from ai_analysis.core.errors import ProviderError
from ai_analysis.core.providers import (
    PROVIDER_ADAPTERS,
    ChatCompletionsAdapter,
    CohereAdapter,
    HuggingFaceAdapter,
    OpenRouterAdapter,
    ZAIAdapter,
    build_adapters,
)
from shared.constants import (
    DEFAULT_BASE_URLS,
    DEFAULT_MODELS,
    NO_RESPONSE_PLACEHOLDER,
    SYSTEM_INSTRUCTION,
    ProviderName,
)


def make_config(provider: ProviderName, **overrides) -> ProviderConfig:
    values = {
        "provider": provider,
        "api_key": "test-key",
        "model": DEFAULT_MODELS[provider],
        "base_url": DEFAULT_BASE_URLS[provider],
        "temperature": 0.3,
        "max_tokens": 2000,
        "timeout_seconds": 30.0,
    }
    values.update(overrides)
    return ProviderConfig(**values)


class Recorder:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    @property
    def last_body(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def http_client_factory():
    def factory(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


class TestAdapterTable:
    """Tests for the static provider dispatch table."""

    def test_every_provider_has_an_adapter(self):
        """Test that the table covers the whole enum."""
        assert set(PROVIDER_ADAPTERS) == set(ProviderName)

    def test_adapter_assignment(self):
        """Test which implementation serves which vendor."""
        for provider in (ProviderName.GROQ, ProviderName.OPENAI, ProviderName.TOGETHER, ProviderName.MISTRAL):
            assert PROVIDER_ADAPTERS[provider] is ChatCompletionsAdapter
        assert PROVIDER_ADAPTERS[ProviderName.OPENROUTER] is OpenRouterAdapter
        assert PROVIDER_ADAPTERS[ProviderName.HUGGINGFACE] is HuggingFaceAdapter
        assert PROVIDER_ADAPTERS[ProviderName.COHERE] is CohereAdapter
        assert PROVIDER_ADAPTERS[ProviderName.ZAI] is ZAIAdapter

    def test_build_adapters(self):
        """Test instantiation around a shared client."""
        adapters = build_adapters(MagicMock(spec=httpx.AsyncClient))
        assert adapters[ProviderName.MISTRAL].provider == ProviderName.MISTRAL


class TestChatCompletionsAdapter:
    """Tests for OpenAI-compatible vendors."""

    @pytest.mark.asyncio
    async def test_request_shape_and_parsing(self, http_client_factory):
        """Test URL, auth, body and the parsed response."""
        recorder = Recorder(httpx.Response(200, json={
            "choices": [{"message": {"content": "Root cause: bad input"}}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        }))
        adapter = ChatCompletionsAdapter(ProviderName.GROQ, http_client_factory(recorder))
        request = AnalysisRequest(prompt="Analyze", context="prod cluster", temperature=0.7)

        response = await adapter.call(request, make_config(ProviderName.GROQ))

        sent = recorder.requests[0]
        assert str(sent.url) == "https://api.groq.com/openai/v1/chat/completions"
        assert sent.headers["Authorization"] == "Bearer test-key"

        body = recorder.last_body
        assert body["model"] == DEFAULT_MODELS[ProviderName.GROQ]
        assert body["messages"][0] == {"role": "system", "content": SYSTEM_INSTRUCTION}
        assert body["messages"][1]["content"] == "Analyze\n\nContext: prod cluster"
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 2000

        assert response.content == "Root cause: bad input"
        assert response.provider == ProviderName.GROQ
        assert response.usage.total_tokens == 15

    @pytest.mark.asyncio
    async def test_missing_content_uses_placeholder(self, http_client_factory):
        """Test the placeholder for an empty choices list."""
        recorder = Recorder(httpx.Response(200, json={"choices": []}))
        adapter = ChatCompletionsAdapter(ProviderName.OPENAI, http_client_factory(recorder))

        response = await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.OPENAI))

        assert response.content == NO_RESPONSE_PLACEHOLDER
        assert response.usage is None

    @pytest.mark.asyncio
    async def test_non_2xx_raises_provider_error(self, http_client_factory):
        """Test that vendor HTTP errors carry the status code."""
        recorder = Recorder(httpx.Response(429, json={"error": "rate limited"}))
        adapter = ChatCompletionsAdapter(ProviderName.GROQ, http_client_factory(recorder))

        with pytest.raises(ProviderError) as exc_info:
            await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.GROQ))

        assert exc_info.value.status_code == 429
        assert exc_info.value.provider == "groq"

    @pytest.mark.asyncio
    async def test_transport_error_raises_provider_error(self, http_client_factory):
        """Test that connection failures are wrapped."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        adapter = ChatCompletionsAdapter(ProviderName.GROQ, http_client_factory(handler))

        with pytest.raises(ProviderError) as exc_info:
            await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.GROQ))

        assert exc_info.value.status_code is None
        assert "ConnectError" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self, http_client_factory):
        """Test that an HTML error page is a ProviderError."""
        recorder = Recorder(httpx.Response(200, text="<html>gateway</html>"))
        adapter = ChatCompletionsAdapter(ProviderName.GROQ, http_client_factory(recorder))

        with pytest.raises(ProviderError):
            await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.GROQ))

    @pytest.mark.asyncio
    async def test_wrong_top_level_shape_raises(self, http_client_factory):
        """Test that a JSON list is rejected for chat completions."""
        recorder = Recorder(httpx.Response(200, json=["unexpected"]))
        adapter = ChatCompletionsAdapter(ProviderName.GROQ, http_client_factory(recorder))

        with pytest.raises(ProviderError):
            await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.GROQ))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [42, [{"type": "text", "text": "parts"}], {"text": "x"}])
    async def test_non_string_content_raises(self, http_client_factory, content):
        """Test that completion content of the wrong type is a ProviderError."""
        recorder = Recorder(httpx.Response(200, json={"choices": [{"message": {"content": content}}]}))
        adapter = ChatCompletionsAdapter(ProviderName.GROQ, http_client_factory(recorder))

        with pytest.raises(ProviderError) as exc_info:
            await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.GROQ))

        assert exc_info.value.provider == "groq"
        assert type(content).__name__ in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_is_applied(self, http_client_factory):
        """Test that the per-call timeout reaches the request."""
        recorder = Recorder(httpx.Response(200, json={"choices": []}))
        adapter = ChatCompletionsAdapter(ProviderName.GROQ, http_client_factory(recorder))

        await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.GROQ, timeout_seconds=7.5))

        timeout = recorder.requests[0].extensions["timeout"]
        assert timeout["read"] == 7.5


class TestOpenRouterAdapter:
    """Tests for OpenRouter attribution headers."""

    @pytest.mark.asyncio
    async def test_extra_headers(self, http_client_factory):
        """Test HTTP-Referer and X-Title are sent."""
        recorder = Recorder(httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]}))
        adapter = OpenRouterAdapter(ProviderName.OPENROUTER, http_client_factory(recorder))

        await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.OPENROUTER))

        headers = recorder.requests[0].headers
        assert headers["HTTP-Referer"]
        assert headers["X-Title"]
        assert str(recorder.requests[0].url).endswith("/chat/completions")


class TestHuggingFaceAdapter:
    """Tests for the Hugging Face inference format."""

    @pytest.mark.asyncio
    async def test_request_and_response(self, http_client_factory):
        """Test model-in-path URL and generated_text parsing."""
        recorder = Recorder(httpx.Response(200, json=[{"generated_text": "HF says hi"}]))
        adapter = HuggingFaceAdapter(ProviderName.HUGGINGFACE, http_client_factory(recorder))

        response = await adapter.call(
            AnalysisRequest(prompt="Analyze", max_tokens=123),
            make_config(ProviderName.HUGGINGFACE)
        )

        assert str(recorder.requests[0].url) == (
            "https://api-inference.huggingface.co/models/microsoft/DialoGPT-medium"
        )
        body = recorder.last_body
        assert body["inputs"].endswith("Analyze")
        assert body["parameters"] == {"temperature": 0.3, "max_new_tokens": 123}
        assert response.content == "HF says hi"

    @pytest.mark.asyncio
    async def test_error_object_is_rejected(self, http_client_factory):
        """Test that a dict payload (model loading error) raises."""
        recorder = Recorder(httpx.Response(200, json={"error": "Model is loading"}))
        adapter = HuggingFaceAdapter(ProviderName.HUGGINGFACE, http_client_factory(recorder))

        with pytest.raises(ProviderError):
            await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.HUGGINGFACE))

    @pytest.mark.asyncio
    async def test_non_string_generated_text_raises(self, http_client_factory):
        """Test that a non-string generated_text is a ProviderError."""
        recorder = Recorder(httpx.Response(200, json=[{"generated_text": ["a", "b"]}]))
        adapter = HuggingFaceAdapter(ProviderName.HUGGINGFACE, http_client_factory(recorder))

        with pytest.raises(ProviderError):
            await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.HUGGINGFACE))


class TestCohereAdapter:
    """Tests for the Cohere generate format."""

    @pytest.mark.asyncio
    async def test_request_and_response(self, http_client_factory):
        """Test generate endpoint and generations parsing."""
        recorder = Recorder(httpx.Response(200, json={"generations": [{"text": "Cohere answer"}]}))
        adapter = CohereAdapter(ProviderName.COHERE, http_client_factory(recorder))

        response = await adapter.call(AnalysisRequest(prompt="Analyze"), make_config(ProviderName.COHERE))

        assert str(recorder.requests[0].url) == "https://api.cohere.ai/v1/generate"
        body = recorder.last_body
        assert body["model"] == "command-light"
        assert body["prompt"].endswith("Analyze")
        assert response.content == "Cohere answer"

    @pytest.mark.asyncio
    async def test_missing_generations(self, http_client_factory):
        """Test the placeholder when no generation is returned."""
        recorder = Recorder(httpx.Response(200, json={"generations": []}))
        adapter = CohereAdapter(ProviderName.COHERE, http_client_factory(recorder))

        response = await adapter.call(AnalysisRequest(prompt="x"), make_config(ProviderName.COHERE))

        assert response.content == NO_RESPONSE_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_non_string_text_raises(self, http_client_factory):
        """Test that a numeric generation text is a ProviderError."""
        recorder = Recorder(httpx.Response(200, json={"generations": [{"text": 7}]}))
        adapter = CohereAdapter(ProviderName.COHERE, http_client_factory(recorder))

        with pytest.raises(ProviderError):
            await adapter.call(AnalysisRequest(prompt="x"), make_config(ProviderName.COHERE))


class TestZAIAdapter:
    """Tests for the SDK-backed z.ai adapter."""

    def _sdk(self, create: AsyncMock) -> MagicMock:
        sdk = MagicMock()
        sdk.chat.completions.create = create
        sdk.close = AsyncMock()
        return sdk

    @pytest.mark.asyncio
    async def test_call_through_sdk(self):
        """Test SDK construction, request parameters and parsing."""
        completion = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="z.ai analysis"))],
            usage=SimpleNamespace(prompt_tokens=3, completion_tokens=4, total_tokens=7),
        )
        sdk = self._sdk(AsyncMock(return_value=completion))
        adapter = ZAIAdapter(ProviderName.ZAI, MagicMock(spec=httpx.AsyncClient))

        with patch("ai_analysis.core.providers.AsyncOpenAI", return_value=sdk) as sdk_cls:
            response = await adapter.call(
                AnalysisRequest(prompt="Analyze", temperature=0.1),
                make_config(ProviderName.ZAI, timeout_seconds=12.0)
            )

        sdk_cls.assert_called_once_with(
            api_key="test-key",
            base_url="https://api.z.ai",
            timeout=12.0,
            max_retries=0,
        )
        kwargs = sdk.chat.completions.create.await_args.kwargs
        assert kwargs["temperature"] == 0.1
        assert kwargs["messages"][0]["content"] == SYSTEM_INSTRUCTION
        assert response.content == "z.ai analysis"
        assert response.usage.total_tokens == 7
        sdk.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sdk_error_wrapped(self):
        """Test that SDK errors become ProviderError."""
        sdk = self._sdk(AsyncMock(side_effect=openai.OpenAIError("quota exceeded")))
        adapter = ZAIAdapter(ProviderName.ZAI, MagicMock(spec=httpx.AsyncClient))

        with patch("ai_analysis.core.providers.AsyncOpenAI", return_value=sdk):
            with pytest.raises(ProviderError) as exc_info:
                await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.ZAI))

        assert exc_info.value.provider == "z.ai"
        assert "quota exceeded" in str(exc_info.value)
        sdk.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_choices_placeholder(self):
        """Test the placeholder when the SDK returns no choices."""
        sdk = self._sdk(AsyncMock(return_value=SimpleNamespace(choices=[], usage=None)))
        adapter = ZAIAdapter(ProviderName.ZAI, MagicMock(spec=httpx.AsyncClient))

        with patch("ai_analysis.core.providers.AsyncOpenAI", return_value=sdk):
            response = await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.ZAI))

        assert response.content == NO_RESPONSE_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_non_string_content_raises(self):
        """Test that SDK content of the wrong type is a ProviderError."""
        completion = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=[{"type": "text"}]))],
            usage=None,
        )
        sdk = self._sdk(AsyncMock(return_value=completion))
        adapter = ZAIAdapter(ProviderName.ZAI, MagicMock(spec=httpx.AsyncClient))

        with patch("ai_analysis.core.providers.AsyncOpenAI", return_value=sdk):
            with pytest.raises(ProviderError) as exc_info:
                await adapter.call(AnalysisRequest(prompt="hi"), make_config(ProviderName.ZAI))

        assert exc_info.value.provider == "z.ai"
        sdk.close.assert_awaited_once()
