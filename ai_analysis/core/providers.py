"""
LogAllot - Provider Adapters
============================

One adapter per LLM vendor. Every adapter maps a vendor-neutral
AnalysisRequest onto the vendor's wire format and parses the reply into a
vendor-neutral AnalysisResponse.

Failure contract shared by all adapters:
- non-2xx status, transport error, timeout, non-JSON body, an unexpected
  top-level shape or non-string completion text raise ProviderError (the
  dispatcher retries these);
- a well-formed reply without completion text yields the placeholder
  "No response from AI" instead of failing.

The z.ai adapter is the odd one out: it goes through the vendor SDK
(an OpenAI-compatible client) instead of raw HTTP, behind the same contract.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from ai_analysis.api.schemas import (
    AnalysisRequest,
    AnalysisResponse,
    ProviderConfig,
    TokenUsage,
)
from ai_analysis.config import get_settings
from ai_analysis.core.errors import ProviderError
from shared.constants import NO_RESPONSE_PLACEHOLDER, SYSTEM_INSTRUCTION, ProviderName
from shared.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def _first(items: Any) -> Any:
    """First element of a list, or None."""
    if isinstance(items, list) and items:
        return items[0]
    return None


def _parse_usage(raw: Any) -> Optional[TokenUsage]:
    if not isinstance(raw, dict):
        return None
    try:
        return TokenUsage.model_validate(raw)
    except ValidationError:
        return None


class BaseProviderAdapter(ABC):
    """Base class for vendor adapters."""

    def __init__(self, provider: ProviderName, client: httpx.AsyncClient):
        self.provider = provider
        self._client = client

    @abstractmethod
    async def call(self, request: AnalysisRequest, config: ProviderConfig) -> AnalysisResponse:
        """Send one completion request. Raises ProviderError on failure."""
        pass

    @staticmethod
    def temperature_for(request: AnalysisRequest, config: ProviderConfig) -> float:
        return request.temperature if request.temperature is not None else config.temperature

    @staticmethod
    def max_tokens_for(request: AnalysisRequest, config: ProviderConfig) -> int:
        return request.max_tokens if request.max_tokens is not None else config.max_tokens

    def chat_messages(self, request: AnalysisRequest) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_INSTRUCTION},
            {"role": "user", "content": request.user_content()},
        ]

    def completion_text(self, content: Any) -> str:
        """
        Completion text for the response, or the placeholder when absent.

        Raises:
            ProviderError: The completion is present but not a string
        """
        if content is None:
            return NO_RESPONSE_PLACEHOLDER
        if not isinstance(content, str):
            raise ProviderError(
                self.provider.value,
                f"Unexpected completion content of type {type(content).__name__}"
            )
        return content or NO_RESPONSE_PLACEHOLDER


class HTTPProviderAdapter(BaseProviderAdapter):
    """
    Adapter for vendors reached with a single JSON ``POST``.

    Subclasses describe the endpoint, body and reply shape; this class owns
    transport, authentication and error wrapping.
    """

    @abstractmethod
    def endpoint(self, config: ProviderConfig) -> str:
        pass

    @abstractmethod
    def build_body(self, request: AnalysisRequest, config: ProviderConfig) -> dict[str, Any]:
        pass

    @abstractmethod
    def extract_content(self, data: Any) -> Optional[str]:
        """Completion text, or None when absent. Raise ProviderError on a wrong shape."""
        pass

    def extract_usage(self, data: Any) -> Optional[TokenUsage]:
        return None

    def extra_headers(self) -> dict[str, str]:
        return {}

    def _malformed(self, data: Any) -> ProviderError:
        return ProviderError(
            self.provider.value,
            f"Unexpected response payload of type {type(data).__name__}"
        )

    async def call(self, request: AnalysisRequest, config: ProviderConfig) -> AnalysisResponse:
        headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
            **self.extra_headers(),
        }

        try:
            response = await self._client.post(
                self.endpoint(config),
                json=self.build_body(request, config),
                headers=headers,
                timeout=config.timeout_seconds,
            )
        except httpx.HTTPError as e:
            raise ProviderError(
                self.provider.value,
                f"{type(e).__name__}: {e}"
            ) from e

        if not response.is_success:
            raise ProviderError(
                self.provider.value,
                response.reason_phrase or response.text[:200],
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                self.provider.value,
                "Response body is not valid JSON",
                status_code=response.status_code
            ) from e

        content = self.completion_text(self.extract_content(data))

        logger.debug(
            f"{self.provider.value} completion received",
            extra={"provider": self.provider.value, "model": config.model}
        )

        return AnalysisResponse(
            content=content,
            provider=self.provider,
            model=config.model,
            usage=self.extract_usage(data),
        )


class ChatCompletionsAdapter(HTTPProviderAdapter):
    """
    OpenAI-compatible ``/chat/completions`` vendors.

    Used for groq, openai, together and mistral.
    """

    def endpoint(self, config: ProviderConfig) -> str:
        return f"{config.base_url}/chat/completions"

    def build_body(self, request: AnalysisRequest, config: ProviderConfig) -> dict[str, Any]:
        return {
            "model": config.model,
            "messages": self.chat_messages(request),
            "temperature": self.temperature_for(request, config),
            "max_tokens": self.max_tokens_for(request, config),
        }

    def extract_content(self, data: Any) -> Optional[str]:
        if not isinstance(data, dict):
            raise self._malformed(data)
        choice = _first(data.get("choices"))
        if not isinstance(choice, dict):
            return None
        message = choice.get("message") or {}
        return message.get("content") if isinstance(message, dict) else None

    def extract_usage(self, data: Any) -> Optional[TokenUsage]:
        return _parse_usage(data.get("usage"))


class OpenRouterAdapter(ChatCompletionsAdapter):
    """OpenRouter additionally wants attribution headers."""

    def extra_headers(self) -> dict[str, str]:
        return {
            "HTTP-Referer": settings.openrouter_referer,
            "X-Title": settings.openrouter_title,
        }


class HuggingFaceAdapter(HTTPProviderAdapter):
    """Hugging Face Inference API: the model is part of the URL path."""

    def endpoint(self, config: ProviderConfig) -> str:
        return f"{config.base_url}/{config.model}"

    def build_body(self, request: AnalysisRequest, config: ProviderConfig) -> dict[str, Any]:
        return {
            "inputs": f"{SYSTEM_INSTRUCTION}\n\n{request.user_content()}",
            "parameters": {
                "temperature": self.temperature_for(request, config),
                "max_new_tokens": self.max_tokens_for(request, config),
            },
        }

    def extract_content(self, data: Any) -> Optional[str]:
        if not isinstance(data, list):
            raise self._malformed(data)
        generation = _first(data)
        if not isinstance(generation, dict):
            return None
        return generation.get("generated_text")


class CohereAdapter(HTTPProviderAdapter):
    """Cohere ``/generate`` endpoint with a flat prompt."""

    def endpoint(self, config: ProviderConfig) -> str:
        return f"{config.base_url}/generate"

    def build_body(self, request: AnalysisRequest, config: ProviderConfig) -> dict[str, Any]:
        return {
            "model": config.model,
            "prompt": f"{SYSTEM_INSTRUCTION}\n\n{request.user_content()}",
            "temperature": self.temperature_for(request, config),
            "max_tokens": self.max_tokens_for(request, config),
        }

    def extract_content(self, data: Any) -> Optional[str]:
        if not isinstance(data, dict):
            raise self._malformed(data)
        generation = _first(data.get("generations"))
        if not isinstance(generation, dict):
            return None
        return generation.get("text")


class ZAIAdapter(BaseProviderAdapter):
    """
    z.ai through its OpenAI-compatible SDK.

    SDK-level retries are disabled; retrying is the dispatcher's job.
    """

    async def call(self, request: AnalysisRequest, config: ProviderConfig) -> AnalysisResponse:
        sdk = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            max_retries=0,
        )

        try:
            completion = await sdk.chat.completions.create(
                model=config.model,
                messages=self.chat_messages(request),
                temperature=self.temperature_for(request, config),
                max_tokens=self.max_tokens_for(request, config),
            )
        except OpenAIError as e:
            raise ProviderError(
                self.provider.value,
                str(e),
                status_code=getattr(e, "status_code", None)
            ) from e
        finally:
            await sdk.close()

        content = None
        if completion.choices:
            content = completion.choices[0].message.content
        content = self.completion_text(content)

        usage = None
        if completion.usage is not None:
            usage = _parse_usage({
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens,
            })

        return AnalysisResponse(
            content=content,
            provider=self.provider,
            model=config.model,
            usage=usage,
        )


# Static dispatch table: provider -> adapter implementation
PROVIDER_ADAPTERS: dict[ProviderName, type[BaseProviderAdapter]] = {
    ProviderName.GROQ: ChatCompletionsAdapter,
    ProviderName.OPENAI: ChatCompletionsAdapter,
    ProviderName.TOGETHER: ChatCompletionsAdapter,
    ProviderName.MISTRAL: ChatCompletionsAdapter,
    ProviderName.OPENROUTER: OpenRouterAdapter,
    ProviderName.HUGGINGFACE: HuggingFaceAdapter,
    ProviderName.COHERE: CohereAdapter,
    ProviderName.ZAI: ZAIAdapter,
}


def build_adapters(client: httpx.AsyncClient) -> dict[ProviderName, BaseProviderAdapter]:
    """Instantiate every registered adapter around a shared HTTP client."""
    return {
        provider: adapter_cls(provider, client)
        for provider, adapter_cls in PROVIDER_ADAPTERS.items()
    }
