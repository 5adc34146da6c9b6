"""
LogAllot - Resilient Dispatcher
===============================

Single entry point for every AI call made by the analysis engine.

For each call the dispatcher:
1. Resolves the provider configuration (fresh, per call)
2. Refuses to go to the network without an API key
3. Routes to the provider's adapter under bounded exponential-backoff retry
4. Emits a redacted ProviderFailureAlert once retries are exhausted, then
   re-raises the original ProviderError
"""

from typing import Optional

import httpx

from ai_analysis.api.schemas import (
    AnalysisRequest,
    AnalysisResponse,
    ConnectionTestResult,
    ProviderConfig,
)
from ai_analysis.core.alerts import AlertSink, LoggingAlertSink
from ai_analysis.core.config_resolver import ConfigResolver
from ai_analysis.core.errors import (
    ConfigurationError,
    ProviderError,
    UnsupportedProviderError,
)
from ai_analysis.core.providers import BaseProviderAdapter, build_adapters
from shared.constants import ProviderName
from shared.schemas.events import ProviderFailureAlert
from shared.utils.logging import get_correlation_id, get_logger
from shared.utils.redaction import redact_excerpt, redact_secrets
from shared.utils.retry import RetryConfig, retry_async

logger = get_logger(__name__)

CONNECTION_TEST_PROMPT = (
    "Hello, this is a test message. Please respond with 'Connection successful'."
)


class ResilientDispatcher:
    """
    Resolve, route, retry and alert.

    Example:
        dispatcher = ResilientDispatcher(ConfigResolver())
        response = await dispatcher.dispatch(
            AnalysisRequest(prompt="Summarize this log", max_tokens=200),
            operation="summary",
        )
    """

    def __init__(
        self,
        resolver: ConfigResolver,
        client: Optional[httpx.AsyncClient] = None,
        alert_sink: Optional[AlertSink] = None,
        retry_config: Optional[RetryConfig] = None,
        adapters: Optional[dict[ProviderName, BaseProviderAdapter]] = None
    ):
        self._resolver = resolver
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self._alert_sink = alert_sink or LoggingAlertSink()
        self._retry_config = retry_config or RetryConfig(
            retryable_exceptions=(ProviderError,)
        )
        self._adapters = adapters if adapters is not None else build_adapters(self._client)

    @property
    def resolver(self) -> ConfigResolver:
        return self._resolver

    async def dispatch(
        self,
        request: AnalysisRequest,
        provider: Optional[str] = None,
        operation: str = "analyze"
    ) -> AnalysisResponse:
        """
        Execute one logical AI call.

        Args:
            request: Vendor-neutral request
            provider: Provider override; the active provider when None
            operation: Logical operation name, used in logs and alerts

        Raises:
            UnsupportedProviderError: Unknown provider or no adapter for it
            ConfigurationError: No API key; raised before any network attempt
            ProviderError: Every attempt failed
        """
        config = await self._resolver.resolve(provider)

        if not config.api_key:
            raise ConfigurationError(config.provider.value)

        adapter = self._adapters.get(config.provider)
        if adapter is None:
            raise UnsupportedProviderError(config.provider.value)

        attempts = 0

        async def attempt() -> AnalysisResponse:
            nonlocal attempts
            attempts += 1
            return await adapter.call(request, config)

        logger.debug(
            f"Dispatching {operation} to {config.provider.value}",
            extra={"operation": operation, "provider": config.provider.value, "model": config.model}
        )

        try:
            response = await retry_async(attempt, config=self._retry_config)
        except ProviderError as e:
            await self._alert_failure(config, request, operation, e, attempts)
            raise

        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                "provider": config.provider.value,
                "attempts": attempts,
            }
        )
        return response

    async def test_connection(self, provider: Optional[str] = None) -> ConnectionTestResult:
        """
        Send a short fixed prompt to check credentials and reachability.

        Never raises; failures are reported in the result.
        """
        request = AnalysisRequest(prompt=CONNECTION_TEST_PROMPT, max_tokens=50)

        try:
            response = await self.dispatch(request, provider=provider, operation="connection_test")
        except Exception as e:
            logger.warning(
                "Provider connection test failed",
                extra={"provider": provider, "error": str(e)}
            )
            return ConnectionTestResult(success=False, message=str(e))

        return ConnectionTestResult(
            success=True,
            message=f"Connection successful. Response: {response.content[:100]}"
        )

    async def _alert_failure(
        self,
        config: ProviderConfig,
        request: AnalysisRequest,
        operation: str,
        error: ProviderError,
        attempts: int
    ) -> None:
        alert = ProviderFailureAlert(
            correlation_id=get_correlation_id(),
            provider=config.provider.value,
            operation=operation,
            prompt_excerpt=redact_excerpt(request.user_content()),
            error=redact_secrets(str(error)),
            retries=attempts,
        )

        try:
            await self._alert_sink.send_system_alert(alert.to_message())
        except Exception as e:
            logger.error(
                "Failed to deliver provider failure alert",
                extra={"request_id": alert.request_id, "error": str(e)}
            )

    async def close(self) -> None:
        """Close the shared HTTP client if this dispatcher created it."""
        if self._owns_client:
            await self._client.aclose()
