"""
LogAllot - Log Analysis Pipeline
================================

Orchestrates one analysis end to end:

    raw log
      -> ContextExtractor      (stack, environment, entities)
      -> MultiAgentAnalyzer    (personas in parallel)
      -> ResponseSelector      (pick one response)
      -> IssueClassifier       (intermittent vs needs fix)
      -> build_report          (structured Markdown)
      -> FinalResult

The pipeline boundary never raises: any failure produces the fallback
FinalResult (source "System", confidence 0) and an AnalysisFailedAlert.
"""

import uuid
from typing import Optional

from ai_analysis.api.schemas import FinalResult
from ai_analysis.config import Settings, get_settings
from ai_analysis.core.agents import MultiAgentAnalyzer
from ai_analysis.core.alerts import AlertSink, LoggingAlertSink, WebhookAlertSink
from ai_analysis.core.config_resolver import ConfigResolver, EdgeConfigClient
from ai_analysis.core.context_extractor import ContextExtractor
from ai_analysis.core.dispatcher import ResilientDispatcher
from ai_analysis.core.errors import ProviderError
from ai_analysis.core.issue_classifier import IssueClassifier
from ai_analysis.core.report_builder import build_report
from ai_analysis.core.synthesizer import ResponseSelector
from shared.constants import ANALYSIS_FAILED_MESSAGE, UNKNOWN_LABEL
from shared.schemas.events import AnalysisFailedAlert
from shared.utils.logging import get_logger, set_correlation_id
from shared.utils.redaction import redact_secrets
from shared.utils.retry import RetryConfig

logger = get_logger(__name__)

# Singleton instance
_pipeline_instance: Optional["LogAnalysisPipeline"] = None

FAILURE_SOURCE = "System"


def failure_result(analysis_id: str) -> FinalResult:
    """FinalResult returned whenever the pipeline cannot complete."""
    return FinalResult(
        id=analysis_id,
        tech_stack=UNKNOWN_LABEL,
        environment=UNKNOWN_LABEL,
        analysis=ANALYSIS_FAILED_MESSAGE,
        confidence=0.0,
        source=FAILURE_SOURCE,
        is_intermittent=False,
        needs_fix=True,
    )


class LogAnalysisPipeline:
    """
    Multi-agent log analysis.

    Example:
        pipeline = LogAnalysisPipeline(dispatcher)
        result = await pipeline.analyze(log_text)
        print(result.source, result.confidence)
    """

    def __init__(
        self,
        dispatcher: ResilientDispatcher,
        alert_sink: Optional[AlertSink] = None,
        persona_providers: Optional[dict[str, str]] = None
    ):
        self.dispatcher = dispatcher
        self._alert_sink = alert_sink or LoggingAlertSink()

        self.extractor = ContextExtractor(dispatcher)
        self.analyzer = MultiAgentAnalyzer(dispatcher, persona_providers=persona_providers)
        self.selector = ResponseSelector(dispatcher)
        self.classifier = IssueClassifier(dispatcher)

    async def analyze(
        self,
        log_text: str,
        analysis_id: Optional[str] = None,
        provider: Optional[str] = None
    ) -> FinalResult:
        """
        Analyze a raw log.

        Args:
            log_text: Free-text log, possibly containing a Python traceback
            analysis_id: ID for the result; generated when omitted
            provider: Provider override applied to every AI call

        Returns:
            FinalResult; the fallback result if anything went wrong
        """
        analysis_id = analysis_id or str(uuid.uuid4())
        set_correlation_id(analysis_id)

        logger.info(
            "Starting log analysis",
            extra={"analysis_id": analysis_id, "log_chars": len(log_text), "provider": provider}
        )

        try:
            context = await self.extractor.extract(log_text, provider=provider)
            responses = await self.analyzer.run_personas(log_text, context, provider=provider)
            selected = await self.selector.select(responses, context, provider=provider)
            classification = await self.classifier.classify(selected.response, provider=provider)
            report = build_report(log_text, selected.response, classification, context)
        except Exception as e:
            logger.error(
                f"AI analysis failed: {e}",
                extra={"analysis_id": analysis_id, "error": str(e)}
            )
            await self._alert_failure(analysis_id, e)
            return failure_result(analysis_id)

        result = FinalResult(
            id=analysis_id,
            tech_stack=context.tech_stack,
            environment=context.environment,
            analysis=report,
            confidence=selected.confidence,
            source=selected.agent,
            is_intermittent=classification.is_intermittent,
            needs_fix=classification.needs_fix,
        )

        logger.info(
            "Analysis completed",
            extra={
                "analysis_id": analysis_id,
                "source": result.source,
                "confidence": result.confidence,
                "tech_stack": result.tech_stack,
                "is_intermittent": result.is_intermittent,
                "needs_fix": result.needs_fix,
            }
        )
        return result

    async def _alert_failure(self, analysis_id: str, error: Exception) -> None:
        alert = AnalysisFailedAlert(
            correlation_id=analysis_id,
            analysis_id=analysis_id,
            error=redact_secrets(str(error)),
        )
        try:
            await self._alert_sink.send_system_alert(alert.to_message())
        except Exception as e:
            logger.error(
                "Failed to deliver analysis failure alert",
                extra={"analysis_id": analysis_id, "error": str(e)}
            )

    async def close(self) -> None:
        await self.dispatcher.close()
        await self.dispatcher.resolver.close()
        close = getattr(self._alert_sink, "close", None)
        if close is not None:
            await close()


def create_analysis_pipeline(settings: Settings) -> LogAnalysisPipeline:
    """Wire a pipeline from service settings."""
    remote_config = None
    if settings.edge_config:
        remote_config = EdgeConfigClient(
            settings.edge_config,
            timeout_seconds=settings.edge_config_timeout_seconds
        )

    resolver = ConfigResolver(
        remote_config=remote_config,
        default_provider=settings.default_provider,
    )

    alert_sink: AlertSink
    if settings.alert_webhook_url:
        alert_sink = WebhookAlertSink(
            settings.alert_webhook_url,
            timeout_seconds=settings.alert_timeout_seconds
        )
    else:
        alert_sink = LoggingAlertSink()

    retry_config = RetryConfig(
        max_attempts=settings.ai_max_retries,
        base_delay=settings.ai_retry_base_delay_ms / 1000,
        retryable_exceptions=(ProviderError,),
    )

    dispatcher = ResilientDispatcher(
        resolver,
        alert_sink=alert_sink,
        retry_config=retry_config,
    )

    return LogAnalysisPipeline(
        dispatcher,
        alert_sink=alert_sink,
        persona_providers=settings.persona_providers,
    )


def get_analysis_pipeline() -> LogAnalysisPipeline:
    """
    Get the singleton pipeline instance.

    Built from the service settings on first use.
    """
    global _pipeline_instance

    if _pipeline_instance is None:
        _pipeline_instance = create_analysis_pipeline(get_settings())

    return _pipeline_instance


async def shutdown_analysis_pipeline() -> None:
    """Close the singleton pipeline's connections."""
    global _pipeline_instance

    if _pipeline_instance is not None:
        await _pipeline_instance.close()
        _pipeline_instance = None
