"""
LogAllot - AI Analysis API Routes
=================================

FastAPI endpoints for log analysis and provider diagnostics.
"""

from fastapi import APIRouter, Depends, HTTPException

from ai_analysis.api.schemas import (
    AIStatusResponse,
    AnalyzeLogRequest,
    ConnectionTestResult,
    FinalResult,
)
from ai_analysis.core.config_resolver import parse_provider
from ai_analysis.core.errors import UnsupportedProviderError
from ai_analysis.core.pipeline import LogAnalysisPipeline, get_analysis_pipeline
from shared.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["ai-analysis"])


def _validate_provider(provider: str) -> str:
    try:
        return parse_provider(provider).value
    except UnsupportedProviderError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# ANALYSIS ENDPOINTS
# =============================================================================

@router.post("/analyze-log", response_model=FinalResult)
async def analyze_log(
    request: AnalyzeLogRequest,
    pipeline: LogAnalysisPipeline = Depends(get_analysis_pipeline)
):
    """
    Analyze a raw log with the multi-agent pipeline.

    Always answers 200 with a FinalResult; a failed analysis is reported
    through ``source == "System"`` and ``confidence == 0``.
    """
    provider = _validate_provider(request.provider) if request.provider else None

    result = await pipeline.analyze(request.log_content, provider=provider)

    logger.info(
        "Log analysis served",
        extra={"analysis_id": result.id, "source": result.source}
    )
    return result


# =============================================================================
# PROVIDER ENDPOINTS
# =============================================================================

@router.get("/ai-status", response_model=AIStatusResponse)
async def ai_status(
    pipeline: LogAnalysisPipeline = Depends(get_analysis_pipeline)
):
    """Configuration summary for every supported provider."""
    statuses = await pipeline.dispatcher.resolver.provider_status()

    active = next((s.provider.value for s in statuses if s.active), "")
    configured = sum(1 for s in statuses if s.configured)

    return AIStatusResponse(
        active_provider=active,
        providers=statuses,
        configured=configured,
        unconfigured=len(statuses) - configured,
    )


@router.post("/providers/{provider}/test", response_model=ConnectionTestResult)
async def test_provider(
    provider: str,
    pipeline: LogAnalysisPipeline = Depends(get_analysis_pipeline)
):
    """Send a short test prompt through the given provider."""
    name = _validate_provider(provider)

    result = await pipeline.dispatcher.test_connection(name)

    logger.info(
        f"Connection test for {name}: {'ok' if result.success else 'failed'}",
        extra={"provider": name, "success": result.success}
    )
    return result
