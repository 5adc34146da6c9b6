"""
LogAllot - Contextual Extractor
===============================

First pipeline step: ask the AI for the tech stack, deployment environment
and notable entities of a raw log. The result only enriches later prompts,
so every failure degrades to ``ContextualAnalysis.unknown()``.
"""

from typing import Optional

from ai_analysis.api.schemas import AnalysisRequest, ContextualAnalysis
from ai_analysis.core.dispatcher import ResilientDispatcher
from ai_analysis.core.parsing import parse_json_object
from shared.utils.logging import get_logger

logger = get_logger(__name__)

CONTEXT_PROMPT_TEMPLATE = """Analyze the following log content and extract key information:

Log Content:
{log_text}

Please identify and return a JSON object with:
1. techStack: The main technology stack (e.g., Python, Java, Node.js, Go, etc.)
2. environment: The deployment environment (e.g., Kubernetes, AWS, Docker, bare metal, etc.)
3. entities: {{
    timestamps: array of timestamp strings found,
    serviceNames: array of service/application names,
    errorCodes: array of error codes,
    ipAddresses: array of IP addresses
  }}

Return only valid JSON."""


class ContextExtractor:
    """Extracts ContextualAnalysis from a raw log with one AI call."""

    TEMPERATURE = 0.1
    MAX_TOKENS = 500

    def __init__(self, dispatcher: ResilientDispatcher):
        self._dispatcher = dispatcher

    async def extract(self, log_text: str, provider: Optional[str] = None) -> ContextualAnalysis:
        """
        Detect stack, environment and entities.

        Never raises: dispatch, parse and validation failures all yield the
        "Unknown" default.
        """
        request = AnalysisRequest(
            prompt=CONTEXT_PROMPT_TEMPLATE.format(log_text=log_text),
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )

        try:
            response = await self._dispatcher.dispatch(
                request,
                provider=provider,
                operation="context"
            )
            context = ContextualAnalysis.model_validate(parse_json_object(response.content))
        except Exception as e:
            logger.warning(
                "Contextual extraction failed, using defaults",
                extra={"error": str(e)}
            )
            return ContextualAnalysis.unknown()

        logger.info(
            "Context extracted",
            extra={"tech_stack": context.tech_stack, "environment": context.environment}
        )
        return context
