"""
LogAllot - Issue Classifier
===========================

Decides whether the selected analysis describes a transient condition
(retry / re-provision) or a defect that needs a code fix.
"""

from typing import Optional

from ai_analysis.api.schemas import AnalysisRequest, IssueClassification
from ai_analysis.core.dispatcher import ResilientDispatcher
from ai_analysis.core.parsing import parse_json_object
from shared.utils.logging import get_logger

logger = get_logger(__name__)

INTERMITTENT_KEYWORDS = (
    "timeout", "connection", "resource constraint", "transient",
    "temporary", "intermittent", "sporadic", "occasional",
)

NEEDS_FIX_KEYWORDS = (
    "bug", "code issue", "implementation", "logic error",
    "syntax error", "permanent fix",
)

CLASSIFIER_PROMPT_TEMPLATE = """Analyze the following error analysis and determine if the issue is intermittent or requires a fix:

Analysis Response:
{analysis}

Based on this analysis, determine:
1. Is this an intermittent issue? (Look for keywords like: {intermittent})
2. Does this issue need a code fix? (Look for keywords like: {needs_fix})

Return a JSON object with:
{{
  "isIntermittent": true/false,
  "needsFix": true/false,
  "reasoning": "Brief explanation of the decision"
}}

Return only valid JSON."""


class IssueClassifier:
    """One AI call turning an analysis into an IssueClassification."""

    TEMPERATURE = 0.1
    MAX_TOKENS = 200

    def __init__(self, dispatcher: ResilientDispatcher):
        self._dispatcher = dispatcher

    async def classify(self, selected_text: str, provider: Optional[str] = None) -> IssueClassification:
        """
        Classify the selected analysis.

        Never raises. Dispatch errors, unparseable replies and non-boolean
        fields all yield the default (not intermittent, needs a fix).
        """
        request = AnalysisRequest(
            prompt=CLASSIFIER_PROMPT_TEMPLATE.format(
                analysis=selected_text,
                intermittent=", ".join(INTERMITTENT_KEYWORDS),
                needs_fix=", ".join(NEEDS_FIX_KEYWORDS),
            ),
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )

        try:
            response = await self._dispatcher.dispatch(
                request,
                provider=provider,
                operation="classifier"
            )
            data = parse_json_object(response.content)
            # strict model: "true" or 1 are rejected, not coerced
            classification = IssueClassification.model_validate(data)
        except Exception as e:
            logger.warning(
                "Issue classification failed, assuming a fix is needed",
                extra={"error": str(e)}
            )
            return IssueClassification()

        logger.info(
            "Issue classified",
            extra={
                "is_intermittent": classification.is_intermittent,
                "needs_fix": classification.needs_fix,
                "reasoning": data.get("reasoning"),
            }
        )
        return classification
