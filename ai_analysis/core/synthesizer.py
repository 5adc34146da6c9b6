"""
LogAllot - Response Selector
============================

Picks the single persona response the report is built from.
"""

from typing import Optional

from ai_analysis.api.schemas import AgentResponse, AnalysisRequest, ContextualAnalysis
from ai_analysis.core.dispatcher import ResilientDispatcher
from ai_analysis.core.errors import AllAgentsFailedError
from shared.utils.logging import get_logger

logger = get_logger(__name__)

SELECTOR_PROMPT_TEMPLATE = """You are a response selector agent. Compare the following analysis responses and select the best one based on:
1. Accuracy - How well does it address the actual error?
2. Clarity - How clear and understandable is the analysis?
3. Relevance - How relevant is it to the detected tech stack ({tech_stack}) and environment ({environment})?

Responses:
{responses}

Return only the name of the best agent ({names})."""


def match_agent(reply: str, candidates: list[AgentResponse]) -> Optional[AgentResponse]:
    """
    Case-insensitive substring match, in either direction, of a selector
    reply against candidate agent names.
    """
    wanted = reply.strip().lower()
    if not wanted:
        return None

    for candidate in candidates:
        name = candidate.agent.lower()
        if wanted in name or name in wanted:
            return candidate
    return None


class ResponseSelector:
    """Chooses among surviving persona responses."""

    TEMPERATURE = 0.2
    MAX_TOKENS = 50

    def __init__(self, dispatcher: ResilientDispatcher):
        self._dispatcher = dispatcher

    def build_prompt(self, survivors: list[AgentResponse], context: ContextualAnalysis) -> str:
        blocks = "\n---\n".join(
            f"Agent: {r.agent}\nConfidence: {r.confidence}\nResponse: {r.response}"
            for r in survivors
        )
        names = ", ".join(r.agent for r in survivors)
        return SELECTOR_PROMPT_TEMPLATE.format(
            tech_stack=context.tech_stack,
            environment=context.environment,
            responses=blocks,
            names=names,
        )

    async def select(
        self,
        responses: list[AgentResponse],
        context: ContextualAnalysis,
        provider: Optional[str] = None
    ) -> AgentResponse:
        """
        Select the best response.

        Survivors are responses with confidence > 0. A single survivor is
        returned without an AI call. With several, the AI is asked to choose;
        an unusable reply or a failed call falls back to the first survivor.

        Raises:
            AllAgentsFailedError: No persona succeeded
        """
        survivors = [r for r in responses if r.succeeded]

        if not survivors:
            raise AllAgentsFailedError()

        if len(survivors) == 1:
            return survivors[0]

        request = AnalysisRequest(
            prompt=self.build_prompt(survivors, context),
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )

        try:
            response = await self._dispatcher.dispatch(
                request,
                provider=provider,
                operation="selector"
            )
        except Exception as e:
            logger.warning(
                "Response selection failed, using first successful agent",
                extra={"error": str(e), "agent": survivors[0].agent}
            )
            return survivors[0]

        selected = match_agent(response.content, survivors) or survivors[0]

        logger.info(
            f"Selected {selected.agent} response",
            extra={"agent": selected.agent, "candidates": len(survivors)}
        )
        return selected
