"""
LogAllot - Multi-Agent Analyzer
===============================

Runs several analyst personas against the same log concurrently.

Each persona is the same dispatch with a different framing, sampling
temperature and fixed confidence prior. The fan-out has settle-all
semantics: a persona that fails is reported with confidence 0 instead of
failing its siblings.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Optional

from ai_analysis.api.schemas import AgentResponse, AnalysisRequest, ContextualAnalysis
from ai_analysis.core.dispatcher import ResilientDispatcher
from shared.utils.logging import get_logger

logger = get_logger(__name__)

INTERMITTENCY_GUIDANCE = """Additionally, determine if this is an intermittent issue that could be resolved by re-provisioning the cluster:
- If the issue appears to be intermittent (e.g., timeout errors, connection issues, resource constraints that resolve themselves), include a recommendation for cluster re-provisioning
- If the issue appears to be a persistent bug or code issue, indicate that this will need a fix"""


@dataclass(frozen=True)
class Persona:
    """An analyst role used for one parallel AI call."""
    name: str
    framing: str
    structure: str
    closing: str
    temperature: float
    max_tokens: int
    confidence: float

    def build_prompt(self, log_text: str, context: ContextualAnalysis) -> str:
        entities = json.dumps(context.entities.model_dump(by_alias=True))
        return (
            f"{self.framing}\n\n"
            f"Log Content:\n{log_text}\n\n"
            f"Context:\n"
            f"- Tech Stack: {context.tech_stack}\n"
            f"- Environment: {context.environment}\n"
            f"- Key Entities: {entities}\n\n"
            f"{self.structure}\n\n"
            f"{INTERMITTENCY_GUIDANCE}\n\n"
            f"{self.closing}"
        )


PRIMARY = Persona(
    name="Primary",
    framing=(
        "Act as a senior DevOps engineer and provide a concise, witty root-cause "
        "analysis based on your real-time knowledge and current trends. "
        "Highlight any potential security vulnerabilities."
    ),
    structure=(
        "Provide your analysis in a clear, structured format with:\n"
        "1. Root Cause Summary\n"
        "2. Key Issues Identified\n"
        "3. Security Implications\n"
        "4. Recommended Actions"
    ),
    closing="Keep it concise but comprehensive.",
    temperature=0.7,
    max_tokens=800,
    confidence=0.85,
)

METHODICAL = Persona(
    name="Methodical",
    framing=(
        "Act as a methodical troubleshooter. Provide a detailed, step-by-step "
        "root-cause analysis, a list of probable causes, and a plan for "
        "resolution. Use structured markdown."
    ),
    structure=(
        "Structure your response with:\n"
        "## Root Cause Analysis\n"
        "### Step-by-Step Analysis\n"
        "### Probable Causes\n"
        "### Resolution Plan"
    ),
    closing="Be thorough and methodical in your approach.",
    temperature=0.3,
    max_tokens=1000,
    confidence=0.75,
)

DEVELOPER = Persona(
    name="Developer",
    framing=(
        "Act as an experienced software developer. Provide a summary of the "
        "error, a list of possible fixes, and well-commented code snippets to "
        "demonstrate a solution."
    ),
    structure=(
        "Structure your response with:\n"
        "## Error Summary\n"
        "## Possible Fixes\n"
        "### Fix 1: [Description]\n"
        "### Fix 2: [Description]\n"
        "## Code Solutions\n"
        "```[language]\n"
        "// Well-commented code solution\n"
        "```"
    ),
    closing="Focus on practical, implementable solutions.",
    temperature=0.5,
    max_tokens=1000,
    confidence=0.70,
)

# Order matters: it is the order of results and the selector's tie-break
PERSONAS: tuple[Persona, ...] = (PRIMARY, METHODICAL, DEVELOPER)


def failed_response(persona: Persona) -> AgentResponse:
    return AgentResponse(
        agent=persona.name,
        response=f"{persona.name} agent analysis failed",
        confidence=0.0,
    )


class MultiAgentAnalyzer:
    """
    Fans a log out to every persona and collects the results.

    Example:
        analyzer = MultiAgentAnalyzer(dispatcher, persona_providers={"Developer": "openai"})
        responses = await analyzer.run_personas(log_text, context)
    """

    def __init__(
        self,
        dispatcher: ResilientDispatcher,
        persona_providers: Optional[dict[str, str]] = None,
        personas: tuple[Persona, ...] = PERSONAS
    ):
        self._dispatcher = dispatcher
        self._persona_providers = persona_providers or {}
        self.personas = personas

    async def run_persona(
        self,
        persona: Persona,
        log_text: str,
        context: ContextualAnalysis,
        provider: Optional[str] = None
    ) -> AgentResponse:
        """
        Run one persona. Raises whatever the dispatcher raises.

        The provider is the explicit override if given, else the persona's
        binding, else the active provider.
        """
        request = AnalysisRequest(
            prompt=persona.build_prompt(log_text, context),
            temperature=persona.temperature,
            max_tokens=persona.max_tokens,
        )

        response = await self._dispatcher.dispatch(
            request,
            provider=provider or self._persona_providers.get(persona.name),
            operation=f"persona:{persona.name}"
        )

        return AgentResponse(
            agent=persona.name,
            response=response.content,
            confidence=persona.confidence,
        )

    async def run_personas(
        self,
        log_text: str,
        context: ContextualAnalysis,
        provider: Optional[str] = None
    ) -> list[AgentResponse]:
        """
        Run all personas concurrently.

        Always returns one response per persona, in persona order. Failed
        personas come back with confidence 0.
        """
        results = await asyncio.gather(
            *(self.run_persona(p, log_text, context, provider) for p in self.personas),
            return_exceptions=True
        )

        responses = []
        for persona, result in zip(self.personas, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error(
                    f"{persona.name} agent analysis failed",
                    extra={"agent": persona.name, "error": str(result)}
                )
                responses.append(failed_response(persona))
            else:
                responses.append(result)

        succeeded = sum(1 for r in responses if r.succeeded)
        logger.info(
            "Persona analysis complete",
            extra={"succeeded": succeeded, "failed": len(responses) - succeeded}
        )
        return responses
