"""
LogAllot - Shared Test Fixtures
===============================
"""

from typing import Callable, Optional, Union

import pytest

from ai_analysis.api.schemas import AnalysisRequest, AnalysisResponse
from ai_analysis.core.errors import ProviderError
from shared.constants import ProviderName
from shared.utils.logging import set_correlation_id

ONE_FRAME_TRACEBACK = """2024-01-15 10:30:00 ERROR worker crashed
Traceback (most recent call last):
  File "/app/worker.py", line 47, in do_work
    value = int(payload['count'])
ValueError: invalid literal for int() with base 10: 'abc'
"""

TWO_FRAME_TRACEBACK = (
    "Traceback (most recent call last):\n"
    '  File "/app/main.py", line 10, in <module>\n'
    "    result = do_work(data)\n"
    '  File "/app/worker.py", line 47, in do_work\n'
    "    value = int(payload['count'])\n"
    "ValueError: invalid literal for int() with base 10: 'abc'"
)

Scripted = Union[str, Exception, Callable[[AnalysisRequest], str]]


class ScriptedDispatcher:
    """
    Stand-in for ResilientDispatcher answering by operation name.

    ``script`` maps an operation (``context``, ``persona:Primary``,
    ``selector``, ``classifier``) to a reply string, an exception to raise
    or a callable producing the reply. Unscripted operations raise
    ProviderError.
    """

    def __init__(self, script: Optional[dict[str, Scripted]] = None):
        self.script = dict(script or {})
        self.calls: list[tuple[str, Optional[str], AnalysisRequest]] = []

    async def dispatch(
        self,
        request: AnalysisRequest,
        provider: Optional[str] = None,
        operation: str = "analyze"
    ) -> AnalysisResponse:
        self.calls.append((operation, provider, request))

        outcome = self.script.get(operation)
        if outcome is None:
            raise ProviderError("groq", f"no scripted reply for {operation}")
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            outcome = outcome(request)

        return AnalysisResponse(
            content=outcome,
            provider=ProviderName(provider or "groq"),
            model="test-model",
        )

    def operations(self) -> list[str]:
        return [operation for operation, _, _ in self.calls]


@pytest.fixture(autouse=True)
def reset_correlation_id():
    """Keep correlation IDs from leaking between tests."""
    set_correlation_id(None)
    yield
    set_correlation_id(None)


@pytest.fixture
def scripted_dispatcher():
    return ScriptedDispatcher()
