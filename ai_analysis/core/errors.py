"""
LogAllot - Analysis Errors
==========================

Typed failures raised inside the analysis engine.

Only ProviderError is transient; the dispatcher retries it. The others are
either setup problems (fatal, never retried) or recovered locally.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for all analysis engine errors."""
    pass


class ConfigurationError(AnalysisError):
    """A provider has no API key configured. Raised before any network attempt."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"API key not configured for provider: {provider}")


class UnsupportedProviderError(AnalysisError):
    """The provider name is not one of the supported vendors."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported AI provider: {provider}")


class ProviderError(AnalysisError):
    """
    A vendor call failed: non-success HTTP status, transport error,
    timeout or a malformed payload.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None
    ):
        self.provider = provider
        self.status_code = status_code
        self.detail = message
        prefix = f"{provider} API error"
        if status_code is not None:
            prefix = f"{prefix} ({status_code})"
        super().__init__(f"{prefix}: {message}")


class AllAgentsFailedError(AnalysisError):
    """Every persona failed, so there is nothing to select from."""

    def __init__(self, message: str = "All agents failed to analyze the log"):
        super().__init__(message)


class ParseError(AnalysisError):
    """The AI returned something that is not the JSON object that was asked for."""
    pass
