"""
LogAllot - Shared Schemas
=========================

Pydantic models for events emitted to external alert sinks.
"""

from shared.schemas.events import (
    BaseEvent,
    ProviderFailureAlert,
    AnalysisFailedAlert,
)

__all__ = [
    "BaseEvent",
    "ProviderFailureAlert",
    "AnalysisFailedAlert",
]
