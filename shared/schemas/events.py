"""
LogAllot - Event Schemas
========================

Pydantic models for events the analysis service emits to its alert sink.
These schemas are the contract with whatever consumes system alerts
(push notifications, chat connectors, webhooks).

Every string field that can carry user or vendor text must be redacted
before an event is constructed; see ``shared.utils.redaction``.
"""

from datetime import datetime, timezone
from typing import Optional
import uuid

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class BaseEvent(BaseModel):
    """Base class for all alert events."""

    event_id: str = Field(
        default_factory=_new_id,
        description="Unique identifier for this event"
    )
    event_type: str = Field(
        ...,
        description="Discriminator for consumers"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event was generated"
    )
    correlation_id: Optional[str] = Field(
        None,
        description="Analysis or request ID the event belongs to"
    )
    source_service: str = Field(
        default="ai-analysis",
        description="Name of the service that generated this event"
    )

    def to_message(self) -> str:
        """Serialize to the JSON string handed to ``send_system_alert``."""
        return self.model_dump_json()


class ProviderFailureAlert(BaseEvent):
    """
    Emitted by the dispatcher after a vendor call exhausted its retries.

    Never contains the API key: ``prompt_excerpt`` and ``error`` are
    redacted and the excerpt is capped in length.
    """

    event_type: str = "provider_failure"
    request_id: str = Field(
        default_factory=_new_id,
        description="Random ID for this dispatch, for cross-referencing logs"
    )
    provider: str = Field(
        ...,
        description="Provider the call was routed to"
    )
    operation: str = Field(
        ...,
        description="Logical operation (context, persona:Primary, selector, ...)"
    )
    prompt_excerpt: str = Field(
        ...,
        description="Redacted, truncated prompt excerpt"
    )
    error: str = Field(
        ...,
        description="Redacted error message of the final attempt"
    )
    retries: int = Field(
        ...,
        ge=0,
        description="Number of failed attempts before giving up"
    )


class AnalysisFailedAlert(BaseEvent):
    """Emitted when the pipeline had to fall back to the failure result."""

    event_type: str = "analysis_failed"
    analysis_id: str = Field(
        ...,
        description="ID of the analysis that failed"
    )
    error: str = Field(
        ...,
        description="Redacted error message"
    )
