"""
LogAllot - AI Analysis Schemas
==============================

Pydantic models for the analysis engine and its HTTP API.

Engine values (requests, responses, agent outputs, the final result) are
immutable once built. Models that cross a JSON boundary with the AI or the
UI use camelCase aliases while Python code uses snake_case names.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from shared.constants import ProviderName, UNKNOWN_LABEL


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# PROVIDER LAYER
# =============================================================================

class ProviderConfig(BaseModel):
    """
    Fully resolved configuration for one vendor call.

    Every field is always populated except ``api_key``, which may be empty.
    """

    model_config = ConfigDict(frozen=True)

    provider: ProviderName = Field(
        ...,
        description="Vendor the call is routed to"
    )
    api_key: str = Field(
        default="",
        repr=False,
        description="Bearer credential; empty means not configured"
    )
    model: str = Field(
        ...,
        description="Vendor model identifier"
    )
    base_url: str = Field(
        ...,
        description="Vendor API base URL, without trailing slash"
    )
    temperature: float = Field(
        ...,
        ge=0.0,
        le=2.0,
        description="Default sampling temperature"
    )
    max_tokens: int = Field(
        ...,
        gt=0,
        description="Default maximum output tokens"
    )
    timeout_seconds: float = Field(
        ...,
        gt=0,
        description="Per-call timeout"
    )


class AnalysisRequest(BaseModel):
    """Vendor-neutral completion request."""

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(
        ...,
        description="User prompt"
    )
    context: Optional[str] = Field(
        None,
        description="Optional context appended to the prompt"
    )
    temperature: Optional[float] = Field(
        None,
        ge=0.0,
        le=2.0,
        description="Overrides the provider default when set"
    )
    max_tokens: Optional[int] = Field(
        None,
        gt=0,
        description="Overrides the provider default when set"
    )

    def user_content(self) -> str:
        """Prompt with the optional context appended."""
        if self.context:
            return f"{self.prompt}\n\nContext: {self.context}"
        return self.prompt


class TokenUsage(BaseModel):
    """Token accounting reported by OpenAI-compatible vendors."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class AnalysisResponse(BaseModel):
    """Vendor-neutral completion result. Only built on success."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(
        ...,
        description="Completion text"
    )
    provider: ProviderName = Field(
        ...,
        description="Vendor that produced the completion"
    )
    model: str = Field(
        ...,
        description="Model that produced the completion"
    )
    usage: Optional[TokenUsage] = Field(
        None,
        description="Token usage, when the vendor reports it"
    )


class ConnectionTestResult(BaseModel):
    """Outcome of a provider connection test."""

    success: bool
    message: str


class ProviderStatus(BaseModel):
    """Configuration summary for one provider."""

    provider: ProviderName
    configured: bool = Field(
        ...,
        description="Whether an API key is available"
    )
    model: str
    base_url: str
    active: bool = Field(
        default=False,
        description="Whether this is the provider used when none is requested"
    )


# =============================================================================
# ANALYSIS PIPELINE
# =============================================================================

class ExtractedEntities(CamelModel):
    """Entities pulled out of a raw log."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    timestamps: list[str] = Field(default_factory=list)
    service_names: list[str] = Field(default_factory=list)
    error_codes: list[str] = Field(default_factory=list)
    ip_addresses: list[str] = Field(default_factory=list)

    @field_validator("timestamps", "service_names", "error_codes", "ip_addresses", mode="before")
    @classmethod
    def null_as_empty(cls, value):
        return [] if value is None else value


class ContextualAnalysis(CamelModel):
    """Tech stack, environment and entities detected in a log."""

    model_config = ConfigDict(frozen=True)

    tech_stack: str = Field(
        default=UNKNOWN_LABEL,
        description="Main technology stack (Python, Java, Node.js, ...)"
    )
    environment: str = Field(
        default=UNKNOWN_LABEL,
        description="Deployment environment (Kubernetes, AWS, Docker, ...)"
    )
    entities: ExtractedEntities = Field(default_factory=ExtractedEntities)

    @field_validator("tech_stack", "environment", mode="before")
    @classmethod
    def null_as_unknown(cls, value):
        # The model sometimes answers null for a field it could not detect
        return UNKNOWN_LABEL if value is None else value

    @field_validator("entities", mode="before")
    @classmethod
    def null_as_no_entities(cls, value):
        return ExtractedEntities() if value is None else value

    @classmethod
    def unknown(cls) -> "ContextualAnalysis":
        """Default used whenever extraction fails."""
        return cls()


class AgentResponse(BaseModel):
    """Output of a single persona."""

    model_config = ConfigDict(frozen=True)

    agent: str = Field(
        ...,
        description="Persona name"
    )
    response: str = Field(
        ...,
        description="Persona analysis text, or a failure note"
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Fixed persona prior; 0 marks a failed persona"
    )
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def succeeded(self) -> bool:
        return self.confidence > 0


class IssueClassification(CamelModel):
    """Whether the selected analysis describes a transient or a real defect."""

    model_config = ConfigDict(frozen=True, strict=True)

    is_intermittent: bool = False
    needs_fix: bool = True


class TracebackFrame(BaseModel):
    """One ``File "...", line N, in func`` frame."""

    model_config = ConfigDict(frozen=True)

    file: str
    line: int
    function: str
    code: str = ""


class TracebackInfo(BaseModel):
    """Heuristically parsed Python traceback."""

    model_config = ConfigDict(frozen=True)

    raw: str
    frames: list[TracebackFrame] = Field(default_factory=list)
    exception: Optional[str] = None
    message: Optional[str] = None


class FinalResult(CamelModel):
    """The externally visible, write-once analysis artifact."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        description="Analysis ID"
    )
    timestamp: datetime = Field(default_factory=utcnow)
    tech_stack: str = Field(default=UNKNOWN_LABEL)
    environment: str = Field(default=UNKNOWN_LABEL)
    analysis: str = Field(
        ...,
        description="Structured Markdown report"
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0
    )
    source: str = Field(
        ...,
        description="Persona whose response was selected, or System on failure"
    )
    is_intermittent: bool = False
    needs_fix: bool = True


# =============================================================================
# HTTP API
# =============================================================================

class AnalyzeLogRequest(CamelModel):
    """Body of ``POST /analyze-log``."""

    log_content: str = Field(
        ...,
        min_length=1,
        description="Raw log text to analyze"
    )
    provider: Optional[str] = Field(
        None,
        description="Provider override for every call of this analysis"
    )


class AIStatusResponse(BaseModel):
    """Body of ``GET /ai-status``."""

    active_provider: str
    providers: list[ProviderStatus]
    configured: int
    unconfigured: int
