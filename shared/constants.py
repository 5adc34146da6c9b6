"""
LogAllot - Shared Constants
===========================

Centralized constants used by the analysis service.
Most of these values can be overridden through settings or environment variables.
"""

from enum import Enum


class ProviderName(str, Enum):
    """LLM providers the analysis engine can dispatch to."""
    GROQ = "groq"
    OPENAI = "openai"
    HUGGINGFACE = "huggingface"
    OPENROUTER = "openrouter"
    TOGETHER = "together"
    MISTRAL = "mistral"
    COHERE = "cohere"
    ZAI = "z.ai"            # In-house vendor, reached through its SDK


DEFAULT_PROVIDER = ProviderName.GROQ

DEFAULT_MODELS = {
    ProviderName.GROQ: "llama-3.1-70b-versatile",
    ProviderName.OPENAI: "gpt-4o-mini",
    ProviderName.HUGGINGFACE: "microsoft/DialoGPT-medium",
    ProviderName.OPENROUTER: "meta-llama/llama-3.1-8b-instruct:free",
    ProviderName.TOGETHER: "meta-llama/Llama-3-8b-chat-hf",
    ProviderName.MISTRAL: "mistral-7b-instruct",
    ProviderName.COHERE: "command-light",
    ProviderName.ZAI: "gpt-4o-mini",
}

DEFAULT_BASE_URLS = {
    ProviderName.GROQ: "https://api.groq.com/openai/v1",
    ProviderName.OPENAI: "https://api.openai.com/v1",
    ProviderName.HUGGINGFACE: "https://api-inference.huggingface.co/models",
    ProviderName.OPENROUTER: "https://openrouter.ai/api/v1",
    ProviderName.TOGETHER: "https://api.together.xyz/v1",
    ProviderName.MISTRAL: "https://api.mistral.ai/v1",
    ProviderName.COHERE: "https://api.cohere.ai/v1",
    ProviderName.ZAI: "https://api.z.ai",
}


class Defaults:
    """Fallback values used when no configuration tier supplies a field."""
    TEMPERATURE = 0.3
    MAX_TOKENS = 2000
    TIMEOUT_SECONDS = 30.0


class RetryDefaults:
    """Retry behaviour for vendor calls."""
    MAX_ATTEMPTS = 3
    BASE_DELAY_SECONDS = 0.3    # 300ms, doubled after every failed attempt


class Redaction:
    """Masking rules applied before data leaves the process."""
    TOKEN_PATTERN = r"[A-Za-z0-9_\-]{20,}"
    MARKER = "[REDACTED]"
    EXCERPT_MAX_CHARS = 200
    TRUNCATION_MARKER = "...[truncated]"


SYSTEM_INSTRUCTION = (
    "You are an expert software engineer analyzing error logs and system issues. "
    "Provide detailed technical analysis."
)

NO_RESPONSE_PLACEHOLDER = "No response from AI"

ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please try again with different log content."

UNKNOWN_LABEL = "Unknown"
