"""
LogAllot - AI Analysis Service Configuration
============================================

Centralized configuration using Pydantic Settings.

Provider credentials are deliberately NOT settings here: they are resolved
per call by the ConfigResolver (settings store, remote config, environment).
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.constants import DEFAULT_PROVIDER, RetryDefaults


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and ``.env``.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    # Service identification
    service_name: str = Field(
        default="ai-analysis",
        description="Name of this service"
    )
    service_version: str = Field(
        default="0.1.0",
        description="Semantic version"
    )

    # Server configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8001)
    debug: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    # Provider selection
    default_provider: str = Field(
        default=DEFAULT_PROVIDER.value,
        description="Provider used when neither the caller nor any config tier names one"
    )
    persona_providers: dict[str, str] = Field(
        default_factory=dict,
        description="Optional persona -> provider bindings, e.g. {\"Developer\": \"openai\"}"
    )

    # Retry behaviour for vendor calls
    ai_max_retries: int = Field(
        default=RetryDefaults.MAX_ATTEMPTS,
        ge=1,
        description="Maximum attempts per vendor call"
    )
    ai_retry_base_delay_ms: int = Field(
        default=int(RetryDefaults.BASE_DELAY_SECONDS * 1000),
        ge=0,
        description="Delay after the first failed attempt; doubles afterwards"
    )

    # Remote configuration service (tier 2)
    edge_config: str = Field(
        default="",
        description="Remote config connection string, e.g. https://edge-config.vercel.com/<id>?token=<token>"
    )
    edge_config_timeout_seconds: float = Field(default=5.0)

    # Alert sink
    alert_webhook_url: str = Field(
        default="",
        description="Webhook receiving system alerts; alerts are only logged when empty"
    )
    alert_timeout_seconds: float = Field(default=10.0)

    # OpenRouter attribution headers
    openrouter_referer: str = Field(default="https://your-app.com")
    openrouter_title: str = Field(default="LogAllot")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
