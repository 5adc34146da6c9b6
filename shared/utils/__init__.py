"""
LogAllot - Shared Utilities Package
===================================

Common utility functions for logging, HTTP clients, retry logic and redaction.
"""

from shared.utils.logging import get_logger, setup_logging
from shared.utils.http_client import ServiceClient
from shared.utils.retry import retry_async, RetryConfig
from shared.utils.redaction import redact_secrets, redact_excerpt

__all__ = [
    "get_logger",
    "setup_logging",
    "ServiceClient",
    "retry_async",
    "RetryConfig",
    "redact_secrets",
    "redact_excerpt",
]
