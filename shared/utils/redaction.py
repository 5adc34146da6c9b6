"""
LogAllot - Redaction Utilities
==============================

Masks likely secrets before text leaves the process boundary
(alerts, webhooks, structured logs).

Usage:
    from shared.utils.redaction import redact_secrets, redact_excerpt

    safe = redact_excerpt(prompt)   # masked and capped at 200 characters
"""

import re
from typing import Optional

from shared.constants import Redaction

_TOKEN_RE = re.compile(Redaction.TOKEN_PATTERN)


def redact_secrets(text: Optional[str]) -> str:
    """
    Replace every long opaque token with the redaction marker.

    Any run of 20 or more alphanumeric, underscore or dash characters is
    treated as a potential API key, session token or credential.
    """
    if not text:
        return ""
    return _TOKEN_RE.sub(Redaction.MARKER, text)


def truncate(text: str, max_chars: int = Redaction.EXCERPT_MAX_CHARS) -> str:
    """Cap text at max_chars, appending the truncation marker when cut."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + Redaction.TRUNCATION_MARKER


def redact_excerpt(text: Optional[str], max_chars: int = Redaction.EXCERPT_MAX_CHARS) -> str:
    """
    Redact then truncate.

    Redaction runs first so a token straddling the cut point can never
    leak a partial prefix.
    """
    return truncate(redact_secrets(text), max_chars)
