"""
LogAllot - AI Reply Parsing
===========================

Helpers for turning model replies into JSON objects.
"""

import json
import re
from typing import Any

from ai_analysis.core.errors import ParseError

# Models often wrap JSON in a ```json fenced block despite being told not to
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def parse_json_object(text: str) -> dict[str, Any]:
    """
    Parse a model reply that should contain a single JSON object.

    Accepts the bare object, the object inside a fenced code block, or the
    outermost ``{...}`` span of a reply with surrounding prose.

    Raises:
        ParseError: No JSON object could be decoded
    """
    if not text or not text.strip():
        raise ParseError("Empty reply where JSON was expected")

    candidates = [text.strip()]

    fenced = _FENCE_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1))

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value

    raise ParseError(f"Reply is not a JSON object: {text[:80]!r}")
