"""
LogAllot - Report Builder
=========================

Renders the final Markdown report from the raw log, the selected AI
analysis and the issue classification. Pure string work, no AI calls:
the report shape is fixed so downstream consumers can rely on its headers.
"""

from typing import Optional

from ai_analysis.api.schemas import ContextualAnalysis, IssueClassification
from ai_analysis.core.traceback_parser import parse_traceback

KNOWN_ERROR_TYPES = (
    "ValueError",
    "TypeError",
    "KeyError",
    "IndexError",
    "AttributeError",
    "RuntimeError",
)

UNKNOWN_ERROR = "UnknownError"
UNKNOWN_LOCATION = "Unknown location"

ROOT_CAUSES = {
    "ValueError": "A value with an unexpected type or format was provided to a function or constructor.",
    "TypeError": "An operation was applied to an object of an inappropriate type.",
    "KeyError": "A required dictionary key was missing when attempting to access it directly.",
    "IndexError": "A sequence was accessed with an out-of-range index.",
    "AttributeError": "Code attempted to access an attribute or method that does not exist on the object.",
    "RuntimeError": "A runtime condition occurred that the code did not expect or handle.",
}

KNOWN_IMPACT = (
    "Likely causes a request failure or process crash if unhandled; "
    "may affect user requests or background jobs."
)
GENERIC_IMPACT = "May lead to failed requests or degraded functionality; impact requires manual review."

ROOT_CAUSE_MAX_CHARS = 400


def guess_error_type(ai_text: str) -> Optional[str]:
    """First well-known exception name mentioned in the AI text."""
    for error_type in KNOWN_ERROR_TYPES:
        if error_type in ai_text:
            return error_type
    return None


def root_cause_for(error_type: str, ai_text: str) -> str:
    if error_type in ROOT_CAUSES:
        return ROOT_CAUSES[error_type]

    summary = " ".join(ai_text.split("\n")[:2])[:ROOT_CAUSE_MAX_CHARS]
    return summary or "Unable to determine root cause from logs."


def impact_for(error_type: str) -> str:
    return KNOWN_IMPACT if error_type in KNOWN_ERROR_TYPES else GENERIC_IMPACT


def try_except_snippet(error_type: str, code_line: Optional[str] = None) -> str:
    """A try/except wrapping the failing line, or a placeholder body."""
    body = code_line or "# original operation here"
    return (
        "try:\n"
        f"    {body}\n"
        f"except {error_type} as e:\n"
        "    import logging\n"
        f'    logging.exception("Handled {error_type}: %s", e)\n'
        "    # return or raise an appropriate error response\n"
    )


def build_report(
    log_text: str,
    ai_text: str,
    classification: IssueClassification,
    context: ContextualAnalysis
) -> str:
    """
    Build the structured Markdown analysis.

    Sections, in order:
        ### 1. Analysis           error type, root cause, location, impact
        ### 2. Proposed Solution  immediate fix snippet, preventive measures
        ### 3. Verification       local, staging, production checks

    ``classification`` and ``context`` are part of the signature for parity
    with the pipeline inputs but are not rendered.
    """
    traceback = parse_traceback(log_text)
    first_frame = traceback.frames[0] if traceback and traceback.frames else None

    error_type = (
        (traceback.exception if traceback else None)
        or guess_error_type(ai_text)
        or UNKNOWN_ERROR
    )
    location = f"{first_frame.file}:{first_frame.line}" if first_frame else UNKNOWN_LOCATION
    snippet = try_except_snippet(error_type, first_frame.code if first_frame else None)

    preventive = "\n".join([
        "- Add input validation (e.g., using Pydantic or explicit type checks)",
        "- Improve logging to include contextual fields (request_id, user_id, payload)",
        f"- Add alerts for repeated occurrences of {error_type}",
    ])

    sections = [
        "### 1. Analysis\n",
        f"**Error Type:** {error_type}\n",
        f"**Root Cause:** {root_cause_for(error_type, ai_text)}\n",
        f"**Location:** {location}\n",
        f"**Impact:** {impact_for(error_type)}\n",
        "\n### 2. Proposed Solution\n",
        "**Immediate Fix:**\n",
        "```python\n",
        snippet,
        "\n```\n",
        "**Preventive Measures:**\n",
        preventive + "\n",
        "\n### 3. Verification\n",
        "**Test Locally:**\n",
        "- Reproduce the issue with a minimal script or unit test.\n",
        "**Deploy to Staging:**\n",
        "- Deploy to staging and run end-to-end tests.\n",
        "**Monitor Production:**\n",
        "- Watch logs and alerts for recurrence; verify error rates drop.\n",
    ]
    return "\n".join(sections)
