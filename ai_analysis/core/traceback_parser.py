"""
LogAllot - Traceback Parser
===========================

Heuristic parser for Python tracebacks embedded in free-text logs.
"""

import re
from typing import Optional

from ai_analysis.api.schemas import TracebackFrame, TracebackInfo

TRACEBACK_HEADER = "Traceback (most recent call last):"

FRAME_RE = re.compile(r'^File\s+"([^"]+)",\s+line\s+(\d+),\s+in\s+(.*)$')
EXCEPTION_RE = re.compile(r"^(\w+(?:\.\w+)*):\s*(.*)$")


def parse_traceback(log_text: str) -> Optional[TracebackInfo]:
    """
    Extract frames and the final exception from the first traceback in a log.

    Returns None when the log has no traceback header.

    Example:
        >>> info = parse_traceback(log_text)
        >>> info.frames[0].file, info.frames[0].line, info.exception
        ('/app/main.py', 10, 'ValueError')
    """
    start = log_text.find(TRACEBACK_HEADER)
    if start == -1:
        return None

    raw = log_text[start:]
    lines = [line.strip() for line in raw.splitlines()]
    lines = [line for line in lines if line]

    frames = []
    for i, line in enumerate(lines):
        match = FRAME_RE.match(line)
        if not match:
            continue

        code = lines[i + 1] if i + 1 < len(lines) else ""
        if FRAME_RE.match(code):
            code = ""

        frames.append(TracebackFrame(
            file=match.group(1),
            line=int(match.group(2)),
            function=match.group(3),
            code=code,
        ))

    exception = message = None
    exception_match = EXCEPTION_RE.match(lines[-1])
    if exception_match:
        exception, message = exception_match.group(1), exception_match.group(2)

    return TracebackInfo(
        raw=raw,
        frames=frames,
        exception=exception,
        message=message,
    )
