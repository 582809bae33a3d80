"""Cleanup of tool and model output before it lands in a task error."""

from __future__ import annotations

import re

DEFAULT_DIAGNOSTICS_CHARS = 2_000

# Colour codes from toolchains that detect a terminal.
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")

_SECRET_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)\b(bearer|token)\s+[a-z0-9._\-]{8,}"), r"\1 [redacted-token]"),
    (re.compile(r"\b(sk|ghp|gho|npm)[-_][A-Za-z0-9\-_]{8,}"), "[redacted-token]"),
    (
        re.compile(
            r"(?i)\b([a-z0-9_]*(?:api_key|apikey|token|secret|password|passwd))"
            r"(\s*[:=]\s*)['\"]?[^'\"\s]+['\"]?",
        ),
        r"\1\2[redacted]",
    ),
    (re.compile(r"(?i)\b([a-z][a-z0-9+.\-]*://)[^/\s:@]+:[^/\s@]+@"), r"\1[redacted]@"),
)


def sanitize_preview(text: str, *, max_chars: int = DEFAULT_DIAGNOSTICS_CHARS) -> str:
    """Strip colour codes, mask credentials and cap the length of ``text``."""

    cleaned = _ANSI_ESCAPE.sub("", text).strip()
    for pattern, replacement in _SECRET_PATTERNS:
        cleaned = pattern.sub(replacement, cleaned)

    if len(cleaned) <= max_chars:
        return cleaned
    return f"{cleaned[:max_chars]}... [{len(cleaned) - max_chars} more chars]"
