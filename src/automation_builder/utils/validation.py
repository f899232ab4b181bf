"""Input validation and log sanitization helpers."""

from __future__ import annotations

import re

_REDACTED = "[REDACTED]"

_SECRET_PATTERNS = [
    # Authorization: Bearer <token>
    (re.compile(r"(?i)(bearer\s+)[A-Za-z0-9\-._~+/]+=*"), r"\1" + _REDACTED),
    # api_token=..., token: ..., "apiToken": "..."
    (
        re.compile(
            r"(?i)([\"']?(?:api[_-]?token|apitoken|access[_-]?token|token|secret|password)[\"']?\s*[:=]\s*[\"']?)[^\s\"',&]+"
        ),
        r"\1" + _REDACTED,
    ),
]

_UNSAFE_NAME_CHARS = re.compile(r"[^\w\-]")


def sanitize_log_message(message: str) -> str:
    """Redact bearer tokens and credential-like values from a log message."""
    for pattern, replacement in _SECRET_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


def safe_storage_name(key: str, max_length: int = 120) -> str:
    """Turn an arbitrary key into a file-system safe name.

    ``wf:draft:65f0c1`` becomes ``wf_draft_65f0c1``.
    """
    safe = _UNSAFE_NAME_CHARS.sub("_", key).strip("_")
    return safe[:max_length] or "_"
