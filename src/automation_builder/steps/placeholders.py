"""Placeholder tokens available in mail bodies and request payloads."""

from __future__ import annotations

import re

from .models import PlaceholderSummary

# Tokens the editor offers for insertion
AVAILABLE_TOKENS = ["{{email}}", "{{fullName}}", "{{expireDate}}"]

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_.-]+)\s*\}\}")


def parse_placeholders(html: str | None) -> PlaceholderSummary:
    """Collect the distinct placeholder names used in ``html``.

    Names keep first-seen order. Whitespace inside the braces is ignored,
    so ``{{ email }}`` and ``{{email}}`` count once.
    """
    if not html:
        return PlaceholderSummary(placeholders=[], length=0)

    found: list[str] = []
    for match in _PLACEHOLDER_RE.finditer(html):
        name = match.group(1)
        if name not in found:
            found.append(name)
    return PlaceholderSummary(placeholders=found, length=len(html))
