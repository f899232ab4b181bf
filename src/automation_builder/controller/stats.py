"""Display formatting for an automation's read-only stats."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

HIGHLIGHTED_STATS = {"totalWebhooksSent", "averageOpenRate", "totalUsersProcessed"}


@dataclass
class StatItem:
    key: str
    label: str
    text: str
    highlighted: bool = False


def humanize_key(key: str) -> str:
    """``averageOpenRate`` -> ``Average Open Rate``."""
    spaced = re.sub(r"([A-Z])", r" \1", key).strip()
    return spaced[:1].upper() + spaced[1:]


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    remaining = seconds % 60
    return f"{minutes}min" if remaining == 0 else f"{minutes}min {remaining:.0f}s"


def format_timestamp(value: Any) -> str:
    if isinstance(value, (int, float)):
        moment = datetime.fromtimestamp(value / 1000)
    else:
        try:
            moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return str(value)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def format_stat(key: str, value: Any) -> str:
    label = humanize_key(key)
    if "Rate" in key:
        return f"{float(value):.1f}% {label}"
    if key == "averageProcessingTime":
        return f"{format_duration(float(value))} {label}"
    if key == "lastProcessedAt":
        return format_timestamp(value) if value else "Automation never ran"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return f"{value} {label}"
    number = int(number) if number.is_integer() else number
    return f"{number:,} {label}"


def format_stats(stats: dict[str, Any] | None) -> list[StatItem]:
    """Turn the stats mapping into display items, skipping empty values."""
    items = []
    for key, value in (stats or {}).items():
        if value is None:
            continue
        items.append(
            StatItem(
                key=key,
                label=humanize_key(key),
                text=format_stat(key, value),
                highlighted=key in HIGHLIGHTED_STATS,
            )
        )
    return items
