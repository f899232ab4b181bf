"""Palette of step types that can be dropped onto the canvas."""

from __future__ import annotations

from typing import Any

from automation_builder.errors import ValidationError

from .models import StepData, parse_step_data

# Base values applied before a palette preset
STEP_DEFAULTS: dict[str, dict[str, Any]] = {
    "action": {
        "kind": "action",
        "title": "Send Mail",
        "action_kind": "send_email",
        "sending_service_id": "",
        "template_id": "",
        "subject": "",
        "raw_html": "",
        "raw_html_summary": None,
        "method": "POST",
        "url": "",
        "query": "",
        "headers": "",
        "body": "",
        "retry_attempts": 1,
        "retry_delay_seconds": 5,
        "target_list_id": "",
        "reason": "",
    },
    "delay": {"kind": "delay", "title": "Wait", "amount": 3, "unit": "minutes"},
}

PALETTE_ITEMS: dict[str, dict[str, Any]] = {
    "send_email": {
        "label": "Send Mail",
        "icon": "✉️",
        "group": "Actions",
        "kind": "action",
        "description": "Template or custom HTML",
        "preset": {"title": "Send Mail", "action_kind": "send_email"},
    },
    "http_request": {
        "label": "Outgoing Request",
        "icon": "🌐",
        "group": "Actions",
        "kind": "action",
        "description": "HTTP request to your API",
        "preset": {
            "title": "Outgoing Request",
            "action_kind": "http_request",
            "method": "POST",
        },
    },
    "move_to_list": {
        "label": "Move to targeted list",
        "icon": "📋",
        "group": "Actions",
        "kind": "action",
        "description": "Move subscriber to another list",
        "preset": {"title": "Move to targeted list", "action_kind": "move_to_list"},
    },
    "delete_from_current_list": {
        "label": "Delete from current list",
        "icon": "➖",
        "group": "Actions",
        "kind": "action",
        "description": "Remove subscriber from this list",
        "preset": {
            "title": "Delete from current list",
            "action_kind": "delete_from_current_list",
        },
    },
    "delete_subscriber": {
        "label": "Delete subscriber",
        "icon": "🗑️",
        "group": "Actions",
        "kind": "action",
        "description": "Permanently delete the subscriber",
        "preset": {"title": "Delete subscriber", "action_kind": "delete_subscriber"},
    },
    "wait": {
        "label": "Wait",
        "icon": "⏳",
        "group": "Delays",
        "kind": "delay",
        "description": "seconds/minutes/hours/days…",
        "preset": {"title": "Wait", "amount": 3, "unit": "minutes"},
    },
}


def default_data(palette_key: str, preset: dict[str, Any] | None = None) -> StepData:
    """Build the pre-filled step data for a palette item.

    Raises:
        ValidationError: if ``palette_key`` is not a palette item
    """
    item = PALETTE_ITEMS.get(palette_key)
    if item is None:
        raise ValidationError(f"Unknown palette item: {palette_key}")

    values = {**STEP_DEFAULTS[item["kind"]], **item["preset"], **(preset or {})}
    return parse_step_data(values)
