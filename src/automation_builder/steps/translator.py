"""Mapping between UI steps and the server's step records.

Server records look like::

    {"_id": "...", "stepType": "sendWebhook", "stepCount": 2,
     "title": "Notify CRM", "webhookUrl": "...", "requestMethod": "POST",
     "retryAttempts": 3, "retryAfterSeconds": 10,
     "queryParams": [{"key": "a", "value": "1", "type": "static"}]}

``to_server`` never emits ``_id`` or ``stepCount``; the commit engine adds
the position when it persists a step.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable

from automation_builder.errors import StepDecodeError

from .models import (
    DelayData,
    DeleteFromCurrentListData,
    DeleteSubscriberData,
    HttpRequestData,
    MoveToListData,
    SendEmailData,
    Step,
)

logger = logging.getLogger(__name__)


class ServerStepType(str, Enum):
    """``stepType`` values understood by the automation API."""

    WAIT_SUBSCRIBER = "waitSubscriber"
    SEND_MAIL = "sendMail"
    SEND_WEBHOOK = "sendWebhook"
    MOVE_SUBSCRIBER = "moveSubscriber"
    REMOVE_SUBSCRIBER = "removeSubscriber"
    DELETE_SUBSCRIBER = "deleteSubscriber"


def to_query_params_array(query: str | None) -> list[dict[str, str]]:
    """Parse ``a=1&b=2=3`` into ordered ``{key, value, type}`` entries.

    The first ``=`` splits key from value, so values may contain ``=``.
    Blank segments are dropped; a blank query yields an empty list.
    """
    text = str(query or "")
    if not text.strip():
        return []

    params = []
    for segment in text.split("&"):
        segment = segment.strip()
        if not segment:
            continue
        key, _, value = segment.partition("=")
        params.append({"key": key.strip(), "value": value, "type": "static"})
    return params


def from_query_params_array(params: Iterable[dict] | None) -> str:
    """Render server query parameters back into a ``key=value&...`` string."""
    return "&".join(f"{p.get('key', '')}={p.get('value', '')}" for p in params or [])


def _number(value: Any) -> int | float:
    number = float(value or 0)
    return int(number) if number.is_integer() else number


def to_server(step: Step) -> dict[str, Any]:
    """Map a UI step to the server payload shape."""
    data = step.data

    if isinstance(data, DelayData):
        return {
            "stepType": ServerStepType.WAIT_SUBSCRIBER.value,
            "title": data.title or "Wait",
            "waitDuration": _number(data.amount),
            "waitUnit": data.unit.value,
        }
    if isinstance(data, SendEmailData):
        return {
            "stepType": ServerStepType.SEND_MAIL.value,
            "title": data.title or "Send Mail",
            "sendMailTemplate": data.template_id or "",
            "sendMailSubject": data.subject or "",
        }
    if isinstance(data, HttpRequestData):
        return {
            "stepType": ServerStepType.SEND_WEBHOOK.value,
            "title": data.title or "Outgoing Request",
            "webhookUrl": data.url or "",
            "requestMethod": data.method.value.upper(),
            "retryAttempts": int(data.retry_attempts),
            "retryAfterSeconds": int(data.retry_delay_seconds),
            "queryParams": to_query_params_array(data.query),
        }
    if isinstance(data, MoveToListData):
        return {
            "stepType": ServerStepType.MOVE_SUBSCRIBER.value,
            "title": data.title or "Move to list",
            "targetListId": data.target_list_id or None,
        }
    if isinstance(data, DeleteFromCurrentListData):
        return {
            "stepType": ServerStepType.REMOVE_SUBSCRIBER.value,
            "title": data.title or "Remove from current list",
        }
    if isinstance(data, DeleteSubscriberData):
        return {
            "stepType": ServerStepType.DELETE_SUBSCRIBER.value,
            "title": data.title or "Delete subscriber",
        }
    raise TypeError(f"Unsupported step data: {type(data).__name__}")


def from_server(record: dict[str, Any]) -> Step:
    """Map a server step record to a UI step.

    Raises:
        StepDecodeError: if ``stepType`` has no UI counterpart
    """
    step_type = record.get("stepType")
    step_id = str(record.get("_id", ""))
    title = record.get("title")

    try:
        server_type = ServerStepType(step_type)
    except ValueError:
        raise StepDecodeError(step_type, record) from None

    if server_type is ServerStepType.WAIT_SUBSCRIBER:
        data = DelayData(
            title=title or "Wait",
            amount=record.get("waitDuration") or 0,
            unit=record.get("waitUnit") or "minutes",
        )
    elif server_type is ServerStepType.SEND_MAIL:
        data = SendEmailData(
            title=title or "Send Mail",
            template_id=record.get("sendMailTemplate") or "",
            subject=record.get("sendMailSubject") or "",
        )
    elif server_type is ServerStepType.SEND_WEBHOOK:
        retry_attempts = record.get("retryAttempts")
        retry_after = record.get("retryAfterSeconds")
        data = HttpRequestData(
            title=title or "Outgoing Request",
            method=(record.get("requestMethod") or "POST").upper(),
            url=record.get("webhookUrl") or "",
            query=from_query_params_array(record.get("queryParams")),
            retry_attempts=0 if retry_attempts is None else retry_attempts,
            retry_delay_seconds=3 if retry_after is None else retry_after,
        )
    elif server_type is ServerStepType.MOVE_SUBSCRIBER:
        data = MoveToListData(
            title=title or "Move to list",
            target_list_id=str(record.get("targetListId") or ""),
        )
    elif server_type is ServerStepType.REMOVE_SUBSCRIBER:
        data = DeleteFromCurrentListData(title=title or "Remove from current list")
    else:
        data = DeleteSubscriberData(title=title or "Delete subscriber")

    return Step(id=step_id, data=data)


def decode_server_steps(
    records: Iterable[dict[str, Any]], strict: bool = False
) -> list[Step]:
    """Sort records by ``stepCount`` and translate them.

    Args:
        records: Raw step records from the API
        strict: Raise on an unknown ``stepType`` instead of skipping it

    Raises:
        StepDecodeError: in strict mode, for the first unknown record
    """
    ordered = sorted(records, key=lambda r: r.get("stepCount") or 0)
    steps = []
    for record in ordered:
        try:
            steps.append(from_server(record))
        except StepDecodeError as e:
            if strict:
                raise
            logger.warning(
                f"Skipping step {record.get('_id')} with unknown type {e.step_type!r}"
            )
    return steps
