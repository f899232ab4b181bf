"""UI-side step model.

A step is an ``id`` plus a tagged ``data`` payload. ``data.kind`` separates
delays from actions, and for actions ``data.action_kind`` selects the
variant. Both tags are pydantic discriminators, so an unknown combination
fails validation instead of silently becoming some other step.
"""

from __future__ import annotations

import json
import random
import string
import time
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

TEMP_ID_PREFIX = "tmp_"


class StepKind(str, Enum):
    """Top-level step discriminator."""

    DELAY = "delay"
    ACTION = "action"


class ActionKind(str, Enum):
    """Action sub-kinds."""

    SEND_EMAIL = "send_email"
    HTTP_REQUEST = "http_request"
    MOVE_TO_LIST = "move_to_list"
    DELETE_FROM_CURRENT_LIST = "delete_from_current_list"
    DELETE_SUBSCRIBER = "delete_subscriber"


class DelayUnit(str, Enum):
    """Units a delay step can wait in."""

    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class HttpMethod(str, Enum):
    """Methods an outgoing request step may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class PlaceholderSummary(BaseModel):
    """Derived summary of ``{{token}}`` placeholders in a raw HTML body."""

    placeholders: list[str] = Field(default_factory=list)
    length: int = 0


class DelayData(BaseModel):
    kind: Literal["delay"] = "delay"
    title: str = "Wait"
    amount: float = Field(3, ge=0)
    unit: DelayUnit = DelayUnit.MINUTES


class SendEmailData(BaseModel):
    kind: Literal["action"] = "action"
    action_kind: Literal["send_email"] = "send_email"
    title: str = "Send Mail"
    template_id: str = ""
    subject: str = ""
    sending_service_id: str = ""
    raw_html: str = ""
    # Client-only; never sent to the server
    raw_html_summary: Optional[PlaceholderSummary] = None


class HttpRequestData(BaseModel):
    kind: Literal["action"] = "action"
    action_kind: Literal["http_request"] = "http_request"
    title: str = "Outgoing Request"
    method: HttpMethod = HttpMethod.POST
    url: str = ""
    query: str = ""
    headers: str = ""
    body: str = ""
    retry_attempts: int = 1
    retry_delay_seconds: int = 5


class MoveToListData(BaseModel):
    kind: Literal["action"] = "action"
    action_kind: Literal["move_to_list"] = "move_to_list"
    title: str = "Move to targeted list"
    target_list_id: str = ""


class DeleteFromCurrentListData(BaseModel):
    kind: Literal["action"] = "action"
    action_kind: Literal["delete_from_current_list"] = "delete_from_current_list"
    title: str = "Delete from current list"


class DeleteSubscriberData(BaseModel):
    kind: Literal["action"] = "action"
    action_kind: Literal["delete_subscriber"] = "delete_subscriber"
    title: str = "Delete subscriber"
    reason: str = ""


ActionData = Annotated[
    Union[
        SendEmailData,
        HttpRequestData,
        MoveToListData,
        DeleteFromCurrentListData,
        DeleteSubscriberData,
    ],
    Field(discriminator="action_kind"),
]

StepData = Annotated[Union[DelayData, ActionData], Field(discriminator="kind")]

_step_data_adapter: TypeAdapter[Any] = TypeAdapter(StepData)


def parse_step_data(value: dict) -> StepData:
    """Validate a plain dict into the matching step data variant."""
    return _step_data_adapter.validate_python(value)


class Step(BaseModel):
    """One step of an automation, as the editor holds it."""

    id: str
    data: StepData

    @property
    def kind(self) -> StepKind:
        return StepKind(self.data.kind)

    @property
    def action_kind(self) -> ActionKind | None:
        if self.kind is StepKind.DELAY:
            return None
        return ActionKind(self.data.action_kind)

    @property
    def title(self) -> str:
        return self.data.title

    @property
    def is_temporary(self) -> bool:
        return is_temporary_id(self.id)

    def with_id(self, step_id: str) -> Step:
        return self.model_copy(update={"id": step_id})

    def merged(self, patch: dict) -> Step:
        """Return a copy with ``patch`` shallow-merged into ``data``."""
        merged = {**self.data.model_dump(), **patch}
        return Step(id=self.id, data=parse_step_data(merged))


def new_temporary_id() -> str:
    """Generate a client-side id for a step that has not been created yet."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=5))
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}_{suffix}"


def is_temporary_id(step_id: Any) -> bool:
    return str(step_id).startswith(TEMP_ID_PREFIX)


def dump_steps(steps: list[Step]) -> list[dict]:
    """JSON-compatible dump of a step list."""
    return [step.model_dump(mode="json") for step in steps]


def stable_serialize(steps: list[Step]) -> str:
    """Canonical serialization used for dirty checks and draft comparison."""
    return json.dumps(dump_steps(steps), sort_keys=True)
