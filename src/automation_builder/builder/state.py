"""In-memory step list for one flow.

``StepBuilder`` owns the ordered steps during an editing session. Every
mutation goes through one of four commands (``AddStep``, ``EditStep``,
``DeleteStep``, ``MoveStep``), re-persists the whole list as a draft, and
emits a toast. Nothing here talks to the server except ``load``; saving
is the commit engine's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from pydantic import ValidationError as PydanticValidationError

from automation_builder.api_clients import WorkFlowClient
from automation_builder.drafts import DraftStore
from automation_builder.errors import ApiError, LoadError, ValidationError
from automation_builder.notifications import Notifier
from automation_builder.steps import (
    Step,
    StepData,
    decode_server_steps,
    default_data,
    new_temporary_id,
    parse_placeholders,
    stable_serialize,
)

from .reorder import DropDirection, compute_insert_index, reorder

logger = logging.getLogger(__name__)

RETRY_ATTEMPTS_RANGE = (1, 7)
RETRY_DELAY_RANGE = (1, 300)


def _clamp(value: Any, bounds: tuple[int, int]) -> int:
    low, high = bounds
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = low
    return max(low, min(number, high))


def normalize_patch(data: StepData, patch: dict[str, Any]) -> dict[str, Any]:
    """Apply the edit-form rules to a patch before it is merged.

    Outgoing requests get their retry fields clamped. Send-mail steps with
    raw HTML get a fresh placeholder summary.
    """
    patch = dict(patch)
    kind = patch.get("action_kind", getattr(data, "action_kind", None))

    if kind == "http_request":
        attempts = patch.get("retry_attempts", getattr(data, "retry_attempts", 1))
        delay = patch.get("retry_delay_seconds", getattr(data, "retry_delay_seconds", 5))
        patch["retry_attempts"] = _clamp(attempts, RETRY_ATTEMPTS_RANGE)
        patch["retry_delay_seconds"] = _clamp(delay, RETRY_DELAY_RANGE)
    elif kind == "send_email":
        raw_html = patch.get("raw_html", getattr(data, "raw_html", ""))
        if raw_html:
            patch["raw_html_summary"] = parse_placeholders(raw_html).model_dump()
        elif "raw_html" in patch:
            patch["raw_html_summary"] = None
    return patch


@dataclass
class HistoryEntry:
    """Audit record of one successful reorder. Never persisted."""

    from_index: int
    to_index: int
    step_id: str
    type: str = "reorder"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PendingStep:
    """A palette drop waiting for the configuration form to be confirmed."""

    palette_key: str
    data: StepData


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@dataclass
class AddStep:
    palette_key: str
    patch: dict[str, Any] = field(default_factory=dict)
    preset: dict[str, Any] | None = None


@dataclass
class EditStep:
    step_id: str
    patch: dict[str, Any]


@dataclass
class DeleteStep:
    step_id: str
    confirmed: bool = False


@dataclass
class MoveStep:
    from_index: int
    target_index: int
    direction: DropDirection | None = None


StepCommand = Union[AddStep, EditStep, DeleteStep, MoveStep]


class StepBuilder:
    """Ordered steps of one flow plus the server snapshot they diverge from.

    Usage:
        builder = StepBuilder(flow_id, client, drafts, notifier)
        await builder.load()
        builder.dispatch(AddStep("wait"))
        builder.dispatch(MoveStep(1, 0))
        if builder.is_dirty:
            ...
    """

    def __init__(
        self,
        flow_id: str,
        client: WorkFlowClient,
        draft_store: DraftStore,
        notifier: Notifier | None = None,
    ):
        self.flow_id = flow_id
        self.client = client
        self.draft_store = draft_store
        self.notifier = notifier or Notifier()
        self.steps: list[Step] = []
        self.server_steps: list[Step] = []
        self.history: list[HistoryEntry] = []
        self.loaded_from_draft = False
        self.load_error: str | None = None

    # -------------------------------------------------------------------------
    # Load / reset
    # -------------------------------------------------------------------------

    async def load(self) -> list[Step]:
        """Fetch the server steps and rehydrate a differing local draft.

        Raises:
            LoadError: if the steps cannot be fetched
        """
        self.load_error = None
        try:
            records = await self.client.list_steps(self.flow_id)
        except ApiError as e:
            self.load_error = str(e) or "Failed to load steps"
            logger.error(
                f"Load steps failed for {self.flow_id}: {e}",
                extra={"flow_id": self.flow_id},
            )
            self.notifier.show_error("Failed to load steps")
            raise LoadError(self.load_error) from e

        self.apply_server_steps(decode_server_steps(records))
        return self.steps

    def apply_server_steps(self, server_steps: list[Step]) -> None:
        """Install a fresh server snapshot, letting a differing draft win."""
        self.server_steps = list(server_steps)
        draft = self.draft_store.read(self.flow_id)
        local = draft.steps_draft if draft else None

        if local and stable_serialize(local) != stable_serialize(self.server_steps):
            self.steps = list(local)
            self.loaded_from_draft = True
            logger.info(
                f"Restored {len(local)} draft steps for {self.flow_id}",
                extra={"flow_id": self.flow_id},
            )
        else:
            self.steps = list(self.server_steps)
            self.loaded_from_draft = False
        self.history.clear()

    def reset_to(self, steps: list[Step]) -> None:
        """Make ``steps`` both the snapshot and the working list."""
        self.server_steps = list(steps)
        self.steps = list(steps)
        self.loaded_from_draft = False

    def adopt_server_ids(self, id_map: dict[str, str]) -> None:
        """Swap temporary ids for the server ids they were created under."""
        if not id_map:
            return
        self.steps = [s.with_id(id_map[s.id]) if s.id in id_map else s for s in self.steps]
        self._persist()

    @property
    def is_dirty(self) -> bool:
        return stable_serialize(self.steps) != stable_serialize(self.server_steps)

    def _persist(self) -> None:
        self.draft_store.update_steps(self.flow_id, self.steps)

    @staticmethod
    def _merge(step: Step, patch: dict[str, Any]) -> Step:
        try:
            return step.merged(normalize_patch(step.data, patch))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid step data: {e.errors()[0]['msg']}") from e

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def index_of(self, step_id: str) -> int:
        for i, step in enumerate(self.steps):
            if step.id == step_id:
                return i
        raise ValidationError(f"Unknown step: {step_id}")

    def get(self, step_id: str) -> Step:
        return self.steps[self.index_of(step_id)]

    def position(self, step_id: str) -> int:
        """1-based execution position of a step."""
        return self.index_of(step_id) + 1

    # -------------------------------------------------------------------------
    # Add
    # -------------------------------------------------------------------------

    def begin_add(self, palette_key: str, preset: dict[str, Any] | None = None) -> PendingStep:
        """Start adding a step: return the pre-filled data for the form."""
        return PendingStep(palette_key=palette_key, data=default_data(palette_key, preset))

    def confirm_add(self, pending: PendingStep, patch: dict[str, Any] | None = None) -> Step:
        """Append the configured step under a temporary id."""
        step = self._merge(
            Step(id=new_temporary_id(), data=pending.data), patch or {}
        )

        self.steps.append(step)
        self._persist()
        self.notifier.show_success("Step added (draft)", step_id=step.id)
        return step

    def add_step(
        self,
        palette_key: str,
        patch: dict[str, Any] | None = None,
        preset: dict[str, Any] | None = None,
    ) -> Step:
        return self.confirm_add(self.begin_add(palette_key, preset), patch)

    # -------------------------------------------------------------------------
    # Edit / delete
    # -------------------------------------------------------------------------

    def edit_step(self, step_id: str, patch: dict[str, Any]) -> Step:
        """Shallow-merge ``patch`` into a step's data, keeping its id."""
        index = self.index_of(step_id)
        updated = self._merge(self.steps[index], patch)

        self.steps[index] = updated
        self._persist()
        self.notifier.show_success("Step updated (draft)", step_id=step_id)
        return updated

    def delete_step(self, step_id: str, confirmed: bool = False) -> bool:
        """Remove a step. Without confirmation nothing happens."""
        index = self.index_of(step_id)
        if not confirmed:
            return False

        del self.steps[index]
        self._persist()
        self.notifier.show_info("Step deleted (draft)", step_id=step_id)
        return True

    @staticmethod
    def delete_prompt(step: Step) -> str:
        return f'Are you sure you want to delete "{step.title or "this step"}"?'

    # -------------------------------------------------------------------------
    # Reorder
    # -------------------------------------------------------------------------

    def move_step(
        self,
        from_index: int,
        target_index: int,
        direction: DropDirection | None = None,
    ) -> bool:
        """Drop the step at ``from_index`` onto the step at ``target_index``.

        Returns:
            False when the drop would not change the order
        """
        if not 0 <= from_index < len(self.steps):
            raise ValidationError(f"Step index {from_index} out of range")

        moved = self.steps[from_index]
        reordered = reorder(self.steps, from_index, target_index, direction)
        if [s.id for s in reordered] == [s.id for s in self.steps]:
            self.notifier.show_info("No change in order.")
            return False

        to_index = compute_insert_index(from_index, target_index, len(self.steps), direction)
        self.steps = reordered
        self.history.append(
            HistoryEntry(from_index=from_index, to_index=to_index, step_id=moved.id)
        )
        self._persist()
        self.notifier.show_success("Step moved (draft)", step_id=moved.id)
        return True

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def dispatch(self, command: StepCommand) -> Any:
        """Apply one editing command from any input surface."""
        if isinstance(command, AddStep):
            return self.add_step(command.palette_key, command.patch, command.preset)
        if isinstance(command, EditStep):
            return self.edit_step(command.step_id, command.patch)
        if isinstance(command, DeleteStep):
            return self.delete_step(command.step_id, command.confirmed)
        if isinstance(command, MoveStep):
            return self.move_step(command.from_index, command.target_index, command.direction)
        raise TypeError(f"Unsupported command: {type(command).__name__}")
