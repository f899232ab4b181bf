"""Per-flow draft persistence.

A draft holds the unsaved step list and automation-level patch for one
flow. Reads and writes never raise: a broken or unwritable draft is the
same as no draft.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from automation_builder.errors import StorageError
from automation_builder.steps.models import Step

from .backends import KeyValueStore, MemoryKeyValueStore, create_backend

logger = logging.getLogger(__name__)

DRAFT_KEY_PREFIX = "wf:draft:"


def draft_key(flow_id: str) -> str:
    return f"{DRAFT_KEY_PREFIX}{flow_id}"


class Draft(BaseModel):
    """Unsaved local edits for one flow.

    Stored as ``{"automationPatch", "stepsDraft", "_updatedAt"}``.
    """

    model_config = ConfigDict(populate_by_name=True)

    automation_patch: dict[str, Any] = Field(default_factory=dict, alias="automationPatch")
    steps_draft: list[Step] | None = Field(default=None, alias="stepsDraft")
    updated_at: int = Field(default=0, alias="_updatedAt")  # epoch milliseconds


class DraftStore:
    """Reads and writes drafts through a key-value backend."""

    def __init__(self, backend: KeyValueStore | None = None):
        self.backend = backend or MemoryKeyValueStore()

    def read(self, flow_id: str) -> Draft | None:
        """Return the draft for ``flow_id``, or None if missing or corrupt."""
        try:
            raw = self.backend.get(draft_key(flow_id))
        except StorageError as e:
            logger.debug(f"Draft read failed for {flow_id}: {e}")
            return None
        if not raw:
            return None
        try:
            return Draft.model_validate(json.loads(raw))
        except (json.JSONDecodeError, PydanticValidationError, TypeError) as e:
            logger.debug(f"Ignoring corrupt draft for {flow_id}: {e}")
            return None

    def write(self, flow_id: str, draft: Draft) -> None:
        """Persist ``draft`` with a fresh timestamp. Failures are swallowed."""
        draft = draft.model_copy(update={"updated_at": int(time.time() * 1000)})
        try:
            self.backend.set(draft_key(flow_id), draft.model_dump_json(by_alias=True))
        except StorageError as e:
            logger.warning(f"Draft write failed for {flow_id}: {e}")

    def clear(self, flow_id: str) -> None:
        """Remove the draft for ``flow_id``. Failures are swallowed."""
        try:
            self.backend.delete(draft_key(flow_id))
        except StorageError as e:
            logger.warning(f"Draft clear failed for {flow_id}: {e}")

    def update_steps(self, flow_id: str, steps: list[Step]) -> None:
        """Replace the step list, keeping any staged automation patch."""
        prior = self.read(flow_id) or Draft()
        self.write(flow_id, prior.model_copy(update={"steps_draft": list(steps)}))

    def update_automation_patch(self, flow_id: str, **fields: Any) -> None:
        """Merge ``fields`` into the staged automation patch."""
        prior = self.read(flow_id) or Draft()
        patch = {**prior.automation_patch, **fields}
        self.write(flow_id, prior.model_copy(update={"automation_patch": patch}))


def create_draft_store(settings=None) -> DraftStore:
    """Build a draft store from settings."""
    if settings is None:
        from automation_builder.config import get_settings

        settings = get_settings()
    return DraftStore(create_backend(settings.draft_backend, settings.drafts_dir))
