"""Page-level coordination for one automation.

The controller owns the automation shell (name, status, website, list)
and the staged edits to it. Step edits live in the ``StepBuilder``;
``save_all`` pushes both, ``discard_all`` throws both away.
"""

from __future__ import annotations

import logging
from typing import Any

from automation_builder.api_clients import WorkFlowClient
from automation_builder.builder import OptionsCatalog, StepBuilder
from automation_builder.commit import CommitEngine, CommitResult
from automation_builder.drafts import DraftStore
from automation_builder.errors import (
    ApiError,
    CommitError,
    LoadError,
    ProcessingError,
    ValidationError,
)
from automation_builder.notifications import Notifier
from automation_builder.steps import decode_server_steps
from automation_builder.utils.concurrency import gather_all

from .stats import StatItem, format_stats

logger = logging.getLogger(__name__)

STAGEABLE_FIELDS = ("name", "isActive")
UNSAVED_CHANGES_PROMPT = "You have unsaved changes. Leave without saving?"


class PageController:
    """Load, stage, save, and discard for one automation.

    Usage:
        controller = PageController(flow_id, client, drafts, notifier)
        await controller.load()
        controller.builder.add_step("wait")
        controller.stage_rename("Welcome series")
        await controller.save_all()
    """

    def __init__(
        self,
        flow_id: str | None,
        client: WorkFlowClient,
        draft_store: DraftStore,
        notifier: Notifier | None = None,
        engine: CommitEngine | None = None,
    ):
        self.flow_id = flow_id or ""
        self.client = client
        self.draft_store = draft_store
        self.notifier = notifier or Notifier()
        self.builder = StepBuilder(self.flow_id, client, draft_store, self.notifier)
        self.engine = engine or CommitEngine(client)

        self.automation: dict[str, Any] = {}
        self.server_automation: dict[str, Any] = {}
        self.website_data: dict[str, Any] | None = None
        self.connected_list: dict[str, Any] | None = None
        self.options = OptionsCatalog()
        self.automation_patch: dict[str, Any] = {}

        self.loaded = False
        self.load_error: str | None = None
        self.is_processing = False
        self.last_error: str | None = None

    def bind_client(self, client: WorkFlowClient) -> None:
        """Route all further API calls through ``client``."""
        self.client = client
        self.builder.client = client
        self.engine.client = client

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @property
    def not_found(self) -> bool:
        return not self.flow_id

    @property
    def has_unsaved_automation_patch(self) -> bool:
        return bool(self.automation_patch)

    @property
    def steps_dirty(self) -> bool:
        return self.builder.is_dirty

    @property
    def has_unsaved_changes(self) -> bool:
        return self.has_unsaved_automation_patch or self.steps_dirty

    @property
    def website_id(self) -> str | None:
        if self.website_data and self.website_data.get("_id"):
            return str(self.website_data["_id"])
        return self.automation.get("websiteId") or None

    @property
    def connected_list_id(self) -> str | None:
        if self.connected_list and self.connected_list.get("_id"):
            return str(self.connected_list["_id"])
        return self.automation.get("listId") or None

    @property
    def stats(self) -> list[StatItem]:
        return format_stats(self.automation.get("stats"))

    def before_unload(self) -> str | None:
        """Message to show when leaving the page, or None if nothing is unsaved."""
        return UNSAVED_CHANGES_PROMPT if self.has_unsaved_changes else None

    # -------------------------------------------------------------------------
    # Load
    # -------------------------------------------------------------------------

    async def load(self) -> None:
        """Fetch shell, steps, and options; any failure fails the whole view.

        Raises:
            LoadError: if any of the fetches fails
        """
        if self.not_found:
            return

        self.loaded = False
        self.load_error = None
        try:
            shell, _ = await gather_all(
                self.client.get_automation(self.flow_id),
                self.builder.load(),
            )
            self.options = await OptionsCatalog.load(
                self.client, self._website_id_from(shell)
            )
        except (ApiError, LoadError) as e:
            self.load_error = str(e) or "Failed to load automation"
            logger.error(
                f"Failed to load automation {self.flow_id}: {e}",
                extra={"flow_id": self.flow_id},
            )
            self.notifier.show_error("Failed to load automation")
            raise LoadError(self.load_error) from e

        self._apply_shell(shell)
        self.loaded = True

    async def retry(self) -> None:
        await self.load()

    @staticmethod
    def _website_id_from(shell: dict[str, Any]) -> str | None:
        website = shell.get("websiteData") or {}
        automation = shell.get("automation") or {}
        website_id = website.get("_id") or automation.get("websiteId")
        return str(website_id) if website_id else None

    def _apply_shell(self, shell: dict[str, Any]) -> None:
        self.server_automation = dict(shell.get("automation") or {})
        self.website_data = shell.get("websiteData") or None
        self.connected_list = shell.get("connectedList") or None

        draft = self.draft_store.read(self.flow_id)
        self.automation_patch = dict(draft.automation_patch) if draft else {}
        self.automation = {**self.server_automation, **self.automation_patch}

    # -------------------------------------------------------------------------
    # Staged automation edits
    # -------------------------------------------------------------------------

    def stage(self, field: str, value: Any) -> None:
        """Stage an automation-level change without sending it."""
        if field not in STAGEABLE_FIELDS:
            raise ValidationError(f"Field cannot be staged: {field}")

        self.automation_patch[field] = value
        self.automation[field] = value
        self.draft_store.update_automation_patch(self.flow_id, **{field: value})

    def stage_status(self, is_active: bool) -> None:
        self.stage("isActive", bool(is_active))

    def stage_rename(self, name: str) -> None:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Automation name is required")
        self.stage("name", name)

    # -------------------------------------------------------------------------
    # Save / discard
    # -------------------------------------------------------------------------

    async def _push_automation_patch(self) -> None:
        patch = self.automation_patch

        if isinstance(patch.get("isActive"), bool):
            data = await self.client.update_automation(
                self.flow_id, "statusChange", {"isActive": patch["isActive"]}
            )
            self.server_automation = data.get("automation") or {
                **self.server_automation,
                "isActive": patch["isActive"],
            }

        name = patch.get("name")
        if name and name != self.server_automation.get("name"):
            data = await self.client.update_automation(
                self.flow_id, "nameChange", {"name": name}
            )
            self.server_automation = data.get("automation") or {
                **self.server_automation,
                "name": name,
            }

    async def _recover_partial_commit(self, error: CommitError) -> None:
        """Line the local state up with what the failed commit already did.

        Steps created before the failure keep their new server ids, and the
        snapshot is refetched so the next save only sends the remainder.
        """
        self.builder.adopt_server_ids(error.id_map)
        try:
            records = await self.client.list_steps(self.flow_id)
        except ApiError as e:
            logger.warning(
                f"Could not refresh steps after failed save of {self.flow_id}: {e}",
                extra={"flow_id": self.flow_id},
            )
            created = set(error.id_map.values())
            self.builder.server_steps = [
                *self.builder.server_steps,
                *(s for s in self.builder.steps if s.id in created),
            ]
            return
        self.builder.server_steps = decode_server_steps(records)

    async def save_all(self) -> bool:
        """Send staged automation changes, then commit the steps.

        Returns:
            True on success. On failure the error is shown as a toast,
            kept in ``last_error``, and all staged state is left in place.

        Raises:
            ProcessingError: if a save is already running
        """
        if self.not_found:
            return False
        if self.is_processing:
            raise ProcessingError("A save is already in progress")

        self.is_processing = True
        self.last_error = None
        try:
            self.notifier.show_info("Saving changes…")
            if self.has_unsaved_automation_patch:
                await self._push_automation_patch()

            result: CommitResult = await self.engine.commit(
                self.flow_id, self.builder.server_steps, self.builder.steps
            )
        except (ApiError, CommitError) as e:
            self.last_error = str(e) or "Save failed"
            logger.error(
                f"Save failed for {self.flow_id}: {e}",
                extra={"flow_id": self.flow_id},
            )
            if isinstance(e, CommitError):
                await self._recover_partial_commit(e)
            self.notifier.show_error(self.last_error)
            return False
        finally:
            self.is_processing = False

        self.builder.reset_to(result.steps)
        self.draft_store.clear(self.flow_id)
        self.automation_patch = {}
        self.automation = dict(self.server_automation)
        self.notifier.show_success("Saved ✓")
        return True

    async def discard_all(self, confirmed: bool = False) -> bool:
        """Drop the draft and reload everything from the server."""
        if not confirmed:
            return False

        self.draft_store.clear(self.flow_id)
        self.automation_patch = {}
        await self.load()
        self.notifier.show_info("Changes discarded")
        return True

    # -------------------------------------------------------------------------
    # Other automation actions
    # -------------------------------------------------------------------------

    async def delete_automation(self, confirmed: bool = False) -> bool:
        """Delete the automation on the server. Requires confirmation."""
        if self.not_found or not confirmed:
            return False
        try:
            await self.client.delete_automation(self.flow_id)
        except ApiError as e:
            self.notifier.show_error(str(e) or "Delete failed")
            return False

        self.draft_store.clear(self.flow_id)
        self.notifier.show_success("Automation deleted")
        return True

    async def add_subscriber(
        self, email: str, full_name: str = "", source: str = ""
    ) -> bool:
        """Add a subscriber to the automation's connected list."""
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required")
        list_id = self.connected_list_id
        if not list_id:
            raise ValidationError("Automation has no connected list")

        try:
            await self.client.add_subscriber(email, list_id, full_name, source)
        except ApiError as e:
            self.notifier.show_error(str(e) or "Failed to add subscriber")
            return False

        self.notifier.show_success("Subscriber added")
        return True
