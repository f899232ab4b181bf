"""Tests for the page controller."""

import pytest

from automation_builder.controller import UNSAVED_CHANGES_PROMPT, PageController
from automation_builder.errors import LoadError, ProcessingError, ValidationError
from automation_builder.notifications import ToastLevel

from conftest import FLOW_ID, mail_record, wait_record


@pytest.fixture
def controller(fake_client, draft_store, notifier):
    fake_client.seed(wait_record("a", 1), mail_record("b", 2))
    return PageController(FLOW_ID, fake_client, draft_store, notifier)


class TestLoad:
    """Tests for loading the page."""

    @pytest.mark.asyncio
    async def test_loads_everything(self, controller, fake_client):
        """Shell, steps, and options are loaded together."""
        await controller.load()
        assert controller.loaded
        assert controller.automation["name"] == "Welcome series"
        assert controller.website_id == "site-1"
        assert controller.connected_list_id == "list-1"
        assert [s.id for s in controller.builder.steps] == ["a", "b"]
        assert [o.value for o in controller.options.move_targets("list-1")] == ["list-2"]
        assert fake_client.calls_to("list_lists") == [("site-1",)]
        assert not controller.has_unsaved_changes

    @pytest.mark.asyncio
    async def test_shell_failure_is_load_error(self, controller, fake_client, toasts):
        """Any failed fetch fails the whole view."""
        fake_client.fail_after("get_automation")
        with pytest.raises(LoadError):
            await controller.load()
        assert controller.load_error
        assert not controller.loaded
        assert any(t.message == "Failed to load automation" for t in toasts.items)

    @pytest.mark.asyncio
    async def test_options_failure_is_load_error(self, controller, fake_client):
        """Option fetch failures are fatal too."""
        fake_client.fail_after("list_templates")
        with pytest.raises(LoadError):
            await controller.load()

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, controller, fake_client):
        """Retry clears the error once the API recovers."""
        fake_client.fail_after("get_automation")
        with pytest.raises(LoadError):
            await controller.load()
        fake_client._fail_after.clear()
        await controller.retry()
        assert controller.load_error is None
        assert controller.loaded

    @pytest.mark.asyncio
    async def test_failed_load_keeps_draft(self, controller, fake_client, draft_store):
        """A load failure never touches the stored draft."""
        draft_store.update_automation_patch(FLOW_ID, name="Draft name")
        fake_client.fail_after("list_steps")
        with pytest.raises(LoadError):
            await controller.load()
        assert draft_store.read(FLOW_ID).automation_patch == {"name": "Draft name"}

    @pytest.mark.asyncio
    async def test_draft_patch_applied(self, controller, draft_store):
        """A staged patch in the draft is laid over the shell."""
        draft_store.update_automation_patch(FLOW_ID, isActive=True)
        await controller.load()
        assert controller.automation["isActive"] is True
        assert controller.server_automation["isActive"] is False
        assert controller.has_unsaved_automation_patch

    @pytest.mark.asyncio
    async def test_missing_flow_id(self, fake_client, draft_store):
        """No flow id is a not-found state, not an error."""
        controller = PageController(None, fake_client, draft_store)
        await controller.load()
        assert controller.not_found
        assert fake_client.calls == []


class TestStaging:
    """Tests for staged automation edits."""

    @pytest.mark.asyncio
    async def test_stage_persists(self, controller, draft_store):
        """Staged fields go to the draft and mark the page dirty."""
        await controller.load()
        controller.stage_status(True)
        controller.stage_rename("  New name ")
        assert controller.has_unsaved_changes
        assert controller.automation["name"] == "New name"
        assert draft_store.read(FLOW_ID).automation_patch == {"isActive": True, "name": "New name"}

    @pytest.mark.asyncio
    async def test_empty_name_rejected(self, controller):
        """Blank names are a validation error with no state change."""
        await controller.load()
        with pytest.raises(ValidationError):
            controller.stage_rename("   ")
        assert not controller.has_unsaved_changes

    def test_unknown_field_rejected(self, controller):
        """Only name and isActive can be staged."""
        with pytest.raises(ValidationError):
            controller.stage("listId", "x")

    @pytest.mark.asyncio
    async def test_before_unload(self, controller):
        """The leave prompt appears only with unsaved changes."""
        await controller.load()
        assert controller.before_unload() is None
        controller.builder.add_step("wait")
        assert controller.before_unload() == UNSAVED_CHANGES_PROMPT

    @pytest.mark.asyncio
    async def test_stats(self, controller):
        """Stats are formatted for display."""
        await controller.load()
        texts = [item.text for item in controller.stats]
        assert "1,200 Total Users Processed" in texts
        assert "42.3% Average Open Rate" in texts


class TestSaveAll:
    """Tests for save_all()."""

    @pytest.mark.asyncio
    async def test_status_and_name_are_separate_calls(self, controller, fake_client, draft_store):
        """Status and rename go out as two PUTs before the step commit."""
        await controller.load()
        controller.stage_status(True)
        controller.stage_rename("Renamed")

        assert await controller.save_all()

        updates = fake_client.calls_to("update_automation")
        assert [u[1] for u in updates] == ["statusChange", "nameChange"]
        assert updates[0][2] == {"isActive": True}
        assert updates[1][2] == {"name": "Renamed"}
        assert not controller.has_unsaved_changes
        assert controller.automation["name"] == "Renamed"
        assert draft_store.read(FLOW_ID) is None

    @pytest.mark.asyncio
    async def test_same_name_not_sent(self, controller, fake_client):
        """A rename back to the server name is skipped."""
        await controller.load()
        controller.stage_rename("Welcome series")
        assert await controller.save_all()
        assert fake_client.calls_to("update_automation") == []

    @pytest.mark.asyncio
    async def test_steps_committed(self, controller, fake_client, toasts):
        """Step edits are committed and the builder resynced."""
        await controller.load()
        controller.builder.add_step("delete_subscriber")
        assert await controller.save_all()
        assert len(fake_client.calls_to("create_step")) == 1
        assert not controller.builder.is_dirty
        assert len(controller.builder.steps) == 3
        assert toasts.items[-1].message == "Saved ✓"

    @pytest.mark.asyncio
    async def test_failure_keeps_state(self, controller, fake_client, draft_store, toasts):
        """A failed save leaves flags, steps, and draft in place."""
        await controller.load()
        controller.stage_rename("Renamed")
        step = controller.builder.add_step("wait")
        fake_client.fail_after("create_step")

        assert await controller.save_all() is False

        assert controller.has_unsaved_automation_patch
        assert controller.builder.is_dirty
        assert controller.builder.steps[-1].id == step.id
        assert draft_store.read(FLOW_ID) is not None
        assert controller.last_error
        assert toasts.items[-1].level is ToastLevel.ERROR
        assert not controller.is_processing

    @pytest.mark.asyncio
    async def test_retry_after_partial_commit_creates_once(self, controller, fake_client, draft_store):
        """A save retried after a mid-commit failure does not recreate steps."""
        fake_client.seed(wait_record("c", 3))
        await controller.load()
        controller.builder.delete_step("c", confirmed=True)
        temp = controller.builder.add_step("wait")
        fake_client.fail_after("delete_step")

        assert await controller.save_all() is False

        created_id = "srv-100"
        assert controller.builder.steps[-1].id == created_id
        assert draft_store.read(FLOW_ID).steps_draft[-1].id == created_id
        assert temp.id not in [s.id for s in controller.builder.steps]

        fake_client.clear_failures()
        assert await controller.save_all()

        assert len(fake_client.calls_to("create_step")) == 1
        assert [r["_id"] for r in fake_client.ordered_records()] == ["a", "b", "srv-100"]
        assert not controller.builder.is_dirty

    @pytest.mark.asyncio
    async def test_retry_without_refresh_creates_once(self, controller, fake_client):
        """Created ids carry over even when the snapshot cannot be refetched."""
        fake_client.seed(wait_record("c", 3))
        await controller.load()
        controller.builder.delete_step("c", confirmed=True)
        controller.builder.add_step("wait")
        fake_client.fail_after("delete_step")
        fake_client.fail_after("list_steps")

        assert await controller.save_all() is False

        fake_client.clear_failures()
        assert await controller.save_all()

        assert len(fake_client.calls_to("create_step")) == 1
        assert [r["_id"] for r in fake_client.ordered_records()] == ["a", "b", "srv-100"]

    @pytest.mark.asyncio
    async def test_processing_guard(self, controller):
        """A second save while one runs is refused."""
        await controller.load()
        controller.is_processing = True
        with pytest.raises(ProcessingError):
            await controller.save_all()


class TestDiscardAndDelete:
    """Tests for discard, delete, and subscriber actions."""

    @pytest.mark.asyncio
    async def test_discard_requires_confirmation(self, controller):
        """Unconfirmed discards keep everything."""
        await controller.load()
        controller.builder.add_step("wait")
        assert await controller.discard_all() is False
        assert controller.has_unsaved_changes

    @pytest.mark.asyncio
    async def test_discard_reloads(self, controller, draft_store):
        """Confirmed discards drop the draft and reload."""
        await controller.load()
        controller.builder.add_step("wait")
        controller.stage_rename("Other")
        assert await controller.discard_all(confirmed=True)
        assert not controller.has_unsaved_changes
        assert [s.id for s in controller.builder.steps] == ["a", "b"]
        assert controller.automation["name"] == "Welcome series"
        assert draft_store.read(FLOW_ID) is None

    @pytest.mark.asyncio
    async def test_delete_automation(self, controller, fake_client):
        """Deleting needs confirmation."""
        await controller.load()
        assert await controller.delete_automation() is False
        assert not fake_client.deleted
        assert await controller.delete_automation(confirmed=True)
        assert fake_client.deleted

    @pytest.mark.asyncio
    async def test_delete_failure_toasts(self, controller, fake_client, toasts):
        """Delete errors surface as a toast."""
        await controller.load()
        fake_client.fail_after("delete_automation")
        assert await controller.delete_automation(confirmed=True) is False
        assert toasts.items[-1].message == "delete_automation failed"

    @pytest.mark.asyncio
    async def test_add_subscriber(self, controller, fake_client):
        """Subscribers are added to the connected list."""
        await controller.load()
        assert await controller.add_subscriber("a@b.test", full_name="Ann", source="manual")
        assert fake_client.subscribers == [
            {"email": "a@b.test", "listId": "list-1", "fullName": "Ann", "source": "manual"}
        ]

    @pytest.mark.asyncio
    async def test_add_subscriber_needs_email(self, controller):
        """A blank email is rejected."""
        await controller.load()
        with pytest.raises(ValidationError):
            await controller.add_subscriber(" ")
