"""Tests for diffing and committing step edits."""

import pytest

from automation_builder.builder import StepBuilder
from automation_builder.commit import CommitEngine, diff_steps
from automation_builder.errors import CommitError
from automation_builder.steps import (
    DelayData,
    DeleteSubscriberData,
    SendEmailData,
    Step,
    decode_server_steps,
)

from conftest import FLOW_ID, mail_record, wait_record


def _ids(steps):
    return [s.id for s in steps]


class TestDiffSteps:
    """Tests for diff_steps()."""

    def test_minimal_diff(self):
        """Edited, removed, and added steps are each found once."""
        a = Step(id="a", data=DelayData(amount=1))
        b = Step(id="b", data=SendEmailData(template_id="t"))
        c = Step(id="c", data=DeleteSubscriberData())
        a_edited = a.merged({"amount": 2})
        d = Step(id="tmp_1_aaaaa", data=DelayData())

        diff = diff_steps([a, b, c], [a_edited, b, d])

        assert _ids(diff.created) == ["tmp_1_aaaaa"]
        assert _ids(diff.updated) == ["a"]
        assert _ids(diff.deleted) == ["c"]

    def test_move_only_is_not_update(self):
        """Reordering alone produces no updates."""
        a = Step(id="a", data=DelayData())
        b = Step(id="b", data=DelayData(amount=5))
        assert diff_steps([a, b], [b, a]).is_empty

    def test_local_only_field_is_not_update(self):
        """Fields the server never sees do not trigger an update."""
        a = Step(id="a", data=SendEmailData())
        edited = a.merged({"raw_html": "<p>hi</p>"})
        assert diff_steps([a], [edited]).updated == []

    def test_temporary_id_always_created(self):
        """A temporary id counts as new even if it appears in the snapshot."""
        t = Step(id="tmp_5_zzzzz", data=DelayData())
        diff = diff_steps([t], [t])
        assert _ids(diff.created) == ["tmp_5_zzzzz"]
        assert diff.updated == []


class TestCommitEngine:
    """Tests for CommitEngine.commit()."""

    @pytest.mark.asyncio
    async def test_create_update_delete(self, fake_client):
        """One create, one update, one delete, then a full reorder pass."""
        fake_client.seed(wait_record("a", 1), mail_record("b", 2), wait_record("c", 3, amount=9))
        original = decode_server_steps(fake_client.ordered_records())
        a, b, _ = original
        d = Step(id="tmp_1_ddddd", data=DeleteSubscriberData())
        current = [a.merged({"amount": 4}), b, d]

        result = await CommitEngine(fake_client).commit(FLOW_ID, original, current)

        assert len(fake_client.calls_to("create_step")) == 1
        assert [args[1] for args in fake_client.calls_to("delete_step")] == ["c"]
        updates = fake_client.calls_to("update_step")
        # one content update plus the reorder pass over all three steps
        assert len(updates) == 4
        assert updates[0][1] == "a" and updates[0][2]["stepCount"] == 1
        new_id = result.id_map["tmp_1_ddddd"]
        assert [(u[1], u[2]["stepCount"]) for u in updates[1:]] == [
            ("a", 1), ("b", 2), (new_id, 3),
        ]
        assert _ids(result.steps) == ["a", "b", new_id]
        assert result.steps[0].data.amount == 4

    @pytest.mark.asyncio
    async def test_reorder_only(self, fake_client):
        """A pure move rewrites stepCount for every step."""
        fake_client.seed(wait_record("a", 1), mail_record("b", 2))
        original = decode_server_steps(fake_client.ordered_records())

        result = await CommitEngine(fake_client).commit(FLOW_ID, original, original[::-1])

        assert fake_client.calls_to("create_step") == []
        assert fake_client.calls_to("delete_step") == []
        assert _ids(result.steps) == ["b", "a"]

    @pytest.mark.asyncio
    async def test_updated_new_position(self, fake_client):
        """An updated step is sent with its new position."""
        fake_client.seed(wait_record("a", 1), mail_record("b", 2))
        a, b = decode_server_steps(fake_client.ordered_records())
        await CommitEngine(fake_client).commit(FLOW_ID, [a, b], [b, a.merged({"amount": 8})])
        first_update = fake_client.calls_to("update_step")[0]
        assert first_update[1] == "a"
        assert first_update[2]["stepCount"] == 2

    @pytest.mark.asyncio
    async def test_failure_reports_phase(self, fake_client):
        """A failing call aborts the commit with its phase."""
        fake_client.seed(wait_record("c", 1))
        original = decode_server_steps(fake_client.ordered_records())
        d = Step(id="tmp_1_ddddd", data=DelayData())
        fake_client.fail_after("delete_step")

        with pytest.raises(CommitError) as exc:
            await CommitEngine(fake_client).commit(FLOW_ID, original, [d])

        assert exc.value.phase == "delete"
        assert "tmp_1_ddddd" in exc.value.id_map
        assert fake_client.calls_to("list_steps") == []

    @pytest.mark.asyncio
    async def test_retry_after_partial_failure(self, fake_client):
        """Retrying against the new server state creates nothing twice."""
        fake_client.seed(wait_record("c", 1))
        original = decode_server_steps(fake_client.ordered_records())
        d = Step(id="tmp_1_ddddd", data=DelayData(amount=6))
        fake_client.fail_after("delete_step")

        with pytest.raises(CommitError):
            await CommitEngine(fake_client).commit(FLOW_ID, original, [d])

        # Server now holds both C and D
        server = decode_server_steps(fake_client.ordered_records())
        real_d = next(s for s in server if s.id != "c")
        retry_diff = diff_steps(server, [real_d])
        assert retry_diff.created == []
        assert _ids(retry_diff.deleted) == ["c"]

        fake_client.clear_failures()
        result = await CommitEngine(fake_client).commit(FLOW_ID, server, [real_d])
        assert _ids(result.steps) == [real_d.id]
        assert len(fake_client.calls_to("create_step")) == 1

    @pytest.mark.asyncio
    async def test_unknown_server_steps_untouched(self, fake_client):
        """Records the editor cannot decode are neither deleted nor renumbered."""
        fake_client.seed(wait_record("a", 1), {"_id": "sms", "stepType": "sendSms", "stepCount": 2})
        original = decode_server_steps(fake_client.ordered_records())

        await CommitEngine(fake_client).commit(FLOW_ID, original, original)

        assert fake_client.records["sms"]["stepCount"] == 2
        assert fake_client.calls_to("delete_step") == []


class TestEndToEnd:
    """A full editing session through the builder and engine."""

    @pytest.mark.asyncio
    async def test_add_edit_reorder_save(self, fake_client, draft_store, notifier):
        """Two creates, one reorder pass, zero deletes, matching snapshot."""
        builder = StepBuilder(FLOW_ID, fake_client, draft_store, notifier)
        await builder.load()

        delay = builder.add_step("wait")
        assert delay.data.amount == 3
        builder.edit_step(delay.id, {"amount": 10})
        mail = builder.add_step("send_email", {"template_id": "tpl-1"})
        assert builder.move_step(1, 0)
        assert _ids(builder.steps) == [mail.id, delay.id]

        result = await CommitEngine(fake_client).commit(
            FLOW_ID, builder.server_steps, builder.steps
        )
        builder.reset_to(result.steps)

        assert len(fake_client.calls_to("create_step")) == 2
        assert len(fake_client.calls_to("update_step")) == 2
        assert fake_client.calls_to("delete_step") == []
        kinds = [s.data.kind for s in builder.steps]
        assert kinds == ["action", "delay"]
        assert builder.steps[1].data.amount == 10
        assert not builder.is_dirty
        assert not any(s.is_temporary for s in builder.steps)
