"""Shared fixtures: an in-memory automation API and local draft storage."""

from __future__ import annotations

import pytest

from automation_builder.drafts import DraftStore, MemoryKeyValueStore
from automation_builder.errors import ApiError
from automation_builder.notifications import MemoryChannel, Notifier

FLOW_ID = "flow-1"


def wait_record(step_id: str, step_count: int, amount: int = 3, unit: str = "minutes") -> dict:
    return {
        "_id": step_id,
        "stepType": "waitSubscriber",
        "stepCount": step_count,
        "title": "Wait",
        "waitDuration": amount,
        "waitUnit": unit,
    }


def mail_record(step_id: str, step_count: int, template: str = "tpl-1") -> dict:
    return {
        "_id": step_id,
        "stepType": "sendMail",
        "stepCount": step_count,
        "title": "Send Mail",
        "sendMailTemplate": template,
        "sendMailSubject": "Hello",
    }


class FakeWorkFlowClient:
    """In-memory stand-in for ``WorkFlowClient``.

    Steps are kept as server records. Every call is recorded in ``calls``
    as ``(method_name, args)``. ``fail_after(name, n)`` makes the call
    ``name`` raise ``ApiError`` once it has succeeded ``n`` times.
    """

    def __init__(self):
        self.automation = {
            "_id": FLOW_ID,
            "name": "Welcome series",
            "isActive": False,
            "websiteId": "site-1",
            "listId": "list-1",
            "stats": {"totalUsersProcessed": 1200, "averageOpenRate": 42.34},
        }
        self.website_data = {"_id": "site-1", "name": "Shop"}
        self.connected_list = {"_id": "list-1", "name": "Newsletter"}
        self.lists = [
            {"_id": "list-1", "name": "Newsletter"},
            {"_id": "list-2", "name": "Customers"},
        ]
        self.templates = [{"_id": "tpl-1", "name": "Welcome"}]
        self.servers = [{"_id": 7, "name": "SMTP main"}]
        self.records: dict[str, dict] = {}
        self.subscribers: list[dict] = []
        self.calls: list[tuple[str, tuple]] = []
        self.deleted = False
        self._fail_after: dict[str, int] = {}
        self._next_id = 100

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    # -- test helpers ---------------------------------------------------------

    def seed(self, *records: dict) -> None:
        for record in records:
            self.records[record["_id"]] = dict(record)

    def fail_after(self, name: str, successes: int = 0) -> None:
        self._fail_after[name] = successes

    def clear_failures(self) -> None:
        self._fail_after.clear()

    def calls_to(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]

    def ordered_records(self) -> list[dict]:
        return sorted(self.records.values(), key=lambda r: r.get("stepCount") or 0)

    def _record(self, name: str, *args) -> None:
        if name in self._fail_after:
            if self._fail_after[name] <= 0:
                raise ApiError(f"{name} failed", status_code=500)
            self._fail_after[name] -= 1
        self.calls.append((name, args))

    # -- API surface ----------------------------------------------------------

    async def get_automation(self, automation_id):
        self._record("get_automation", automation_id)
        return {
            "automation": dict(self.automation),
            "websiteData": self.website_data,
            "connectedList": self.connected_list,
        }

    async def update_automation(self, automation_id, status, update_data):
        self._record("update_automation", automation_id, status, update_data)
        self.automation.update(update_data)
        return {"automation": dict(self.automation)}

    async def delete_automation(self, automation_id):
        self._record("delete_automation", automation_id)
        self.deleted = True

    async def list_steps(self, flow_id):
        self._record("list_steps", flow_id)
        # Unordered on purpose: callers must sort by stepCount
        return [dict(r) for r in reversed(list(self.records.values()))]

    async def create_step(self, flow_id, step):
        self._record("create_step", flow_id, step)
        step_id = f"srv-{self._next_id}"
        self._next_id += 1
        record = {**step, "_id": step_id}
        record.setdefault("stepCount", len(self.records) + 1)
        self.records[step_id] = record
        return dict(record)

    async def update_step(self, flow_id, step_id, step_data):
        self._record("update_step", flow_id, step_id, step_data)
        if step_id not in self.records:
            raise ApiError("Step not found", status_code=404)
        self.records[step_id].update(step_data)
        return dict(self.records[step_id])

    async def delete_step(self, flow_id, step_id):
        self._record("delete_step", flow_id, step_id)
        if self.records.pop(step_id, None) is None:
            raise ApiError("Step not found", status_code=404)

    async def list_lists(self, website_id):
        self._record("list_lists", website_id)
        return list(self.lists)

    async def list_templates(self):
        self._record("list_templates")
        return list(self.templates)

    async def list_servers(self):
        self._record("list_servers")
        return list(self.servers)

    async def add_subscriber(self, email, list_id, full_name="", source=""):
        self._record("add_subscriber", email, list_id, full_name, source)
        entry = {"email": email, "listId": list_id, "fullName": full_name, "source": source}
        self.subscribers.append(entry)
        return entry


@pytest.fixture
def fake_client():
    return FakeWorkFlowClient()


@pytest.fixture
def draft_store():
    return DraftStore(MemoryKeyValueStore())


@pytest.fixture
def toasts():
    return MemoryChannel()


@pytest.fixture
def notifier(toasts):
    return Notifier([toasts])
