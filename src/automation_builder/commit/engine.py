"""Reconcile a locally edited step list with the server.

The commit runs in strict phases::

    create -> update -> delete -> reorder -> refresh

Creates go first and one at a time because every later phase needs the
server ids they return. The reorder pass rewrites ``stepCount`` for every
step in parallel; by then all ids are real. A failing call aborts the
commit without undoing earlier calls. Re-running the commit diffs
against whatever the server now holds and finishes the remainder.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from automation_builder.api_clients import WorkFlowClient
from automation_builder.errors import ApiError, CommitError
from automation_builder.steps import Step, decode_server_steps, is_temporary_id, to_server
from automation_builder.utils.concurrency import gather_all

logger = logging.getLogger(__name__)


def _server_shape(step: Step) -> str:
    return json.dumps(to_server(step), sort_keys=True)


@dataclass
class StepDiff:
    """Steps to create, update, and delete to turn one list into another."""

    created: list[Step] = field(default_factory=list)
    updated: list[Step] = field(default_factory=list)
    deleted: list[Step] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)

    def summary(self) -> dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
        }


def diff_steps(original: list[Step], current: list[Step]) -> StepDiff:
    """Compare the server snapshot with the edited list.

    A step counts as updated only when its server payload changed; a pure
    position change is left to the reorder pass.
    """
    original_by_id = {s.id: s for s in original}
    current_by_id = {s.id: s for s in current}

    created = [
        s for s in current if s.id not in original_by_id or is_temporary_id(s.id)
    ]
    deleted = [s for s in original if s.id not in current_by_id]
    updated = [
        s
        for s in current
        if s.id in original_by_id
        and not is_temporary_id(s.id)
        and _server_shape(original_by_id[s.id]) != _server_shape(s)
    ]
    return StepDiff(created=created, updated=updated, deleted=deleted)


@dataclass
class CommitResult:
    """Outcome of a successful commit."""

    steps: list[Step]
    id_map: dict[str, str]
    diff: StepDiff
    calls: int = 0


class CommitEngine:
    """Execute a ``StepDiff`` against the automation API.

    Usage:
        engine = CommitEngine(client)
        result = await engine.commit(flow_id, server_steps, edited_steps)
        builder.reset_to(result.steps)
    """

    def __init__(self, client: WorkFlowClient):
        self.client = client

    async def _run_phase(
        self,
        phase: str,
        id_map: dict[str, str],
        call: Callable[[], Awaitable[Any]],
    ) -> Any:
        try:
            return await call()
        except ApiError as e:
            logger.error(f"Commit aborted during {phase}: {e}")
            raise CommitError(
                f"Commit failed during {phase}: {e}",
                phase=phase,
                cause=e,
                id_map=id_map,
            ) from e

    async def commit(
        self, flow_id: str, original: list[Step], current: list[Step]
    ) -> CommitResult:
        """Reconcile ``current`` against ``original`` and refetch the result.

        Raises:
            CommitError: if any call fails; ``phase`` names where it stopped
        """
        diff = diff_steps(original, current)
        id_map: dict[str, str] = {}
        calls = 0
        logger.info(
            f"Committing flow {flow_id}: {diff.summary()}",
            extra={"flow_id": flow_id},
        )

        for step in diff.created:
            record = await self._run_phase(
                "create",
                id_map,
                lambda step=step: self.client.create_step(flow_id, to_server(step)),
            )
            id_map[step.id] = str(record["_id"])
            logger.debug(
                f"Created step {id_map[step.id]}",
                extra={"flow_id": flow_id, "step_id": step.id},
            )
            calls += 1

        with_real_ids = [
            s.with_id(id_map[s.id]) if s.id in id_map else s for s in current
        ]
        positions = {s.id: i + 1 for i, s in enumerate(with_real_ids)}

        for step in diff.updated:
            real_id = id_map.get(step.id, step.id)
            payload = {**to_server(step), "stepCount": positions[real_id]}
            await self._run_phase(
                "update",
                id_map,
                lambda real_id=real_id, payload=payload: self.client.update_step(
                    flow_id, real_id, payload
                ),
            )
            calls += 1

        for step in diff.deleted:
            await self._run_phase(
                "delete",
                id_map,
                lambda step=step: self.client.delete_step(flow_id, step.id),
            )
            logger.debug(
                "Deleted step", extra={"flow_id": flow_id, "step_id": step.id}
            )
            calls += 1

        jobs = [
            self.client.update_step(
                flow_id, s.id, {**to_server(s), "stepCount": index + 1}
            )
            for index, s in enumerate(with_real_ids)
        ]

        async def _sync_order():
            return await gather_all(*jobs)

        await self._run_phase("reorder", id_map, _sync_order)
        calls += len(jobs)

        records = await self._run_phase(
            "refresh", id_map, lambda: self.client.list_steps(flow_id)
        )
        fresh = decode_server_steps(records)
        logger.info(
            f"Committed flow {flow_id} with {calls} calls",
            extra={"flow_id": flow_id},
        )
        return CommitResult(steps=fresh, id_map=id_map, diff=diff, calls=calls)
