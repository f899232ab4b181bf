"""Shared helpers for CLI commands: console, controller factory, tables."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from automation_builder.api_clients import WorkFlowClient
from automation_builder.controller import PageController
from automation_builder.drafts import DraftStore, create_draft_store
from automation_builder.notifications import LogChannel, Notifier
from automation_builder.steps import Step, to_server

console = Console()


def get_draft_store() -> DraftStore:
    return create_draft_store()


def build_controller(flow_id: str, client: WorkFlowClient) -> PageController:
    """Controller wired to the configured draft store, logging toasts."""
    return PageController(
        flow_id,
        client,
        get_draft_store(),
        notifier=Notifier([LogChannel()]),
    )


def describe_step(step: Step) -> str:
    """One-line summary of what a step does."""
    payload = to_server(step)
    step_type = payload["stepType"]
    if step_type == "waitSubscriber":
        return f"wait {payload['waitDuration']} {payload['waitUnit']}"
    if step_type == "sendMail":
        return f"template {payload['sendMailTemplate'] or '-'}"
    if step_type == "sendWebhook":
        return f"{payload['requestMethod']} {payload['webhookUrl'] or '-'}"
    if step_type == "moveSubscriber":
        return f"to list {payload['targetListId'] or '-'}"
    return step_type


def steps_table(steps: list[Step], title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("ID", style="cyan")
    table.add_column("Type", style="bold")
    table.add_column("Title")
    table.add_column("Details", style="dim")

    for position, step in enumerate(steps, start=1):
        table.add_row(
            str(position),
            step.id,
            to_server(step)["stepType"],
            step.title,
            describe_step(step),
        )
    return table
