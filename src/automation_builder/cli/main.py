"""automation-builder CLI - Main entry point."""

from __future__ import annotations

import asyncio
import subprocess
import sys
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.panel import Panel
from rich.table import Table

from automation_builder import __version__
from automation_builder.api_clients import WorkFlowClient
from automation_builder.commit import diff_steps
from automation_builder.config import configure_logging, get_settings
from automation_builder.errors import AutomationBuilderError, LoadError
from automation_builder.steps import to_server

from .helpers import build_controller, console, get_draft_store, steps_table

app = typer.Typer(
    name="automation-builder",
    help="Edit marketing automation steps against the automation API",
    add_completion=False,
)


def _load_or_exit(coro):
    """Run ``coro`` and turn library errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except LoadError as e:
        console.print(f"[red]Failed to load automation:[/red] {e}")
        raise typer.Exit(1)
    except AutomationBuilderError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


async def _load_controller(flow_id: str):
    async with WorkFlowClient() as client:
        controller = build_controller(flow_id, client)
        await controller.load()
        return controller


@app.command()
def show(
    flow_id: str = typer.Argument(..., help="Automation ID"),
):
    """Show the server steps of an automation and its draft status."""

    controller = _load_or_exit(_load_controller(flow_id))
    automation = controller.server_automation
    status = "[green]active[/green]" if automation.get("isActive") else "[yellow]paused[/yellow]"

    console.print(Panel(
        f"[bold]{automation.get('name', flow_id)}[/bold]  {status}\n"
        f"[dim]List:[/dim] {(controller.connected_list or {}).get('name', '-')}",
        title="Automation",
        border_style="blue",
    ))
    for item in controller.stats:
        console.print(f"  • {item.text}")

    console.print(steps_table(controller.builder.server_steps, "Server steps"))

    if controller.has_unsaved_changes:
        console.print("[yellow]Unsaved local draft present.[/yellow] Run 'diff' to inspect it.")
    else:
        console.print("[dim]No local draft.[/dim]")


@app.command()
def diff(
    flow_id: str = typer.Argument(..., help="Automation ID"),
):
    """Show what a commit of the local draft would do."""

    controller = _load_or_exit(_load_controller(flow_id))
    builder = controller.builder
    planned = diff_steps(builder.server_steps, builder.steps)

    if controller.automation_patch:
        console.print("[bold]Automation changes[/bold]")
        for field, value in controller.automation_patch.items():
            console.print(f"  {field}: {controller.server_automation.get(field)!r} -> {value!r}")

    table = Table(title="Planned step changes")
    table.add_column("Operation", style="bold")
    table.add_column("Step", style="cyan")
    table.add_column("Title")
    for step in planned.created:
        table.add_row("[green]create[/green]", step.id, step.title)
    for step in planned.updated:
        table.add_row("[yellow]update[/yellow]", step.id, step.title)
    for step in planned.deleted:
        table.add_row("[red]delete[/red]", step.id, step.title)
    console.print(table)

    if builder.is_dirty:
        console.print(steps_table(builder.steps, "Order after commit"))
    if not controller.has_unsaved_changes:
        console.print("[dim]Nothing to commit.[/dim]")


@app.command()
def commit(
    flow_id: str = typer.Argument(..., help="Automation ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Commit the local draft (steps and automation changes) to the server."""

    async def _commit():
        async with WorkFlowClient() as client:
            controller = build_controller(flow_id, client)
            await controller.load()
            if not controller.has_unsaved_changes:
                console.print("[dim]Nothing to commit.[/dim]")
                return True
            if not yes and not typer.confirm(f"Commit local changes to {flow_id}?"):
                console.print("[yellow]Aborted.[/yellow]")
                return True
            saved = await controller.save_all()
            if not saved:
                console.print(f"[red]Commit failed:[/red] {controller.last_error}")
            return saved

    if not _load_or_exit(_commit()):
        raise typer.Exit(1)
    console.print("[green]✓ Saved[/green]")


@app.command()
def discard(
    flow_id: str = typer.Argument(..., help="Automation ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete the local draft of an automation."""
    store = get_draft_store()
    if store.read(flow_id) is None:
        console.print("[dim]No local draft.[/dim]")
        return

    if not yes and not typer.confirm(f"Discard all unsaved changes to {flow_id}?"):
        console.print("[yellow]Aborted.[/yellow]")
        raise typer.Exit(0)

    store.clear(flow_id)
    console.print("[green]✓ Draft discarded[/green]")


@app.command()
def export(
    flow_id: str = typer.Argument(..., help="Automation ID"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write YAML to this file instead of stdout"
    ),
):
    """Export the server steps of an automation as YAML."""

    controller = _load_or_exit(_load_controller(flow_id))
    document = {
        "automationId": flow_id,
        "name": controller.server_automation.get("name"),
        "steps": [
            {**to_server(step), "_id": step.id, "stepCount": position}
            for position, step in enumerate(controller.builder.server_steps, start=1)
        ],
    }
    text = yaml.safe_dump(document, sort_keys=False, allow_unicode=True)

    if output is None:
        console.print(text, markup=False, highlight=False)
        return
    output.write_text(text)
    console.print(f"[green]✓ Exported {len(document['steps'])} steps:[/green] {output}")


@app.command()
def dashboard(
    port: int = typer.Option(8501, "--port", "-p", help="Port for the Streamlit server"),
):
    """Launch the Streamlit step editor."""
    app_path = Path(__file__).resolve().parent.parent / "dashboard" / "app.py"
    console.print(f"[dim]Starting dashboard on port {port}...[/dim]")
    raise typer.Exit(
        subprocess.call(
            [sys.executable, "-m", "streamlit", "run", str(app_path), "--server.port", str(port)]
        )
    )


@app.command()
def version():
    """Show automation-builder version."""
    console.print(f"[bold]automation-builder[/bold] v{__version__}")


@app.callback()
def main():
    """
    automation-builder - edit automation steps offline, review, and commit.

    Run 'automation-builder --help' for available commands.
    """
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format, settings.sanitize_logs)


if __name__ == "__main__":
    app()
