"""Task management commands."""

import asyncio
from datetime import datetime

import typer

from collabdesk_cli.models import TaskStatus, ValidationError
from collabdesk_cli.utils.typer_helpers import SuggestingGroup
from collabdesk_cli.utils.ui.console import get_console
from collabdesk_cli.utils.ui.formatters import (
    format_output,
    format_success,
    format_task_line,
    format_warning,
)

from .decorators import command_wrapper
from .session import open_workspace

app = typer.Typer(cls=SuggestingGroup, help="Task management commands")


def _due(value: datetime | None):
    return value.date() if value is not None else None


@app.command("list")
@command_wrapper
async def list_tasks(
    project_id: str | None = typer.Argument(None, help="Project ID"),
    all_projects: bool = typer.Option(False, "--all", help="Tasks of every project"),
    assignee: str | None = typer.Option(None, "--assignee", help="Only tasks assigned to this user"),
    output: str = typer.Option("pretty", "--output", "-o", help="Output format"),
) -> None:
    """List the tasks of a project, newest first."""
    if project_id is None and not all_projects:
        raise ValidationError("Give a PROJECT_ID or --all")

    async with open_workspace() as (workspace, _):
        if all_projects:
            tasks = await workspace.tasks.fetch_all()
        else:
            tasks = await workspace.tasks.fetch(project_id)
        if assignee:
            tasks = workspace.tasks.assigned_to(assignee)
        format_output({"tasks": [t.model_dump(mode="json") for t in tasks]}, output)


@app.command("add")
@command_wrapper
async def add_task(
    project_id: str = typer.Argument(..., help="Project ID"),
    title: str = typer.Argument(..., help="Task title"),
    description: str | None = typer.Option(None, "--description", "-d", help="Description"),
    status: TaskStatus = typer.Option(TaskStatus.NOT_STARTED, "--status", help="Status"),
    assign: str | None = typer.Option(None, "--assign", help="Assignee user ID"),
    due: datetime | None = typer.Option(None, "--due", formats=["%Y-%m-%d"], help="Due date"),
    output: str = typer.Option("pretty", "--output", "-o", help="Output format"),
) -> None:
    """Add a task to a project."""
    async with open_workspace() as (workspace, _):
        task = await workspace.mutations.create(
            workspace.tasks,
            {
                "project_id": project_id,
                "title": title,
                "description": description,
                "status": status,
                "assigned_to": assign,
                "due_date": _due(due),
            },
        )
        format_success(f"Task created: {task.id}")
        format_output(task.model_dump(mode="json"), output)


@app.command("update")
@command_wrapper
async def update_task(
    task_id: str = typer.Argument(..., help="Task ID"),
    title: str | None = typer.Option(None, "--title", help="New title"),
    description: str | None = typer.Option(None, "--description", "-d", help="New description"),
    status: TaskStatus | None = typer.Option(None, "--status", help="New status"),
    assign: str | None = typer.Option(None, "--assign", help="Assignee user ID"),
    due: datetime | None = typer.Option(None, "--due", formats=["%Y-%m-%d"], help="Due date"),
    output: str = typer.Option("pretty", "--output", "-o", help="Output format"),
) -> None:
    """Edit a task."""
    fields = {
        "title": title,
        "description": description,
        "status": status,
        "assigned_to": assign,
        "due_date": _due(due),
    }
    patch = {key: value for key, value in fields.items() if value is not None}
    async with open_workspace() as (workspace, _):
        task = await workspace.mutations.update(workspace.tasks, task_id, patch)
        if task is None:
            format_warning(f"Task no longer exists: {task_id}")
            return
        format_success(f"Task updated: {task_id}")
        format_output(task.model_dump(mode="json"), output)


@app.command("complete")
@command_wrapper
async def complete_task(
    task_id: str = typer.Argument(..., help="Task ID"),
) -> None:
    """Mark a task as completed."""
    async with open_workspace() as (workspace, _):
        task = await workspace.mutations.update(
            workspace.tasks, task_id, {"status": TaskStatus.COMPLETED}
        )
        if task is None:
            format_warning(f"Task no longer exists: {task_id}")
            return
        format_success(f"Task completed: {task.title}")


@app.command("delete")
@command_wrapper
async def delete_task(
    task_id: str = typer.Argument(..., help="Task ID"),
) -> None:
    """Delete a task."""
    async with open_workspace() as (workspace, _):
        await workspace.mutations.delete(workspace.tasks, task_id)
        format_success(f"Task deleted: {task_id}")


@app.command("watch")
@command_wrapper
async def watch_tasks(
    project_id: str = typer.Argument(..., help="Project ID"),
    duration: float | None = typer.Option(
        None, "--duration", help="Stop after this many seconds (default: until interrupted)"
    ),
) -> None:
    """Follow the tasks of a project live."""
    console = get_console()
    async with open_workspace() as (workspace, _):
        store = workspace.tasks
        scope = store.scope_for(project_id)
        await store.fetch(project_id)

        seen: dict[str, object] = {}
        for task in store.items:
            seen[task.id] = task.updated_at
            console.print(f"  {format_task_line(task.model_dump(mode='json'))}")

        def on_change(items) -> None:
            current = {task.id for task in items}
            for task in items:
                if task.id not in seen:
                    label = "[green]+[/green]"
                elif seen[task.id] != task.updated_at:
                    label = "[yellow]~[/yellow]"
                else:
                    continue
                seen[task.id] = task.updated_at
                console.print(f"{label} {format_task_line(task.model_dump(mode='json'))}")
            for task_id in [task_id for task_id in seen if task_id not in current]:
                del seen[task_id]
                console.print(f"[red]-[/red] [muted]{task_id[:8]} removed[/muted]")

        remove = store.add_listener(on_change)
        try:
            async with workspace.subscriptions.channel(store, scope):
                console.print(f"[muted]Watching {scope}. Press Ctrl+C to stop.[/muted]")
                if duration is not None:
                    await asyncio.sleep(duration)
                else:
                    await asyncio.Event().wait()
        finally:
            remove()
