"""Chat commands for project and global channels."""

import asyncio

import typer

from collabdesk_cli.models import Scope, TransportError
from collabdesk_cli.services.identity_resolver import display_name
from collabdesk_cli.services.workspace import Workspace
from collabdesk_cli.utils.logger import get_logger
from collabdesk_cli.utils.typer_helpers import SuggestingGroup
from collabdesk_cli.utils.ui.console import get_console
from collabdesk_cli.utils.ui.formatters import format_message_line, format_output, format_success

from .decorators import command_wrapper
from .session import open_workspace

app = typer.Typer(cls=SuggestingGroup, help="Project and global chat")


def _scope(workspace: Workspace, project_id: str | None, global_only: bool) -> Scope:
    if global_only:
        return workspace.messages.global_scope()
    return workspace.messages.scope_for(project_id)


async def _sender_names(workspace: Workspace) -> dict[str, str]:
    """Display names of every known user; empty if the directory is unavailable."""
    try:
        users = await workspace.users.fetch()
    except TransportError as e:
        get_logger("chat").warning("user directory unavailable: %s", e)
        return {}
    return {user.id: display_name(user.id, user.username, user.email) for user in users}


@app.command("list")
@command_wrapper
async def list_messages(
    project: str | None = typer.Option(None, "--project", "-p", help="Project ID"),
    global_only: bool = typer.Option(False, "--global", help="Only the global channel"),
    output: str = typer.Option("pretty", "--output", "-o", help="Output format"),
) -> None:
    """Show chat history, oldest first."""
    async with open_workspace() as (workspace, _):
        messages = await workspace.messages.fetch(_scope(workspace, project, global_only))
        names = await _sender_names(workspace) if output == "pretty" else {}
        data = {"messages": [m.model_dump(mode="json") for m in messages]}
        if names:
            data["names"] = names
        format_output(data, output)


@app.command("send")
@command_wrapper
async def send_message(
    text: str = typer.Argument(..., help="Message text"),
    project: str | None = typer.Option(None, "--project", "-p", help="Project ID (global if omitted)"),
) -> None:
    """Send a message as the signed-in user."""
    async with open_workspace() as (workspace, auth):
        user = await auth.require_user()
        message = await workspace.mutations.send_message(
            workspace.messages, user.id, text, project_id=project
        )
        format_success(f"Message sent: {message.id}")


@app.command("watch")
@command_wrapper
async def watch_messages(
    project: str | None = typer.Option(None, "--project", "-p", help="Project ID"),
    global_only: bool = typer.Option(False, "--global", help="Only the global channel"),
    duration: float | None = typer.Option(
        None, "--duration", help="Stop after this many seconds (default: until interrupted)"
    ),
) -> None:
    """Follow a chat channel live."""
    console = get_console()
    async with open_workspace() as (workspace, _):
        store = workspace.messages
        scope = _scope(workspace, project, global_only)
        names = await _sender_names(workspace)
        await store.fetch(scope)

        shown: set[str] = set()
        for message in store.items:
            shown.add(message.id)
            console.print(format_message_line(message.model_dump(mode="json"), names))

        def on_change(items) -> None:
            for message in items:
                if message.pending or message.id in shown:
                    continue
                shown.add(message.id)
                console.print(format_message_line(message.model_dump(mode="json"), names))

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
