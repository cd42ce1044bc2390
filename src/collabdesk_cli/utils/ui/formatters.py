"""Output formatters for different formats."""

import json
from datetime import UTC, datetime
from typing import Any

import yaml
from rich.markup import escape
from rich.table import Table

from collabdesk_cli.utils.ui.console import get_console

OUTPUT_FORMATS = ("pretty", "table", "json", "yaml", "quiet")

STATUS_STYLES = {
    "Active": "status.active",
    "Completed": "status.completed",
    "Archived": "status.archived",
}


def format_output(data: Any, output_format: str = "pretty") -> None:
    """Format and display output based on format."""
    if output_format == "json":
        print(json.dumps(data, indent=2, default=str))
    elif output_format == "yaml":
        print(yaml.safe_dump(json.loads(json.dumps(data, default=str)), sort_keys=False))
    elif output_format == "table":
        format_table(data)
    elif output_format == "quiet":
        format_quiet(data)
    else:
        format_pretty(data)


def format_table(data: Any) -> None:
    """Format data as a table."""
    console = get_console()
    if not data:
        console.print("[yellow]No data to display[/yellow]")
        return

    if isinstance(data, list):
        format_dict_table(data)
    elif isinstance(data, dict):
        for key in ("projects", "tasks", "messages", "users"):
            if key in data:
                format_dict_table(data[key])
                return
        format_single_item(data)
    else:
        console.print(data)


def _cell(value: Any) -> str:
    if isinstance(value, bool):
        return "✓" if value else "✗"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if value is None:
        return "-"
    return str(value)


def format_dict_table(items: list[dict]) -> None:
    """Format a list of dictionaries as a table."""
    console = get_console()
    if not items:
        console.print("[yellow]No items found[/yellow]")
        return

    columns = list(items[0].keys())
    table = Table(show_header=True, header_style="bold magenta")
    for col in columns:
        table.add_column(col.replace("_", " ").title())
    for item in items:
        table.add_row(*(_cell(item.get(col)) for col in columns))

    console.print(table)


def format_single_item(item: dict) -> None:
    """Format a single item as key-value pairs."""
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="accent")
    table.add_column("Value")
    for key, value in item.items():
        table.add_row(key.replace("_", " ").title(), _cell(value))
    get_console().print(table)


def format_error(message: str) -> None:
    """Format and display an error message."""
    get_console().print(f"[bold red]Error:[/bold red] {message}")


def format_success(message: str) -> None:
    """Format and display a success message."""
    get_console().print(f"[bold green]Success:[/bold green] {message}")


def format_warning(message: str) -> None:
    """Format and display a warning message."""
    get_console().print(f"[bold yellow]Warning:[/bold yellow] {message}")


def format_info(message: str) -> None:
    """Format and display an info message."""
    get_console().print(f"[bold blue]Info:[/bold blue] {message}")


# ============================================================================
# Pretty Format Implementation
# ============================================================================


def format_pretty(data: Any) -> None:
    """Format data in pretty format with colors."""
    console = get_console()
    if not data:
        console.print("[yellow]No data to display[/yellow]")
        return

    if isinstance(data, dict):
        if "projects" in data:
            format_projects_pretty(data["projects"])
        elif "tasks" in data:
            format_tasks_pretty(data["tasks"])
        elif "messages" in data:
            format_messages_pretty(data["messages"], data.get("names", {}))
        else:
            format_single_item(data)
    elif isinstance(data, list):
        format_dict_table(data)
    else:
        console.print(data)


def format_projects_pretty(projects: list[dict]) -> None:
    console = get_console()
    if not projects:
        console.print("[yellow]No projects found[/yellow]")
        return

    console.print(f"[accent]Projects[/accent] [muted]({len(projects)})[/muted]")
    for project in projects:
        status = project.get("status", "")
        style = STATUS_STYLES.get(status, "muted")
        tags = " ".join(f"#{tag}" for tag in project.get("tags") or [])
        console.print(
            f"  [{style}]●[/{style}] {escape(project['title'])} [muted]{project['id'][:8]}[/muted]"
            f"  [{style}]{status}[/{style}] {tags}".rstrip()
        )
        if project.get("description"):
            console.print(f"    [muted]{escape(project['description'])}[/muted]")


def format_tasks_pretty(tasks: list[dict]) -> None:
    console = get_console()
    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    console.print(f"[accent]Tasks[/accent] [muted]({len(tasks)})[/muted]")
    for task in tasks:
        console.print(f"  {format_task_line(task)}")


def format_task_line(task: dict) -> str:
    """Render one task: checkbox, title, short id and details."""
    done = task.get("status") == "Completed"
    box = "☑" if done else "☐"
    details = [task.get("status", "")]
    if task.get("due_date"):
        details.append(f"due {task['due_date']}")
    if task.get("assigned_to"):
        details.append(f"@{task['assigned_to'][:8]}")
    return f"{box} {escape(task['title'])} [muted]{task['id'][:8]} · {' · '.join(details)}[/muted]"


def format_messages_pretty(messages: list[dict], names: dict[str, str] | None = None) -> None:
    console = get_console()
    if not messages:
        console.print("[yellow]No messages yet[/yellow]")
        return
    for message in messages:
        console.print(format_message_line(message, names))


def format_message_line(message: dict, names: dict[str, str] | None = None) -> str:
    """Render one chat line: ``[time] sender: text``."""
    sender = (names or {}).get(message["sender_id"], message["sender_id"][:8])
    when = format_relative_time(message.get("created_at"))
    line = f"[muted]{when:>8}[/muted] [accent]{escape(sender)}[/accent]: {escape(message['message'])}"
    if message.get("pending"):
        line = f"[pending]{line} (sending…)[/pending]"
    return line


def format_quiet(data: Any) -> None:
    """Format output in quiet mode (IDs only)."""
    if isinstance(data, list):
        for item in data:
            if isinstance(item, dict) and "id" in item:
                print(item["id"])
    elif isinstance(data, dict):
        if "id" in data:
            print(data["id"])
        else:
            for key in ("projects", "tasks", "messages", "users"):
                if key in data:
                    format_quiet(data[key])


# ============================================================================
# Helper Functions
# ============================================================================


def format_relative_time(value: str | datetime | None) -> str:
    """Format timestamp as relative time."""
    if not value:
        return ""

    if isinstance(value, datetime):
        date = value
    else:
        try:
            date = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return ""
    if date.tzinfo is None:
        date = date.replace(tzinfo=UTC)

    seconds = (datetime.now(UTC) - date).total_seconds()
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{int(seconds / 60)}m ago"
    if seconds < 86400:
        return f"{int(seconds / 3600)}h ago"
    return f"{int(seconds / 86400)}d ago"
