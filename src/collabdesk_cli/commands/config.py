"""Configuration management commands."""

from enum import Enum

import typer

from collabdesk_cli.models import Context
from collabdesk_cli.services.config_service import get_config_service
from collabdesk_cli.utils.typer_helpers import SuggestingGroup
from collabdesk_cli.utils.ui.console import get_console
from collabdesk_cli.utils.ui.formatters import format_output, format_success

from .decorators import command_wrapper

app = typer.Typer(cls=SuggestingGroup, help="Configuration management commands")


class ThemeMode(str, Enum):
    DARK = "dark"
    LIGHT = "light"
    TOGGLE = "toggle"


class ContextType(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


def _parse_value(value: str) -> str | int | float | bool | None:
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered in ("null", "none"):
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


@app.command("view")
@command_wrapper
def view_config(
    output: str = typer.Option("table", "--output", "-o", help="Output format"),
) -> None:
    """View the current configuration."""
    config = get_config_service().config
    format_output(config.model_dump(mode="json", exclude={"contexts"}), output)


@app.command("get")
@command_wrapper
def get_config(
    key: str = typer.Argument(..., help="Configuration key (e.g., sync.interval)"),
) -> None:
    """Get a configuration value."""
    value = get_config_service().get(key)
    if value is None:
        raise ValueError(f"Configuration key '{key}' not found")
    get_console().print(value)


@app.command("set")
@command_wrapper
def set_config(
    key: str = typer.Argument(..., help="Configuration key (e.g., api.timeout)"),
    value: str = typer.Argument(..., help="Configuration value"),
) -> None:
    """Set a configuration value."""
    parsed = _parse_value(value)
    get_config_service().set(key, parsed)
    format_success(f"Configuration '{key}' set to '{parsed}'")


@app.command("theme")
@command_wrapper
def set_theme(
    mode: ThemeMode = typer.Argument(ThemeMode.TOGGLE, help="dark, light or toggle"),
) -> None:
    """Switch between dark and light output."""
    config_service = get_config_service()
    if mode is ThemeMode.TOGGLE:
        dark = not config_service.config.ui.dark_mode
    else:
        dark = mode is ThemeMode.DARK
    config_service.set("ui.dark_mode", dark)
    get_console.cache_clear()
    format_success(f"Theme set to {'dark' if dark else 'light'}")


@app.command("team")
@command_wrapper
def set_team(
    team_id: str = typer.Argument(..., help="Team ID"),
    context: str | None = typer.Option(None, "--context", help="Context name (defaults to current)"),
) -> None:
    """Select the team whose projects are shown."""
    ctx = get_config_service().set_team(team_id, context)
    format_success(f"Context '{ctx.name}' now shows team {team_id}")


@app.command("contexts")
@command_wrapper
def list_contexts(
    output: str = typer.Option("table", "--output", "-o", help="Output format"),
) -> None:
    """List configured contexts."""
    config_service = get_config_service()
    current = config_service.config.current_context_name
    rows = [
        {**ctx.model_dump(exclude={"anon_key"}), "current": ctx.name == current}
        for ctx in config_service.list_contexts()
    ]
    format_output(rows, output)


@app.command("use")
@command_wrapper
def use_context(
    name: str = typer.Argument(..., help="Context name"),
) -> None:
    """Switch the current context."""
    context = get_config_service().use_context(name)
    format_success(f"Switched to context '{context.name}' ({context.type})")


@app.command("add-context")
@command_wrapper
def add_context(
    name: str = typer.Argument(..., help="Context name"),
    source: str = typer.Option(..., "--source", help="Database path or backend URL"),
    context_type: ContextType = typer.Option(ContextType.REMOTE, "--type", help="local or remote"),
    anon_key: str | None = typer.Option(None, "--anon-key", help="Public API key (remote)"),
    team: str | None = typer.Option(None, "--team", help="Team ID"),
    use: bool = typer.Option(False, "--use", help="Switch to the new context"),
) -> None:
    """Add a context."""
    config_service = get_config_service()
    context = Context(
        name=name, type=context_type.value, source=source, anon_key=anon_key, team_id=team
    )
    config_service.add_context(context)
    if use:
        config_service.use_context(name)
    format_success(f"Context '{name}' added")


@app.command("remove-context")
@command_wrapper
def remove_context(
    name: str = typer.Argument(..., help="Context name"),
) -> None:
    """Remove a context and its saved session."""
    get_config_service().remove_context(name)
    format_success(f"Context '{name}' removed")


@app.command("reset")
@command_wrapper
def reset_config(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Reset configuration to defaults and drop every saved session."""
    if not yes and not typer.confirm("Reset all configuration?"):
        raise typer.Exit(0)
    get_config_service().reset_config()
    format_success("Configuration reset")
