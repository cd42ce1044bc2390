"""Main entry point for CollabDesk CLI."""

import typer

from collabdesk_cli import __version__
from collabdesk_cli.commands import auth, chat, config, projects, tasks, team
from collabdesk_cli.services.config_service import get_config_service
from collabdesk_cli.utils.typer_helpers import SuggestingGroup
from collabdesk_cli.utils.ui.console import get_console

app = typer.Typer(
    name="collabdesk",
    cls=SuggestingGroup,
    help="Projects, tasks and team chat from the terminal",
    no_args_is_help=True,
)

app.add_typer(auth.app, name="auth", help="Authentication commands")
app.add_typer(projects.app, name="projects", help="Project management commands")
app.add_typer(tasks.app, name="tasks", help="Task management commands")
app.add_typer(chat.app, name="chat", help="Project and global chat")
app.add_typer(team.app, name="team", help="Team members and workload")
app.add_typer(config.app, name="config", help="Configuration management")


@app.command()
def version() -> None:
    """Show version and the active context."""
    console = get_console()
    console.print(f"[bold]CollabDesk CLI[/bold] version [accent]{__version__}[/accent]")
    context = get_config_service().get_current_context()
    console.print(f"[muted]context:[/muted] {context.name} ({context.type}) {context.source}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
