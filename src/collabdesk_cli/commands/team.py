"""Team commands: members, workload and profiles."""

import typer
from rich.markup import escape
from rich.table import Table

from collabdesk_cli.services.identity_resolver import display_name, is_placeholder_email
from collabdesk_cli.services.team_service import TeamService
from collabdesk_cli.utils.typer_helpers import SuggestingGroup
from collabdesk_cli.utils.ui.console import get_console
from collabdesk_cli.utils.ui.formatters import format_output, format_success

from .decorators import command_wrapper
from .session import open_workspace, resolve_team

app = typer.Typer(cls=SuggestingGroup, help="Team members and workload")


@app.command("list")
@command_wrapper
async def list_members(
    team: str | None = typer.Option(None, "--team", help="Team ID"),
    output: str = typer.Option("pretty", "--output", "-o", help="Output format"),
) -> None:
    """List team members with their task and project counts."""
    team_id = resolve_team(team)
    async with open_workspace() as (workspace, _):
        service = TeamService(workspace)
        await service.load(team_id)
        overview = service.overview()

    if output != "pretty":
        format_output(overview.model_dump(mode="json"), output)
        return

    console = get_console()
    console.print(
        f"[accent]Members[/accent] {len(overview.members)}   "
        f"[status.active]Active projects[/status.active] {overview.active_projects}   "
        f"[status.completed]Completed projects[/status.completed] {overview.completed_projects}"
    )
    table = Table(show_header=True, header_style="bold magenta")
    for column in ("Name", "Email", "Phone", "Tasks", "Projects", "Joined"):
        table.add_column(column)
    for member in overview.members:
        user = member.user
        email = "-" if is_placeholder_email(user.email) else user.email
        table.add_row(
            escape(display_name(user.id, user.username, user.email)),
            email,
            user.phone or "-",
            f"{member.tasks.active} active / {member.tasks.completed} done",
            f"{member.projects.active} active / {member.projects.completed} done",
            user.joined_at.strftime("%Y-%m-%d"),
        )
    console.print(table)


@app.command("profile")
@command_wrapper
async def edit_profile(
    username: str | None = typer.Option(None, "--username", help="Display name"),
    phone: str | None = typer.Option(None, "--phone", help="Phone number"),
    user_id: str | None = typer.Option(None, "--user", help="User ID (defaults to you)"),
    output: str = typer.Option("table", "--output", "-o", help="Output format"),
) -> None:
    """Edit a user profile."""
    async with open_workspace() as (workspace, auth):
        if user_id is None:
            user_id = (await auth.require_user()).id
        await workspace.users.fetch()
        user = await workspace.users.update_profile(user_id, username=username, phone=phone)
        format_success("Profile updated")
        format_output(user.model_dump(mode="json"), output)
