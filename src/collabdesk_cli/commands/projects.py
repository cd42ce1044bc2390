"""Project management commands."""

import typer

from collabdesk_cli.models import NotFoundError, ProjectStatus
from collabdesk_cli.utils.typer_helpers import SuggestingGroup
from collabdesk_cli.utils.ui.formatters import format_output, format_success, format_warning

from .decorators import command_wrapper
from .session import open_workspace, resolve_team

app = typer.Typer(cls=SuggestingGroup, help="Project management commands")


def _patch(**fields) -> dict:
    return {key: value for key, value in fields.items() if value is not None}


@app.command("list")
@command_wrapper
async def list_projects(
    team: str | None = typer.Option(None, "--team", help="Team ID (defaults to the context team)"),
    status: ProjectStatus | None = typer.Option(None, "--status", help="Only this status"),
    output: str = typer.Option("pretty", "--output", "-o", help="Output format"),
) -> None:
    """List the projects of a team, newest first."""
    team_id = resolve_team(team)
    async with open_workspace() as (workspace, _):
        projects = await workspace.projects.fetch(team_id)
        if status is not None:
            projects = workspace.projects.by_status(status)
        format_output(
            {"projects": [p.model_dump(mode="json") for p in projects]}, output
        )


@app.command("show")
@command_wrapper
async def show_project(
    project_id: str = typer.Argument(..., help="Project ID"),
    team: str | None = typer.Option(None, "--team", help="Team ID"),
    output: str = typer.Option("pretty", "--output", "-o", help="Output format"),
) -> None:
    """Show a project with its tasks."""
    team_id = resolve_team(team)
    async with open_workspace() as (workspace, _):
        await workspace.projects.fetch(team_id)
        project = workspace.projects.get(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        tasks = await workspace.tasks.fetch(project_id)

        format_output(project.model_dump(mode="json"), output)
        format_output({"tasks": [t.model_dump(mode="json") for t in tasks]}, output)


@app.command("create")
@command_wrapper
async def create_project(
    title: str = typer.Argument(..., help="Project title"),
    description: str | None = typer.Option(None, "--description", "-d", help="Description"),
    status: ProjectStatus = typer.Option(ProjectStatus.ACTIVE, "--status", help="Status"),
    tags: list[str] = typer.Option([], "--tag", "-t", help="Tag (repeatable)"),
    team: str | None = typer.Option(None, "--team", help="Team ID"),
    output: str = typer.Option("pretty", "--output", "-o", help="Output format"),
) -> None:
    """Create a new project."""
    team_id = resolve_team(team)
    async with open_workspace() as (workspace, _):
        project = await workspace.mutations.create(
            workspace.projects,
            {
                "team_id": team_id,
                "title": title,
                "description": description,
                "status": status,
                "tags": tags,
            },
        )
        format_success(f"Project created: {project.id}")
        format_output(project.model_dump(mode="json"), output)


@app.command("update")
@command_wrapper
async def update_project(
    project_id: str = typer.Argument(..., help="Project ID"),
    title: str | None = typer.Option(None, "--title", help="New title"),
    description: str | None = typer.Option(None, "--description", "-d", help="New description"),
    status: ProjectStatus | None = typer.Option(None, "--status", help="New status"),
    tags: list[str] | None = typer.Option(None, "--tag", "-t", help="Replace tags (repeatable)"),
    output: str = typer.Option("pretty", "--output", "-o", help="Output format"),
) -> None:
    """Edit a project."""
    patch = _patch(title=title, description=description, status=status, tags=tags or None)
    async with open_workspace() as (workspace, _):
        project = await workspace.mutations.update(workspace.projects, project_id, patch)
        if project is None:
            format_warning(f"Project no longer exists: {project_id}")
            return
        format_success(f"Project updated: {project_id}")
        format_output(project.model_dump(mode="json"), output)


@app.command("delete")
@command_wrapper
async def delete_project(
    project_id: str = typer.Argument(..., help="Project ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a project together with its tasks and chat."""
    if not yes and not typer.confirm(
        f"Are you sure you want to delete project {project_id}?"
    ):
        format_warning("Cancelled")
        raise typer.Exit(0)

    async with open_workspace() as (workspace, _):
        await workspace.mutations.delete(workspace.projects, project_id)
        format_success(f"Project deleted: {project_id}")
