"""Authentication commands."""

import typer
from rich.prompt import Prompt

from collabdesk_cli.models import ValidationError
from collabdesk_cli.utils.typer_helpers import SuggestingGroup
from collabdesk_cli.utils.ui.formatters import format_info, format_output, format_success

from .decorators import command_wrapper
from .session import open_workspace

app = typer.Typer(cls=SuggestingGroup, help="Authentication commands")


def _credentials(email: str | None, password: str | None) -> tuple[str, str]:
    if not email:
        email = Prompt.ask("Email")
    if not password:
        password = Prompt.ask("Password", password=True)
    if not email or not password:
        raise ValidationError("Email and password are required")
    return email, password


@app.command()
@command_wrapper
async def login(
    email: str | None = typer.Option(None, "--email", help="Email address"),
    password: str | None = typer.Option(None, "--password", help="Password"),
) -> None:
    """Sign in to the current context."""
    email, password = _credentials(email, password)
    async with open_workspace() as (_, auth):
        user = await auth.sign_in(email, password)
        format_success(f"Signed in as {user.email}")


@app.command()
@command_wrapper
async def signup(
    email: str | None = typer.Option(None, "--email", help="Email address"),
    password: str | None = typer.Option(None, "--password", help="Password"),
) -> None:
    """Create an account on the current context and sign in."""
    email, password = _credentials(email, password)
    async with open_workspace() as (_, auth):
        user = await auth.sign_up(email, password)
        format_success(f"Account created for {user.email}")


@app.command("reset-password")
@command_wrapper
async def reset_password(
    email: str | None = typer.Option(None, "--email", help="Email address"),
    redirect_to: str | None = typer.Option(
        None, "--redirect-to", help="Page the reset link should open"
    ),
) -> None:
    """Send password reset instructions to an email address."""
    if not email:
        email = Prompt.ask("Email")
    async with open_workspace() as (_, auth):
        await auth.reset_password(email, redirect_to)
        format_success("Check your inbox for password reset instructions.")


@app.command()
@command_wrapper
async def logout() -> None:
    """Sign out and forget the saved session."""
    async with open_workspace() as (_, auth):
        if await auth.current_user() is None:
            format_info("Not signed in")
            return
        await auth.sign_out()
        format_success("Signed out")


@app.command()
@command_wrapper
async def whoami(
    output: str = typer.Option("table", "--output", "-o", help="Output format"),
) -> None:
    """Show the signed-in user."""
    async with open_workspace() as (workspace, auth):
        await auth.require_user()
        await workspace.users.fetch()
        user = workspace.users.current_user()
        format_output(user.model_dump(mode="json"), output)
