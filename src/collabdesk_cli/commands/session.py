"""Workspace access shared by the command groups."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from collabdesk_cli.models import ValidationError
from collabdesk_cli.services.auth_service import AuthService
from collabdesk_cli.services.config_service import get_config_service
from collabdesk_cli.services.workspace import Workspace, build_workspace


@asynccontextmanager
async def open_workspace() -> AsyncIterator[tuple[Workspace, AuthService]]:
    """Open the workspace of the current context and resume its session."""
    config_service = get_config_service()
    async with build_workspace(config_service) as workspace:
        auth = AuthService(workspace, config_service)
        await auth.restore()
        yield workspace, auth


def resolve_team(team_id: str | None) -> str:
    """The explicit team, else the team configured on the current context.

    Raises:
        ValidationError: If no team is selected
    """
    if team_id:
        return team_id
    context = get_config_service().get_current_context()
    if not context.team_id:
        raise ValidationError(
            "No team selected. Use --team or 'collabdesk config team <team-id>'."
        )
    return context.team_id
