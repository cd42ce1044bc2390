"""Project store - projects of one team, newest first."""

from __future__ import annotations

from collabdesk_cli.models import Project, ProjectCreate, ProjectStatus, ProjectUpdate, Scope
from collabdesk_cli.services.entity_store import EntityStore


class ProjectStore(EntityStore[Project]):
    """Cache of the projects of the active team."""

    table = "projects"
    model = Project
    create_model = ProjectCreate
    update_model = ProjectUpdate

    @staticmethod
    def scope_for(team_id: str) -> Scope:
        return Scope.where("team_id", team_id)

    async def fetch(self, team_id: str | Scope) -> tuple[Project, ...]:
        """Load the projects of a team."""
        scope = team_id if isinstance(team_id, Scope) else self.scope_for(team_id)
        return await super().fetch(scope)

    def by_status(self, status: ProjectStatus) -> list[Project]:
        return [project for project in self.items if project.status == status]
