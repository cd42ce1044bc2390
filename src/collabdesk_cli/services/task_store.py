"""Task store - tasks of one project, or of every project."""

from __future__ import annotations

from collabdesk_cli.models import Scope, Task, TaskCreate, TaskUpdate
from collabdesk_cli.services.entity_store import EntityStore


class TaskStore(EntityStore[Task]):
    """Cache of tasks, newest first."""

    table = "tasks"
    model = Task
    create_model = TaskCreate
    update_model = TaskUpdate

    @staticmethod
    def scope_for(project_id: str) -> Scope:
        return Scope.where("project_id", project_id)

    async def fetch(self, project_id: str | Scope) -> tuple[Task, ...]:
        """Load the tasks of a project."""
        scope = project_id if isinstance(project_id, Scope) else self.scope_for(project_id)
        return await super().fetch(scope)

    async def fetch_all(self) -> tuple[Task, ...]:
        """Load every task visible to the caller."""
        return await super().fetch(Scope.unscoped())

    def assigned_to(self, user_id: str) -> list[Task]:
        return [task for task in self.items if task.assigned_to == user_id]
