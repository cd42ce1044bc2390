"""Team statistics computed from the store snapshots."""

from __future__ import annotations

import asyncio

from pydantic import BaseModel

from collabdesk_cli.models import ProjectStatus, TaskStatus, User
from collabdesk_cli.services.workspace import Workspace


class TaskStats(BaseModel):
    active: int = 0
    completed: int = 0


class ProjectStats(BaseModel):
    active: int = 0
    completed: int = 0


class MemberSummary(BaseModel):
    user: User
    tasks: TaskStats
    projects: ProjectStats


class TeamOverview(BaseModel):
    members: list[MemberSummary]
    active_projects: int
    completed_projects: int


class TeamService:
    """Per-member workload of a team."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    async def load(self, team_id: str) -> None:
        """Fetch users, the team's projects and every task."""
        await asyncio.gather(
            self.workspace.users.fetch(),
            self.workspace.projects.fetch(team_id),
            self.workspace.tasks.fetch_all(),
        )

    def user_task_stats(self, user_id: str) -> TaskStats:
        tasks = self.workspace.tasks.assigned_to(user_id)
        completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED)
        return TaskStats(active=len(tasks) - completed, completed=completed)

    def user_project_stats(self, user_id: str) -> ProjectStats:
        """Count the projects in which the user has assigned tasks."""
        project_ids = {task.project_id for task in self.workspace.tasks.assigned_to(user_id)}
        stats = ProjectStats()
        for project_id in project_ids:
            project = self.workspace.projects.get(project_id)
            if project is None:
                continue
            if project.status == ProjectStatus.ACTIVE:
                stats.active += 1
            elif project.status == ProjectStatus.COMPLETED:
                stats.completed += 1
        return stats

    def overview(self) -> TeamOverview:
        members = [
            MemberSummary(
                user=user,
                tasks=self.user_task_stats(user.id),
                projects=self.user_project_stats(user.id),
            )
            for user in self.workspace.users.items
        ]
        return TeamOverview(
            members=members,
            active_projects=len(self.workspace.projects.by_status(ProjectStatus.ACTIVE)),
            completed_projects=len(self.workspace.projects.by_status(ProjectStatus.COMPLETED)),
        )
