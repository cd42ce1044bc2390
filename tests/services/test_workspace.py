"""Tests for building and tearing down workspaces."""

from __future__ import annotations

import asyncio

import pytest

from collabdesk_cli.adapters.polling import PollingPushTransport
from collabdesk_cli.adapters.rest_api import RestApiBackend
from collabdesk_cli.adapters.sqlite import SqliteBackend
from collabdesk_cli.models import Context
from collabdesk_cli.services.config_service import ConfigService
from collabdesk_cli.services.workspace import Workspace, build_workspace


@pytest.fixture()
def config_service():
    return ConfigService()


class GatedSelectBackend(SqliteBackend):
    """Local backend whose first select waits until released."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gate = asyncio.Event()
        self.selects = 0

    async def select(self, table, scope, order):
        self.selects += 1
        rows = await super().select(table, scope, order)
        if self.selects == 1:
            await self.gate.wait()
        return rows


class TestBuildWorkspace:
    def test_default_context_is_local(self, config_service):
        workspace = build_workspace(config_service)

        assert workspace.storage_type == "local"
        assert isinstance(workspace.remote, SqliteBackend)
        assert workspace.remote is workspace.push is workspace.identity

    def test_remote_context(self, config_service):
        context = Context(
            name="cloud", type="remote", source="https://backend.example.com/", anon_key="anon"
        )
        config_service.set("sync.interval", 2.5)

        workspace = build_workspace(config_service, context)

        assert workspace.storage_type == "remote"
        assert isinstance(workspace.remote, RestApiBackend)
        assert workspace.remote is workspace.identity
        assert isinstance(workspace.push, PollingPushTransport)
        assert workspace.push.interval == 2.5
        assert workspace.remote.client.base_url == "https://backend.example.com"

    def test_unknown_context_type(self, config_service):
        context = Context.model_construct(name="odd", type="ftp", source="x")
        with pytest.raises(ValueError, match="Invalid context type"):
            build_workspace(config_service, context)

    def test_every_store_is_wired(self, workspace):
        assert [store.table for store in workspace.stores] == [
            "projects",
            "tasks",
            "messages",
            "profiles",
        ]


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_reset_clears_caches_and_channels(self, workspace):
        await workspace.projects.create({"team_id": "team-1", "title": "Alpha"})
        await workspace.subscriptions.acquire(workspace.projects)

        await workspace.reset()

        assert all(len(store) == 0 for store in workspace.stores)
        assert workspace.subscriptions.channels == []

    @pytest.mark.asyncio
    async def test_close_releases_backend_once(self, tmp_path, config_service):
        context = Context(name="file", type="local", source=str(tmp_path / "ws.db"))
        async with build_workspace(config_service, context) as workspace:
            await workspace.projects.create({"team_id": "team-1", "title": "Alpha"})
            await workspace.subscriptions.acquire(workspace.projects)

        assert workspace.remote._connection is None
        assert workspace.subscriptions.channels == []

    @pytest.mark.asyncio
    async def test_local_workspace_persists(self, tmp_path, config_service):
        context = Context(name="file", type="local", source=str(tmp_path / "ws.db"))
        async with build_workspace(config_service, context) as workspace:
            await workspace.projects.create({"team_id": "team-1", "title": "Alpha"})

        async with build_workspace(config_service, context) as workspace:
            projects = await workspace.projects.fetch("team-1")

        assert [p.title for p in projects] == ["Alpha"]

    @pytest.mark.asyncio
    async def test_response_resolving_after_reset_is_absorbed(self, until):
        backend = GatedSelectBackend(":memory:")
        async with Workspace(backend, backend, backend) as workspace:
            await backend.sign_up("ana@example.com", "secret1")
            old = await backend.insert("projects", {"team_id": "team-1", "title": "Before sign-out"})
            stale = asyncio.create_task(workspace.projects.fetch("team-1"))
            await until(lambda: backend.selects == 1)

            await workspace.reset()
            await backend.delete("projects", old["id"])
            await backend.insert("projects", {"team_id": "team-1", "title": "After sign-in"})
            fresh = await workspace.projects.fetch("team-1")

            backend.gate.set()
            await stale

            assert backend.selects == 2
            assert [p.title for p in fresh] == ["After sign-in"]
            assert [p.title for p in workspace.projects.items] == ["After sign-in"]
