"""Unit tests for EntityStore semantics, exercised through ProjectStore and TaskStore.

Most tests run against the in-memory SQLite backend. Tests about in-flight
requests use an AsyncMock remote gated by an asyncio.Event so the timing of
the response is under the test's control.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from collabdesk_cli.models import (
    NotFoundError,
    Project,
    ProjectCreate,
    ProjectStatus,
    Scope,
    TransportError,
    ValidationError,
)
from collabdesk_cli.services.entity_store import validate_payload
from collabdesk_cli.services.project_store import ProjectStore
from collabdesk_cli.services.task_store import TaskStore

_NOW = "2024-06-15T09:00:00+00:00"


def _row(project_id: str, title: str = "Alpha", team_id: str = "team-1", created_at: str = _NOW) -> dict:
    return {
        "id": project_id,
        "team_id": team_id,
        "title": title,
        "status": "Active",
        "tags": [],
        "created_at": created_at,
        "updated_at": created_at,
    }


class GatedRemote:
    """Remote whose select() blocks until released."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0
        self.gate = asyncio.Event()

    async def select(self, table, scope, order):
        self.calls += 1
        response = self.responses.pop(0)
        await self.gate.wait()
        if isinstance(response, Exception):
            raise response
        return response


# ---------------------------------------------------------------------------
# validate_payload
# ---------------------------------------------------------------------------


class TestValidatePayload:
    def test_accepts_mapping(self):
        payload = validate_payload(ProjectCreate, {"team_id": "t1", "title": "  Alpha  "})
        assert payload.title == "Alpha"

    def test_rejects_blank_title(self):
        with pytest.raises(ValidationError, match="title"):
            validate_payload(ProjectCreate, {"team_id": "t1", "title": "   "})

    def test_passes_model_instance_through(self):
        draft = ProjectCreate(team_id="t1", title="Alpha")
        assert validate_payload(ProjectCreate, draft) is draft


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


class TestFetch:
    @pytest.mark.asyncio
    async def test_fetch_replaces_cache(self, backend):
        store = ProjectStore(backend)
        await backend.insert("projects", {"team_id": "team-1", "title": "Alpha"})
        await backend.insert("projects", {"team_id": "team-2", "title": "Other"})

        items = await store.fetch("team-1")

        assert [p.title for p in items] == ["Alpha"]
        assert store.items == items
        assert store.scope == Scope.where("team_id", "team-1")
        assert isinstance(items[0], Project)
        assert not store.loading

    @pytest.mark.asyncio
    async def test_fetch_other_scope_replaces_wholesale(self, backend):
        store = ProjectStore(backend)
        await backend.insert("projects", {"team_id": "team-1", "title": "Alpha"})
        await backend.insert("projects", {"team_id": "team-2", "title": "Other"})

        await store.fetch("team-1")
        await store.fetch("team-2")

        assert [p.title for p in store.items] == ["Other"]

    @pytest.mark.asyncio
    async def test_concurrent_fetches_share_one_request(self):
        remote = GatedRemote([_row("p1")])
        store = ProjectStore(remote)

        first = asyncio.create_task(store.fetch("team-1"))
        second = asyncio.create_task(store.fetch("team-1"))
        await asyncio.sleep(0)
        assert store.loading
        remote.gate.set()

        a, b = await asyncio.gather(first, second)
        assert remote.calls == 1
        assert a == b
        assert [p.id for p in store.items] == ["p1"]

    @pytest.mark.asyncio
    async def test_refresh_during_fetch_reads_again(self):
        remote = GatedRemote([_row("p1")], [_row("p2"), _row("p1")])
        store = ProjectStore(remote)

        fetch = asyncio.create_task(store.fetch("team-1"))
        await asyncio.sleep(0)
        refresh = asyncio.create_task(store.refresh(ProjectStore.scope_for("team-1")))
        await asyncio.sleep(0)
        remote.gate.set()

        await asyncio.gather(fetch, refresh)
        assert remote.calls == 2
        assert [p.id for p in store.items] == ["p2", "p1"]

    @pytest.mark.asyncio
    async def test_failed_fetch_keeps_cache(self):
        remote = AsyncMock()
        remote.select.side_effect = [[_row("p1")], TransportError("503: unavailable", 503)]
        store = ProjectStore(remote)
        await store.fetch("team-1")

        with pytest.raises(TransportError):
            await store.fetch("team-1")

        assert [p.id for p in store.items] == ["p1"]
        assert not store.loading

    @pytest.mark.asyncio
    async def test_malformed_row_is_a_transport_error(self):
        remote = AsyncMock()
        remote.select.return_value = [{"id": "p1"}]
        store = ProjectStore(remote)

        with pytest.raises(TransportError, match="malformed"):
            await store.fetch("team-1")
        assert store.items == ()

    @pytest.mark.asyncio
    async def test_clear_discards_in_flight_response(self):
        remote = GatedRemote([_row("p1")])
        store = ProjectStore(remote)

        fetch = asyncio.create_task(store.fetch("team-1"))
        await asyncio.sleep(0)
        store.clear()
        remote.gate.set()
        await fetch

        assert store.items == ()
        assert store.scope is None

    @pytest.mark.asyncio
    async def test_fetch_after_clear_does_not_join_older_request(self):
        remote = GatedRemote([_row("old-user-1")], [_row("new-user-1")])
        store = ProjectStore(remote)

        before = asyncio.create_task(store.fetch("team-1"))
        await asyncio.sleep(0)
        store.clear()
        assert not store.loading
        after = asyncio.create_task(store.fetch("team-1"))
        await asyncio.sleep(0)
        remote.gate.set()
        await asyncio.gather(before, after)

        assert remote.calls == 2
        assert [p.id for p in await after] == ["new-user-1"]
        assert [p.id for p in store.items] == ["new-user-1"]

    @pytest.mark.asyncio
    async def test_request_queued_before_clear_is_discarded(self):
        remote = GatedRemote([_row("p1")])
        store = ProjectStore(remote)
        remote.gate.set()

        # The shared request has been created but has not reached the remote yet
        fetch = asyncio.create_task(store.fetch("team-1"))
        await asyncio.sleep(0)
        store.clear()
        await fetch

        assert store.items == ()
        assert store.scope is None

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_fetch(self):
        remote = GatedRemote([_row("p1")])
        store = ProjectStore(remote)

        first = asyncio.create_task(store.fetch("team-1"))
        await asyncio.sleep(0)
        first.cancel()
        second = asyncio.create_task(store.fetch("team-1"))
        await asyncio.sleep(0)
        remote.gate.set()

        assert [p.id for p in await second] == ["p1"]
        assert remote.calls == 1


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


class TestMutations:
    @pytest.mark.asyncio
    async def test_create_places_canonical_row_first(self, backend):
        store = ProjectStore(backend)
        await backend.insert("projects", {"team_id": "team-1", "title": "Old"})
        await store.fetch("team-1")

        project = await store.create({"team_id": "team-1", "title": "New", "tags": ["x"]})

        assert [p.title for p in store.items] == ["New", "Old"]
        assert project.tags == ["x"]
        assert project.id == store.items[0].id

    @pytest.mark.asyncio
    async def test_create_outside_scope_is_not_cached(self, backend):
        store = ProjectStore(backend)
        await store.fetch("team-1")

        project = await store.create({"team_id": "team-2", "title": "Elsewhere"})

        assert project.team_id == "team-2"
        assert store.items == ()

    @pytest.mark.asyncio
    async def test_invalid_draft_makes_no_remote_call(self):
        remote = AsyncMock()
        store = ProjectStore(remote)

        with pytest.raises(ValidationError):
            await store.create({"team_id": "team-1", "title": ""})
        remote.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejected_create_leaves_cache_untouched(self):
        remote = AsyncMock()
        remote.select.return_value = [_row("p1")]
        remote.insert.side_effect = TransportError("409: conflict", 409)
        store = ProjectStore(remote)
        await store.fetch("team-1")

        with pytest.raises(TransportError):
            await store.create({"team_id": "team-1", "title": "Dup"})
        assert [p.id for p in store.items] == ["p1"]

    @pytest.mark.asyncio
    async def test_update_replaces_entry_in_place(self, backend):
        store = ProjectStore(backend)
        first = await store.create({"team_id": "team-1", "title": "First"})
        await store.create({"team_id": "team-1", "title": "Second"})
        await store.fetch("team-1")

        updated = await store.update(first.id, {"status": ProjectStatus.COMPLETED})

        assert updated.status is ProjectStatus.COMPLETED
        assert [p.title for p in store.items] == ["Second", "First"]
        assert store.get(first.id).status is ProjectStatus.COMPLETED
        assert store.get(first.id).updated_at > first.updated_at

    @pytest.mark.asyncio
    async def test_update_of_missing_row_is_a_no_op(self, backend):
        store = ProjectStore(backend)
        assert await store.update("missing", {"title": "x"}) is None

    @pytest.mark.asyncio
    async def test_empty_patch_rejected(self, backend):
        store = ProjectStore(backend)
        with pytest.raises(ValidationError, match="no fields"):
            await store.update("p1", {})

    @pytest.mark.asyncio
    async def test_update_cannot_clear_title(self, backend):
        store = ProjectStore(backend)
        with pytest.raises(ValidationError):
            await store.update("p1", {"title": None})

    @pytest.mark.asyncio
    async def test_delete_removes_entry(self, backend):
        store = ProjectStore(backend)
        project = await store.create({"team_id": "team-1", "title": "Doomed"})
        await store.fetch("team-1")

        await store.delete(project.id)
        await store.delete(project.id)

        assert store.items == ()

    @pytest.mark.asyncio
    async def test_created_row_matches_fetched_row(self, backend):
        store = ProjectStore(backend)
        created = await store.create({"team_id": "team-1", "title": "Alpha", "tags": ["a"]})

        fetched = await store.fetch("team-1")

        assert fetched == (created,)

    @pytest.mark.asyncio
    async def test_mixed_mutations_never_duplicate(self, backend):
        store = ProjectStore(backend)
        await store.fetch("team-1")
        a = await store.create({"team_id": "team-1", "title": "A"})
        b = await store.create({"team_id": "team-1", "title": "B"})
        await store.update(a.id, {"title": "A2"})
        await store.refresh(ProjectStore.scope_for("team-1"))
        await store.delete(b.id)
        c = await store.create({"team_id": "team-1", "title": "C"})

        ids = [p.id for p in store.items]
        assert ids == [c.id, a.id]
        assert len(set(ids)) == len(ids)
        assert store.items == await store.fetch("team-1")

    def test_sync_confirm_store_builds_no_pending_entries(self, backend):
        store = ProjectStore(backend)
        draft = store.prepare_create({"team_id": "team-1", "title": "Alpha"})

        with pytest.raises(ValidationError, match="confirmed synchronously"):
            store.build_pending(draft)

    @pytest.mark.asyncio
    async def test_delete_tolerates_not_found(self):
        remote = AsyncMock()
        remote.delete.side_effect = NotFoundError("gone")
        store = ProjectStore(remote)
        await store.delete("p1")


# ---------------------------------------------------------------------------
# Listeners and helpers
# ---------------------------------------------------------------------------


class TestListeners:
    @pytest.mark.asyncio
    async def test_listener_sees_every_change(self, backend):
        store = ProjectStore(backend)
        seen = []
        remove = store.add_listener(lambda items: seen.append(len(items)))

        await store.fetch("team-1")
        await store.create({"team_id": "team-1", "title": "Alpha"})
        remove()
        await store.create({"team_id": "team-1", "title": "Beta"})

        assert seen == [0, 1]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_the_store(self, backend):
        store = ProjectStore(backend)

        def broken(items):
            raise RuntimeError("boom")

        store.add_listener(broken)
        await store.create({"team_id": "team-1", "title": "Alpha"})
        assert len(store) == 1


class TestTaskStore:
    @pytest.mark.asyncio
    async def test_assigned_to_and_fetch_all(self, backend):
        project = await backend.insert("projects", {"team_id": "team-1", "title": "Alpha"})
        store = TaskStore(backend)
        await store.create({"project_id": project["id"], "title": "Mine", "assigned_to": "u1"})
        await store.create({"project_id": project["id"], "title": "Theirs", "assigned_to": "u2"})

        await store.fetch_all()

        assert [t.title for t in store.assigned_to("u1")] == ["Mine"]
        assert store.scope.is_unscoped

    @pytest.mark.asyncio
    async def test_due_date_round_trip(self, backend):
        project = await backend.insert("projects", {"team_id": "team-1", "title": "Alpha"})
        store = TaskStore(backend)
        due = datetime(2024, 7, 1, tzinfo=UTC).date()

        task = await store.create({"project_id": project["id"], "title": "Ship", "due_date": due})

        assert task.due_date == due
        assert (await store.fetch(project["id"]))[0].due_date == due
