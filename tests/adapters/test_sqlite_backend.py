"""Unit tests for the local SQLite backend.

The backend has to behave like the remote one: server-assigned ids and
timestamps, constraint violations raised as TransportError, cascading
deletes, scoped push delivery and an authentication table.
"""

from __future__ import annotations

import asyncio

import pytest

from collabdesk_cli.models import (
    ALL_CHANGES,
    AuthenticationError,
    ChangeType,
    NotFoundError,
    OrderBy,
    Scope,
    TransportError,
)


async def _project(backend, title="Alpha", team_id="team-1", **extra):
    return await backend.insert("projects", {"team_id": team_id, "title": title, **extra})


# ---------------------------------------------------------------------------
# RemoteStore
# ---------------------------------------------------------------------------


class TestInsertAndSelect:
    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_timestamps(self, backend):
        row = await _project(backend, id="client-id", created_at="1999-01-01")
        assert row["id"] != "client-id"
        assert row["created_at"] != "1999-01-01"
        assert row["updated_at"] == row["created_at"]
        assert row["status"] == "Active"
        assert row["tags"] == []

    @pytest.mark.asyncio
    async def test_json_columns_round_trip(self, backend):
        row = await _project(backend, tags=["api", "q3"])
        rows = await backend.select("projects", Scope.unscoped(), OrderBy())
        assert row["tags"] == ["api", "q3"]
        assert rows[0]["tags"] == ["api", "q3"]

    @pytest.mark.asyncio
    async def test_select_orders_newest_first(self, backend):
        first = await _project(backend, "First")
        second = await _project(backend, "Second")
        rows = await backend.select("projects", Scope.unscoped(), OrderBy())
        assert [r["id"] for r in rows] == [second["id"], first["id"]]

    @pytest.mark.asyncio
    async def test_select_ascending(self, backend):
        first = await _project(backend, "First")
        second = await _project(backend, "Second")
        rows = await backend.select("projects", Scope.unscoped(), OrderBy(descending=False))
        assert [r["id"] for r in rows] == [first["id"], second["id"]]

    @pytest.mark.asyncio
    async def test_select_scoped(self, backend):
        await _project(backend, "Mine", team_id="team-1")
        await _project(backend, "Theirs", team_id="team-2")
        rows = await backend.select("projects", Scope.where("team_id", "team-2"), OrderBy())
        assert [r["title"] for r in rows] == ["Theirs"]

    @pytest.mark.asyncio
    async def test_select_null_scope(self, backend):
        project = await _project(backend)
        await backend.insert("messages", {"sender_id": "u1", "message": "hello all"})
        await backend.insert(
            "messages", {"sender_id": "u1", "message": "hi team", "project_id": project["id"]}
        )
        rows = await backend.select(
            "messages", Scope.where("project_id", None), OrderBy(descending=False)
        )
        assert [r["message"] for r in rows] == ["hello all"]

    @pytest.mark.asyncio
    async def test_unknown_table_raises(self, backend):
        with pytest.raises(TransportError, match="does not exist"):
            await backend.select("widgets", Scope.unscoped(), OrderBy())

    @pytest.mark.asyncio
    async def test_unknown_column_raises(self, backend):
        with pytest.raises(TransportError, match="colour"):
            await _project(backend, colour="red")

    @pytest.mark.asyncio
    async def test_check_constraint_raises(self, backend):
        with pytest.raises(TransportError):
            await _project(backend, status="Someday")

    @pytest.mark.asyncio
    async def test_foreign_key_enforced(self, backend):
        with pytest.raises(TransportError):
            await backend.insert("tasks", {"project_id": "missing", "title": "Orphan"})


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_returns_canonical_row(self, backend):
        row = await _project(backend)
        updated = await backend.update("projects", row["id"], {"title": "Renamed"})
        assert updated["title"] == "Renamed"
        assert updated["created_at"] == row["created_at"]
        assert updated["updated_at"] > row["updated_at"]

    @pytest.mark.asyncio
    async def test_update_missing_row_raises_not_found(self, backend):
        with pytest.raises(NotFoundError):
            await backend.update("projects", "missing", {"title": "x"})

    @pytest.mark.asyncio
    async def test_update_ignores_id_and_created_at(self, backend):
        row = await _project(backend)
        updated = await backend.update(
            "projects", row["id"], {"id": "other", "created_at": "2000-01-01", "title": "B"}
        )
        assert updated["id"] == row["id"]
        assert updated["created_at"] == row["created_at"]

    @pytest.mark.asyncio
    async def test_upsert_inserts_then_merges(self, backend):
        created = await backend.upsert("profiles", {"id": "user-1", "username": "ana"})
        merged = await backend.upsert("profiles", {"id": "user-1", "phone": "555"})
        assert created["username"] == "ana"
        assert merged["username"] == "ana"
        assert merged["phone"] == "555"

    @pytest.mark.asyncio
    async def test_upsert_requires_id(self, backend):
        with pytest.raises(TransportError, match="requires an id"):
            await backend.upsert("profiles", {"username": "ana"})


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_absent_row_is_not_an_error(self, backend):
        assert await backend.delete("projects", "missing") is False

    @pytest.mark.asyncio
    async def test_delete_cascades_to_tasks(self, backend):
        project = await _project(backend)
        await backend.insert("tasks", {"project_id": project["id"], "title": "Child"})

        assert await backend.delete("projects", project["id"]) is True

        tasks = await backend.select("tasks", Scope.unscoped(), OrderBy())
        assert tasks == []


# ---------------------------------------------------------------------------
# PushTransport
# ---------------------------------------------------------------------------


class TestPush:
    @pytest.mark.asyncio
    async def test_subscription_receives_scoped_events(self, backend):
        subscription = await backend.subscribe(
            "projects", ALL_CHANGES, Scope.where("team_id", "team-1")
        )
        await _project(backend, "Other", team_id="team-2")
        row = await _project(backend, "Mine", team_id="team-1")

        event = await asyncio.wait_for(subscription.__anext__(), timeout=1)
        assert event.event is ChangeType.INSERT
        assert event.row["id"] == row["id"]

    @pytest.mark.asyncio
    async def test_event_filter(self, backend):
        subscription = await backend.subscribe(
            "projects", [ChangeType.DELETE], Scope.unscoped()
        )
        row = await _project(backend)
        await backend.update("projects", row["id"], {"title": "B"})
        await backend.delete("projects", row["id"])

        event = await asyncio.wait_for(subscription.__anext__(), timeout=1)
        assert event.event is ChangeType.DELETE

    @pytest.mark.asyncio
    async def test_cascade_publishes_child_deletes(self, backend):
        project = await _project(backend)
        task = await backend.insert("tasks", {"project_id": project["id"], "title": "Child"})
        subscription = await backend.subscribe("tasks", [ChangeType.DELETE], Scope.unscoped())

        await backend.delete("projects", project["id"])

        event = await asyncio.wait_for(subscription.__anext__(), timeout=1)
        assert event.row["id"] == task["id"]

    @pytest.mark.asyncio
    async def test_unsubscribe_ends_iteration(self, backend):
        subscription = await backend.subscribe("projects", ALL_CHANGES, Scope.unscoped())
        await _project(backend)
        await backend.unsubscribe(subscription)
        await backend.unsubscribe(subscription)

        assert subscription.closed
        with pytest.raises(StopAsyncIteration):
            await subscription.__anext__()

    @pytest.mark.asyncio
    async def test_subscribe_unknown_column_rejected(self, backend):
        with pytest.raises(TransportError):
            await backend.subscribe("projects", ALL_CHANGES, Scope.where("colour", "red"))


# ---------------------------------------------------------------------------
# IdentityProvider
# ---------------------------------------------------------------------------


class TestIdentity:
    @pytest.mark.asyncio
    async def test_sign_up_opens_session(self, backend):
        user = await backend.sign_up("Ana@Example.com", "secret1")
        assert user.email == "ana@example.com"
        assert await backend.get_session_user() == user

    @pytest.mark.asyncio
    async def test_sign_up_rejects_duplicates(self, backend):
        await backend.sign_up("ana@example.com", "secret1")
        with pytest.raises(AuthenticationError, match="already registered"):
            await backend.sign_up("ana@example.com", "secret2")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,password",
        [("not-an-email", "secret1"), ("ana@example.com", "short")],
    )
    async def test_sign_up_validation(self, backend, email, password):
        with pytest.raises(AuthenticationError):
            await backend.sign_up(email, password)

    @pytest.mark.asyncio
    async def test_sign_in_checks_password(self, backend):
        await backend.sign_up("ana@example.com", "secret1")
        await backend.sign_out()

        with pytest.raises(AuthenticationError, match="Invalid login credentials"):
            await backend.sign_in("ana@example.com", "wrong-password")
        user = await backend.sign_in("ana@example.com", "secret1")
        assert user.email == "ana@example.com"

    @pytest.mark.asyncio
    async def test_session_export_and_restore(self, backend):
        user = await backend.sign_up("ana@example.com", "secret1")
        credentials = backend.export_session()
        await backend.sign_out()
        assert backend.export_session() is None

        restored = await backend.restore_session(credentials)
        assert restored.id == user.id

    @pytest.mark.asyncio
    async def test_restore_unknown_user(self, backend):
        assert await backend.restore_session({"user_id": "gone"}) is None

    @pytest.mark.asyncio
    async def test_list_auth_records(self, backend):
        await backend.sign_up("ana@example.com", "secret1")
        await backend.sign_up("bo@example.com", "secret1")
        records = await backend.list_auth_records()
        assert {r.email for r in records} == {"ana@example.com", "bo@example.com"}

    @pytest.mark.asyncio
    async def test_reset_password_only_validates(self, backend):
        await backend.sign_up("ana@example.com", "secret1")

        await backend.reset_password(" Ana@Example.com ")
        await backend.reset_password("nobody@example.com")
        with pytest.raises(AuthenticationError, match="valid email"):
            await backend.reset_password("nobody")

        # The password is unchanged
        await backend.sign_out()
        assert (await backend.sign_in("ana@example.com", "secret1")).email == "ana@example.com"
