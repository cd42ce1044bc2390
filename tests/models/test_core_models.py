"""Tests for scopes, ordering rules and payload models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from collabdesk_cli.models import MessageCreate, ProjectUpdate, Scope, TaskCreate, TaskUpdate


class TestScope:
    def test_unscoped_matches_everything(self):
        assert Scope.unscoped().matches({"project_id": "p1"})
        assert Scope().is_unscoped

    def test_equality_scope(self):
        scope = Scope.where("project_id", "p1")
        assert scope.matches({"project_id": "p1"})
        assert not scope.matches({"project_id": "p2"})
        assert str(scope) == "project_id=eq.p1"

    def test_null_scope(self):
        scope = Scope.where("project_id", None)
        assert scope.matches({"project_id": None})
        assert scope.matches({})
        assert not scope.matches({"project_id": "p1"})

    def test_hashable_for_channel_keys(self):
        keys = {("tasks", Scope.where("project_id", "p1")), ("tasks", Scope.where("project_id", "p1"))}
        assert len(keys) == 1


class TestPayloads:
    def test_text_is_stripped(self):
        assert MessageCreate(sender_id="u1", message="  hi  ").message == "hi"

    def test_blank_message_rejected(self):
        with pytest.raises(ValidationError):
            MessageCreate(sender_id="u1", message="  ")

    def test_patch_requires_a_field(self):
        with pytest.raises(ValidationError):
            TaskUpdate()

    def test_patch_can_clear_optional_fields(self):
        patch = TaskUpdate(assigned_to=None)
        assert patch.model_dump(exclude_unset=True) == {"assigned_to": None}

    def test_patch_cannot_clear_required_fields(self):
        with pytest.raises(ValidationError):
            ProjectUpdate(status=None)

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreate(project_id="p1", title="x", status="Someday")
