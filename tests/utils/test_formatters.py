"""Tests for output formatting."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest
import yaml

from collabdesk_cli.utils.ui.formatters import (
    format_message_line,
    format_output,
    format_relative_time,
    format_task_line,
)

_PROJECT = {
    "id": "0f8fad5b-d9cb-469f-a165-70867728950e",
    "team_id": "team-1",
    "title": "Alpha [beta]",
    "description": None,
    "status": "Active",
    "tags": ["api"],
    "created_at": "2024-06-15T09:00:00+00:00",
    "updated_at": None,
}


class TestFormatOutput:
    def test_json(self, capsys):
        format_output({"projects": [_PROJECT]}, "json")
        assert json.loads(capsys.readouterr().out) == {"projects": [_PROJECT]}

    def test_yaml(self, capsys):
        format_output({"projects": [_PROJECT]}, "yaml")
        assert yaml.safe_load(capsys.readouterr().out)["projects"][0]["title"] == "Alpha [beta]"

    def test_quiet_prints_ids(self, capsys):
        format_output({"projects": [_PROJECT, {**_PROJECT, "id": "p2"}]}, "quiet")
        assert capsys.readouterr().out.split() == [_PROJECT["id"], "p2"]

    def test_pretty_projects_escape_markup(self, capsys):
        format_output({"projects": [_PROJECT]}, "pretty")
        out = capsys.readouterr().out
        assert "Alpha [beta]" in out
        assert "#api" in out

    def test_table(self, capsys):
        format_output([{"name": "local", "current": True}], "table")
        out = capsys.readouterr().out
        assert "Name" in out and "local" in out

    def test_empty(self, capsys):
        format_output({"tasks": []}, "pretty")
        assert "No tasks found" in capsys.readouterr().out


class TestMessageLine:
    def test_uses_display_name(self):
        line = format_message_line(
            {"sender_id": "u1", "message": "hi", "created_at": None}, {"u1": "ana"}
        )
        assert "ana" in line and line.endswith(": hi")

    def test_unknown_sender_shows_id_fragment(self):
        line = format_message_line({"sender_id": "abcdef123456", "message": "hi"})
        assert "abcdef12" in line

    def test_pending_marked(self):
        line = format_message_line({"sender_id": "u1", "message": "hi", "pending": True})
        assert "sending" in line
        assert line.startswith("[pending]")


class TestTaskLine:
    def test_details_and_markup_escaped(self):
        line = format_task_line(
            {
                "id": "abcdef123456",
                "title": "Fix [urgent]",
                "status": "Completed",
                "due_date": "2024-07-01",
                "assigned_to": "0123456789ab",
            }
        )
        assert line.startswith("☑")
        assert "Fix \\[urgent]" in line
        assert "abcdef12 · Completed · due 2024-07-01 · @01234567" in line


class TestRelativeTime:
    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=5), "just now"),
            (timedelta(minutes=5), "5m ago"),
            (timedelta(hours=3), "3h ago"),
            (timedelta(days=2), "2d ago"),
        ],
    )
    def test_buckets(self, delta, expected):
        assert format_relative_time(datetime.now(UTC) - delta) == expected

    def test_string_input(self):
        value = (datetime.now(UTC) - timedelta(hours=1, minutes=1)).isoformat().replace("+00:00", "Z")
        assert format_relative_time(value) == "1h ago"

    def test_empty_and_invalid(self):
        assert format_relative_time(None) == ""
        assert format_relative_time("not a date") == ""
