"""Tests for the command-suggesting Typer group."""

from __future__ import annotations

import typer
from typer.testing import CliRunner

from collabdesk_cli.utils.typer_helpers import SuggestingGroup

runner = CliRunner()

app = typer.Typer(cls=SuggestingGroup)


@app.command()
def send() -> None:
    typer.echo("sent")


@app.command()
def watch() -> None:
    typer.echo("watching")


def test_known_command_runs():
    result = runner.invoke(app, ["send"])
    assert result.exit_code == 0
    assert "sent" in result.output


def test_close_typo_suggests():
    result = runner.invoke(app, ["sned"])
    assert result.exit_code == 2
    assert "Did you mean this?" in result.output
    assert "send" in result.output


def test_unrelated_command_uses_click_error():
    result = runner.invoke(app, ["zzzz"])
    assert result.exit_code == 2
    assert "Did you mean" not in result.output
