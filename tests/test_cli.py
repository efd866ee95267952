"""Tests for the ptymux CLI."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from conftest import posix_only
from ptymux.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def plain_shell(monkeypatch):
    monkeypatch.setenv("PTYMUX_SHELL", "/bin/sh")
    monkeypatch.setenv("PTYMUX_LOGIN_SHELL", "0")


def test_info_lists_commands() -> None:
    result = runner.invoke(app, ["info"])
    assert result.exit_code == 0
    assert "Shell: /bin/sh" in result.output
    assert "create_terminal_session" in result.output
    assert "ping_terminal_session" in result.output


@posix_only
def test_run_streams_output(tmp_path) -> None:
    result = runner.invoke(app, ["run", "echo run-$((20+22))", "--cwd", str(tmp_path)])
    assert result.exit_code == 0
    assert "run-42" in result.output


def test_run_missing_directory(tmp_path) -> None:
    result = runner.invoke(app, ["run", "true", "--cwd", str(tmp_path / "missing")])
    assert result.exit_code == 1
