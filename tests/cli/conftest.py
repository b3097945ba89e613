"""Fixtures for CLI interface tests."""

from __future__ import annotations

import json
import os
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from bugtrail.cli import cli


@pytest.fixture
def cli_in_project(tmp_path: Path, cli_runner: CliRunner) -> Generator[tuple[CliRunner, Path], None, None]:
    """Initialize a bugtrail project in tmp_path and return (runner, project_root)."""
    original_cwd = os.getcwd()
    os.chdir(str(tmp_path))
    result = cli_runner.invoke(cli, ["init", "--prefix", "test"])
    assert result.exit_code == 0
    yield cli_runner, tmp_path
    os.chdir(original_cwd)


@pytest.fixture
def reporter_id(cli_in_project: tuple[CliRunner, Path]) -> str:
    """A user created through ``user-add`` to report bugs with."""
    runner, _ = cli_in_project
    return _add_user(runner, "rita@example.com", "Rita", "Reporter", role="manager")


def _extract_id(create_output: str) -> str:
    """Extract the ID from 'Created test-abc123: Title' output."""
    return create_output.split(":")[0].replace("Created ", "").strip()


def _add_user(runner: CliRunner, email: str, first: str, last: str, *, role: str = "developer") -> str:
    result = runner.invoke(cli, ["user-add", email, "--first", first, "--last", last, "--role", role, "--json"])
    assert result.exit_code == 0, result.output
    return str(json.loads(result.output)["id"])


def _create_bug(runner: CliRunner, title: str, reporter: str, *extra: str) -> str:
    result = runner.invoke(cli, ["create", title, "-d", "Steps to reproduce attached.", "--reporter", reporter, *extra])
    assert result.exit_code == 0, result.output
    return _extract_id(result.output)
