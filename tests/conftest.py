"""Shared test fixtures and utilities."""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List
from unittest.mock import MagicMock

import pytest

from restic_exporter.models import RepositoryHandle
from restic_exporter.repository import ResticRepository

from tests.fixtures.restic_output import completed


@pytest.fixture
def mock_run(monkeypatch):
    """Replace subprocess.run; set .return_value or .side_effect per test."""
    mock = MagicMock(return_value=completed())
    monkeypatch.setattr(subprocess, "run", mock)
    return mock


@pytest.fixture
def repo(mock_run) -> ResticRepository:
    """Repository whose restic calls go to mock_run."""
    return ResticRepository(RepositoryHandle(path="/tmp/r"))


@dataclass
class FakeRestic:
    """A shell script standing in for restic."""
    path: str
    args_file: Path

    def args(self) -> List[str]:
        return self.args_file.read_text().splitlines()


@pytest.fixture
def fake_restic(tmp_path):
    """Factory for executables that print canned output and exit with a given code."""
    def _make(stdout: bytes = b"", stderr: str = "", exit_code: int = 0, name: str = "restic"):
        out = tmp_path / f"{name}.stdout"
        out.write_bytes(stdout)
        err = tmp_path / f"{name}.stderr"
        err.write_text(stderr)
        args_file = tmp_path / f"{name}.args"

        script = tmp_path / name
        script.write_text(
            "#!/bin/sh\n"
            f"printf '%s\\n' \"$@\" > '{args_file}'\n"
            f"cat '{out}'\n"
            f"cat '{err}' >&2\n"
            f"exit {exit_code}\n"
        )
        script.chmod(0o755)
        return FakeRestic(path=str(script), args_file=args_file)
    return _make
