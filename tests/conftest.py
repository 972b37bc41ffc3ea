"""Shared test fixtures."""

from __future__ import annotations

import logging

import pytest

from buildgo import execute
from buildgo.orchestrator.core import Context


@pytest.fixture()
def ctx():
    return Context(log=logging.getLogger("buildgo.test"), config={})


class CommandRecorder:
    """Stands in for ``execute.run``; optionally fails for given directories."""

    def __init__(self):
        self.commands: list[execute.Command] = []
        self.fail_in: set[str] = set()

    def __call__(self, ctx, command):
        self.commands.append(command)
        if command.cwd is not None and str(command.cwd) in self.fail_in:
            raise execute.CommandExecutionError("exit status 1", returncode=1)

    @property
    def dirs(self) -> list[str]:
        return [str(c.cwd) for c in self.commands]


@pytest.fixture()
def recorder(monkeypatch):
    rec = CommandRecorder()
    monkeypatch.setattr(execute, "run", rec)
    return rec


@pytest.fixture()
def no_deps():
    """A deps callback that records what was requested without running it."""
    calls: list[tuple] = []

    def deps(*refs):
        calls.append(refs)

    deps.calls = calls
    return deps


def make_module(root, rel):
    d = root / rel
    d.mkdir(parents=True, exist_ok=True)
    (d / "go.mod").write_text(f"module example.com/{rel}\n", encoding="utf-8")
    return d
