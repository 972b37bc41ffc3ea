from __future__ import annotations

import logging
import sys
import threading
import time

import pytest

from buildgo import execute
from buildgo.errors import CommandCancelledError, CommandExecutionError
from buildgo.execute import Command


def py(code: str, **kw) -> Command:
    return Command(sys.executable, ["-c", code], **kw)


def test_run_streams_output_to_logger(ctx, caplog):
    caplog.set_level(logging.INFO, logger="buildgo.test")
    execute.run(ctx, py("import sys; print('hello'); print('oops', file=sys.stderr)"))

    messages = [r.getMessage() for r in caplog.records]
    assert "hello" in messages
    assert "oops" in messages


def test_run_nonzero_exit_raises_with_returncode(ctx):
    with pytest.raises(CommandExecutionError, match="status 3") as exc:
        execute.run(ctx, py("raise SystemExit(3)"))
    assert exc.value.returncode == 3


def test_run_missing_executable(ctx):
    with pytest.raises(CommandExecutionError, match="not found") as exc:
        execute.run(ctx, Command("definitely-not-a-real-tool-xyz"))
    assert isinstance(exc.value.__cause__, FileNotFoundError)


def test_run_uses_cwd_and_env_overrides(ctx, tmp_path, monkeypatch):
    monkeypatch.setenv("BUILDGO_INHERITED", "yes")
    code = (
        "import os, pathlib;"
        "pathlib.Path('out.txt').write_text("
        "os.environ['CGO_ENABLED'] + ' ' + os.environ['BUILDGO_INHERITED'])"
    )
    execute.run(ctx, py(code, cwd=tmp_path, env={"CGO_ENABLED": "0"}))

    assert (tmp_path / "out.txt").read_text() == "0 yes"


def test_run_cancellation_terminates_process(ctx):
    timer = threading.Timer(0.3, ctx.cancel)
    timer.start()
    started = time.monotonic()
    try:
        with pytest.raises(CommandCancelledError):
            execute.run(ctx, py("import time; time.sleep(30)"))
    finally:
        timer.cancel()
    assert time.monotonic() - started < 10


def test_output_returns_stdout(ctx):
    assert execute.output(ctx, py("print('a'); print('b')")) == "a\nb\n"


def test_output_nonzero_exit_raises(ctx):
    with pytest.raises(CommandExecutionError):
        execute.output(ctx, py("raise SystemExit(1)"))


def test_describe_quotes_arguments():
    cmd = Command("go", ["build", "-ldflags=-w -s"], env={"CGO_ENABLED": "0"})
    assert cmd.describe() == "CGO_ENABLED=0 go build '-ldflags=-w -s'"


def test_run_missing_working_directory(ctx, tmp_path):
    missing = tmp_path / "cmd" / "server"

    with pytest.raises(CommandExecutionError, match="working directory") as exc:
        execute.run(ctx, py("print('hi')", cwd=missing))
    assert "command not found" not in str(exc.value)
    assert isinstance(exc.value.__cause__, FileNotFoundError)


def test_run_does_not_start_when_already_cancelled(ctx, tmp_path):
    ctx.cancel()
    marker = tmp_path / "started"

    with pytest.raises(CommandCancelledError, match="not started"):
        execute.run(ctx, py(f"open({str(marker)!r}, 'w').close()"))
    assert not marker.exists()
