"""Run external commands with output streamed to the logger."""

from __future__ import annotations

import os
import shlex
import subprocess
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional

from .errors import CommandCancelledError, CommandExecutionError

if TYPE_CHECKING:  # pragma: no cover
    from .orchestrator.core import Context

POLL_INTERVAL = 0.1
TERMINATE_GRACE_SECONDS = 5.0


@dataclass
class Command:
    executable: str
    args: List[str] = field(default_factory=list)
    cwd: Optional[Path] = None
    env: Dict[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> List[str]:
        return [self.executable, *self.args]

    def environment(self) -> Dict[str, str]:
        """Parent environment with this command's overrides applied."""
        env = os.environ.copy()
        env.update(self.env)
        return env

    def describe(self) -> str:
        line = " ".join(shlex.quote(a) for a in self.argv)
        if self.env:
            prefix = " ".join(f"{k}={shlex.quote(v)}" for k, v in sorted(self.env.items()))
            line = f"{prefix} {line}"
        return line


def run(ctx: "Context", command: Command) -> None:
    """Run ``command`` to completion, streaming its output to ``ctx.log``.

    Raises CommandExecutionError on spawn failure or non-zero exit and
    CommandCancelledError when the context is cancelled before or during the run.
    """
    if ctx.cancelled():
        raise CommandCancelledError(
            f"command '{command.describe()}' not started, run cancelled"
        )
    ctx.log.debug("exec: %s (cwd=%s)", command.describe(), command.cwd or ".")
    process = _spawn(command, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)

    pump = threading.Thread(target=_pump_output, args=(process, ctx), daemon=True)
    pump.start()
    try:
        returncode = _wait(ctx, process, command)
    finally:
        pump.join(timeout=TERMINATE_GRACE_SECONDS)
    if returncode != 0:
        raise CommandExecutionError(
            f"command '{command.describe()}' exited with status {returncode}",
            returncode=returncode,
        )


def output(ctx: "Context", command: Command) -> str:
    """Run ``command`` and return its stdout; stderr goes to the logger."""
    ctx.log.debug("exec: %s (cwd=%s)", command.describe(), command.cwd or ".")
    process = _spawn(command, stdout=subprocess.PIPE, stderr=subprocess.PIPE)

    # Drain both pipes off-thread so neither side blocks on a full buffer.
    captured: List[str] = []
    reader = threading.Thread(
        target=lambda: captured.append(process.stdout.read()), daemon=True
    )
    reader.start()
    errors = threading.Thread(
        target=_log_stream, args=(process.stderr, ctx), daemon=True
    )
    errors.start()
    try:
        returncode = _wait(ctx, process, command)
    finally:
        reader.join(timeout=TERMINATE_GRACE_SECONDS)
        errors.join(timeout=TERMINATE_GRACE_SECONDS)
    if returncode != 0:
        raise CommandExecutionError(
            f"command '{command.describe()}' exited with status {returncode}",
            returncode=returncode,
        )
    return "".join(captured)


def _spawn(command: Command, stdout, stderr) -> subprocess.Popen:
    try:
        return subprocess.Popen(  # noqa: S603
            command.argv,
            cwd=command.cwd,
            env=command.environment(),
            stdin=subprocess.DEVNULL,
            stdout=stdout,
            stderr=stderr,
            text=True,
            errors="replace",
        )
    except FileNotFoundError as e:
        if e.filename == command.executable:
            raise CommandExecutionError(
                f"command not found: {command.executable}"
            ) from e
        raise CommandExecutionError(
            f"working directory '{command.cwd}' of command '{command.describe()}' does not exist"
        ) from e
    except OSError as e:
        raise CommandExecutionError(
            f"command '{command.describe()}' failed to start"
        ) from e


def _wait(ctx: "Context", process: subprocess.Popen, command: Command) -> int:
    while True:
        returncode = process.poll()
        if returncode is not None:
            return returncode
        if ctx.cancelled():
            _terminate_process(process)
            raise CommandCancelledError(
                f"command '{command.describe()}' cancelled"
            )
        time.sleep(POLL_INTERVAL)


def _pump_output(process: subprocess.Popen, ctx: "Context") -> None:
    _log_stream(process.stdout, ctx)


def _log_stream(stream, ctx: "Context") -> None:
    for line in iter(stream.readline, ""):
        line = line.rstrip()
        if line:
            ctx.log.info("%s", line)
    stream.close()


def _terminate_process(process: subprocess.Popen) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=TERMINATE_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=TERMINATE_GRACE_SECONDS)
