"""Checks that the external tools the Go tasks shell out to are usable."""

from __future__ import annotations

import shutil

from .. import execute
from ..errors import DirtyTreeError, ToolNotFoundError
from ..orchestrator import task
from ..orchestrator.core import Context, DepsFunc
from ..orchestrator.logging import fields


def _require(ctx: Context, executable: str, *version_args: str) -> None:
    path = shutil.which(executable)
    if path is None:
        raise ToolNotFoundError(f"'{executable}' not found on PATH")
    version = execute.output(ctx, execute.Command(executable, list(version_args)))
    lines = version.strip().splitlines()
    ctx.log.info(
        "Found tool %s",
        fields(tool=executable, path=path, version=lines[0] if lines else "?"),
    )


@task(name="ensure-go")
def ensure_go(ctx: Context, deps: DepsFunc):
    """Verify the go toolchain is installed."""
    _require(ctx, "go", "version")


@task(name="ensure-golangci")
def ensure_golangci(ctx: Context, deps: DepsFunc):
    """Verify golangci-lint is installed."""
    _require(ctx, "golangci-lint", "--version")


@task(name="git-status-clean")
def git_status_clean(ctx: Context, deps: DepsFunc):
    """Fail when the git working tree has uncommitted changes."""
    out = execute.output(ctx, execute.Command("git", ["status", "-s"]))
    changed = [ln for ln in out.splitlines() if ln.strip()]
    if changed:
        raise DirtyTreeError(
            "git working tree is not clean:\n" + "\n".join(changed)
        )
    ctx.log.info("git working tree is clean")
