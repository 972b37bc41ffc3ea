"""Go build, lint, test and `go mod tidy` tasks.

Lint, test and tidy run once per Go module found under the configured root,
in walk order, and stop at the first module that fails. Build compiles the
packages listed under `build.packages` in the config.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List

from .. import execute
from ..errors import CommandExecutionError, DirectoryCreationError
from ..modules import on_module
from ..orchestrator import task
from ..orchestrator.core import Context, DepsFunc
from ..orchestrator.logging import fields
from ..orchestrator.utils import (
    build_packages,
    coverage_dir,
    coverage_file_name,
    go_tags,
    lint_config,
    module_marker,
    modules_root,
)
from ..paths import absolute, relative_to_root, resolve
from .tools import ensure_go, ensure_golangci, git_status_clean


def _tag_args(tags: Iterable[str]) -> List[str]:
    tags = list(tags)
    if tags:
        return ["-tags", ",".join(tags)]
    return []


def ensure_dir(path: Path) -> Path:
    """Create ``path`` and its parents; existing directories are fine."""
    try:
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreationError(f"creating directory '{path}' failed") from e
    return path


def go_build_pkg(
    ctx: Context, pkg: str, out: str, cgo: bool = True, tags: Iterable[str] = ()
) -> None:
    """Build the go package in directory ``pkg`` into binary ``out``."""
    ctx.log.info("Building go package %s", fields(package=pkg, binary=out))

    args = [
        "build",
        "-trimpath",
        "-ldflags=-w -s",
        "-o", str(absolute(out)),
        *_tag_args(tags),
        ".",
    ]
    env = {} if cgo else {"CGO_ENABLED": "0"}
    cmd = execute.Command("go", args, cwd=Path(pkg), env=env)
    try:
        execute.run(ctx, cmd)
    except CommandExecutionError as e:
        raise type(e)(f"building go package '{pkg}' failed", e.returncode) from e


def go_lint(ctx: Context, deps: DepsFunc) -> None:
    deps(ensure_go, ensure_golangci)
    config = str(resolve(lint_config(ctx.config)))

    def _lint(path: Path) -> None:
        ctx.log.info("Running linter %s", fields(path=path))
        cmd = execute.Command("golangci-lint", ["run", "--config", config], cwd=path)
        try:
            execute.run(ctx, cmd)
        except CommandExecutionError as e:
            raise type(e)(f"linter errors found in module '{path}'", e.returncode) from e

    on_module(_lint, modules_root(ctx.config), module_marker(ctx.config))
    # Post conditions only run once every module passed.
    deps(tidy, git_status_clean)


def go_test(ctx: Context, deps: DepsFunc, tags: Iterable[str] = ()) -> None:
    deps(ensure_go)
    tags = list(tags)

    # Coverage names are relative to the parent of the walked tree.
    root_dir = resolve(modules_root(ctx.config)).parent
    repo_dir = resolve(".")
    cov_dir = ensure_dir(repo_dir / coverage_dir(ctx.config))

    def _test(path: Path) -> None:
        rel_path = relative_to_root(root_dir, path)
        args = [
            "test",
            "-count=1",
            "-shuffle=on",
            "-race",
            "-cover", "./...",
            "-coverpkg", "./...",
            "-coverprofile", os.path.join(cov_dir, coverage_file_name(rel_path)),
            *_tag_args(tags),
            "./...",
        ]
        ctx.log.info("Running go tests %s", fields(path=path))
        cmd = execute.Command("go", args, cwd=path)
        try:
            execute.run(ctx, cmd)
        except CommandExecutionError as e:
            raise type(e)(f"unit tests failed in module '{path}'", e.returncode) from e

    on_module(_test, modules_root(ctx.config), module_marker(ctx.config))


def go_mod_tidy(ctx: Context, deps: DepsFunc) -> None:
    deps(ensure_go)

    def _tidy(path: Path) -> None:
        ctx.log.info("Running go mod tidy %s", fields(path=path))
        cmd = execute.Command("go", ["mod", "tidy"], cwd=path)
        try:
            execute.run(ctx, cmd)
        except CommandExecutionError as e:
            raise type(e)(f"'go mod tidy' failed in module '{path}'", e.returncode) from e

    on_module(_tidy, modules_root(ctx.config), module_marker(ctx.config))


@task(name="build", dependencies=[ensure_go])
def build(ctx: Context, deps: DepsFunc):
    """Build the go packages listed in the config."""
    packages = build_packages(ctx.config)
    if not packages:
        ctx.log.warning("No packages configured under build.packages")
    for pkg in packages:
        go_build_pkg(ctx, pkg["path"], pkg["out"], cgo=pkg["cgo"], tags=pkg["tags"])


@task(name="lint", dependencies=[ensure_go, ensure_golangci])
def lint(ctx: Context, deps: DepsFunc):
    """Run golangci-lint in every module, then tidy and check the git tree."""
    go_lint(ctx, deps)


@task(name="test", dependencies=[ensure_go])
def run_tests(ctx: Context, deps: DepsFunc):
    """Run go tests with race detection and coverage in every module."""
    go_test(ctx, deps, tags=go_tags(ctx.config))


@task(name="tidy", dependencies=[ensure_go])
def tidy(ctx: Context, deps: DepsFunc):
    """Run `go mod tidy` in every module."""
    go_mod_tidy(ctx, deps)
