"""Locate Go modules in a directory tree."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterator

from .errors import TraversalError
from .paths import PathLike

MODULE_MARKER = "go.mod"


def find_modules(root: PathLike = ".", marker: str = MODULE_MARKER) -> Iterator[Path]:
    """Yield the directory of every ``marker`` file under ``root``.

    Walks depth-first with entries of each directory in lexical order.
    Nested modules are yielded independently; nothing is pruned. Only files
    count as markers, a directory called ``go.mod`` is descended like any
    other. Symlinked directories are not followed.
    """
    yield from _walk(Path(root), marker)


def _walk(directory: Path, marker: str) -> Iterator[Path]:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise TraversalError(f"walking directory '{directory}' failed") from e

    for entry in entries:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = not is_dir and entry.is_file()
        except OSError as e:
            raise TraversalError(f"inspecting '{entry.path}' failed") from e
        if is_file and entry.name == marker:
            yield directory
        elif is_dir:
            yield from _walk(directory / entry.name, marker)


def on_module(
    fn: Callable[[Path], None],
    root: PathLike = ".",
    marker: str = MODULE_MARKER,
) -> None:
    """Call ``fn`` for each module; the first exception stops the walk."""
    for path in find_modules(root, marker):
        fn(path)
