"""Resolve paths to absolute, symlink-free form."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from .errors import PathResolutionError

PathLike = Union[str, os.PathLike]


def resolve(path: PathLike) -> Path:
    """Return ``path`` as an absolute path with every symlink dereferenced.

    Raises PathResolutionError if the path (or a link target) does not exist
    or the links loop.
    """
    try:
        return Path(path).resolve(strict=True)
    except FileNotFoundError as e:
        raise PathResolutionError(f"path '{path}' does not exist") from e
    except RuntimeError as e:
        # Symlink loops surface as RuntimeError on older interpreters.
        raise PathResolutionError(f"symlink loop while resolving '{path}'") from e
    except OSError as e:
        raise PathResolutionError(f"resolving path '{path}' failed") from e


def absolute(path: PathLike) -> Path:
    """Absolute form of ``path`` without requiring it to exist.

    Used for output files that are created by the command receiving them.
    The existing parent part is still dereferenced.
    """
    return Path(os.path.abspath(path)).resolve(strict=False)


def relative_to_root(root: PathLike, path: PathLike) -> Path:
    """Express ``path`` relative to ``root`` after resolving both."""
    root_resolved = resolve(root)
    path_resolved = resolve(path)
    return Path(os.path.relpath(path_resolved, root_resolved))
