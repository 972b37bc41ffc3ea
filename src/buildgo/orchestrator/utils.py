from __future__ import annotations

"""Small helpers for reading settings out of the parsed config."""

from pathlib import PurePath
from typing import Dict, List

from ..errors import ConfigError
from ..modules import MODULE_MARKER


def _get(d: Dict, *keys, default=None):
    cur = d
    for k in keys:
        if not isinstance(cur, dict):
            return default
        cur = cur.get(k)
        if cur is None:
            return default
    return cur


def coverage_file_name(rel_path: PurePath | str) -> str:
    """Flatten a module path into a single file name, ``pkg/a`` -> ``pkg-a``.

    Literal ``%`` and ``-`` in path components are percent-escaped first so a
    directory named ``pkg-a`` maps to ``pkg%2Da`` and never collides with the
    nested module ``pkg/a``.
    """
    parts = PurePath(rel_path).parts
    return "-".join(p.replace("%", "%25").replace("-", "%2D") for p in parts)


def split_tags(values) -> List[str]:
    """Accept ``["a", "b"]`` or ``"a,b"`` and return a clean tag list."""
    if not values:
        return []
    if isinstance(values, str):
        values = values.split(",")
    out: List[str] = []
    for v in values:
        for part in str(v).split(","):
            part = part.strip()
            if part:
                out.append(part)
    return out


def modules_root(p: Dict) -> str:
    return _get(p, "modules", "root", default=".")


def module_marker(p: Dict) -> str:
    return _get(p, "modules", "marker", default=MODULE_MARKER)


def lint_config(p: Dict) -> str:
    return _get(p, "lint", "config", default="build/.golangci.yaml")


def coverage_dir(p: Dict) -> str:
    return _get(p, "test", "coverage_dir", default="bin/.coverage")


def go_tags(p: Dict) -> List[str]:
    return split_tags(_get(p, "go", "tags", default=[]))


def build_packages(p: Dict) -> List[Dict]:
    """Build targets: each needs ``path`` and ``out``; ``cgo`` defaults to True."""
    entries = _get(p, "build", "packages", default=[]) or []
    out: List[Dict] = []
    for e in entries:
        if not isinstance(e, dict) or "path" not in e or "out" not in e:
            raise ConfigError(f"build package entry needs 'path' and 'out': {e!r}")
        out.append(
            {
                "path": str(e["path"]),
                "out": str(e["out"]),
                "cgo": bool(e.get("cgo", True)),
                "tags": split_tags(e.get("tags")) or go_tags(p),
            }
        )
    return out
