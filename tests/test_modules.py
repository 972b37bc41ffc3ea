from __future__ import annotations

import os
from pathlib import Path

import pytest

from buildgo import modules
from buildgo.errors import TraversalError
from buildgo.modules import find_modules, on_module

from conftest import make_module


def test_finds_every_module_once(tmp_path):
    for rel in ["a", "b/c", "d/e/f"]:
        make_module(tmp_path, rel)
    (tmp_path / "plain").mkdir()
    (tmp_path / "plain" / "main.go").write_text("package main\n")

    found = list(find_modules(tmp_path))

    assert sorted(found) == sorted(tmp_path / r for r in ["a", "b/c", "d/e/f"])
    assert len(found) == len(set(found))


def test_no_modules_is_empty_not_error(tmp_path):
    (tmp_path / "x" / "y").mkdir(parents=True)
    assert list(find_modules(tmp_path)) == []


def test_nested_modules_are_both_found(tmp_path):
    make_module(tmp_path, "outer")
    make_module(tmp_path, "outer/inner")

    assert set(find_modules(tmp_path)) == {tmp_path / "outer", tmp_path / "outer" / "inner"}


def test_directory_named_like_marker_is_not_a_hit(tmp_path):
    (tmp_path / "weird" / "go.mod").mkdir(parents=True)
    make_module(tmp_path, "weird/go.mod/real")

    assert list(find_modules(tmp_path)) == [tmp_path / "weird" / "go.mod" / "real"]


def test_lexical_depth_first_order(tmp_path):
    for rel in ["b", "a/z", "a/b", "c"]:
        make_module(tmp_path, rel)

    assert list(find_modules(tmp_path)) == [
        tmp_path / "a" / "b",
        tmp_path / "a" / "z",
        tmp_path / "b",
        tmp_path / "c",
    ]


def test_relative_root_gives_relative_paths(tmp_path, monkeypatch):
    make_module(tmp_path, ".")
    make_module(tmp_path, "tools")
    monkeypatch.chdir(tmp_path)

    assert list(find_modules(".")) == [Path("."), Path("tools")]


def test_each_call_walks_again(tmp_path):
    make_module(tmp_path, "a")
    first = list(find_modules(tmp_path))
    make_module(tmp_path, "b")

    assert first == [tmp_path / "a"]
    assert list(find_modules(tmp_path)) == [tmp_path / "a", tmp_path / "b"]


def test_symlinked_directories_are_not_followed(tmp_path):
    make_module(tmp_path, "real")
    (tmp_path / "zlink").symlink_to(tmp_path / "real")

    assert list(find_modules(tmp_path)) == [tmp_path / "real"]


def test_custom_marker(tmp_path):
    (tmp_path / "w").mkdir()
    (tmp_path / "w" / "go.work").write_text("go 1.22\n")
    make_module(tmp_path, "m")

    assert list(find_modules(tmp_path, marker="go.work")) == [tmp_path / "w"]


def test_unreadable_directory_raises_traversal_error(tmp_path, monkeypatch):
    make_module(tmp_path, "a")
    make_module(tmp_path, "locked/b")
    real_scandir = os.scandir

    def scandir(path):
        if Path(path).name == "locked":
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(modules.os, "scandir", scandir)

    with pytest.raises(TraversalError, match="locked") as exc:
        list(find_modules(tmp_path))
    assert isinstance(exc.value.__cause__, PermissionError)


def test_on_module_stops_at_first_failure(tmp_path):
    for rel in ["m1", "m2", "m3"]:
        make_module(tmp_path, rel)
    visited = []

    def fn(path):
        visited.append(path.name)
        if path.name == "m2":
            raise RuntimeError(f"failed in {path}")

    with pytest.raises(RuntimeError, match="m2"):
        on_module(fn, tmp_path)
    assert visited == ["m1", "m2"]
