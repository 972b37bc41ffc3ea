"""Lightweight in-repo orchestrator for build tasks.

Provides Task and Executor primitives, at-most-once dependency resolution
and a Typer CLI.
"""

from .core import Context, Executor, TaskSpec, task  # re-export for convenience

__all__ = ["Context", "Executor", "TaskSpec", "task"]
