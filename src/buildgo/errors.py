"""Error taxonomy for build tasks.

Every error is raised with context (module path, package name or operation)
and chained to its cause with ``raise ... from``. Nothing in the task layer
recovers from these; they propagate to the CLI which prints the chain.
"""

from __future__ import annotations


class BuildError(Exception):
    """Base class for all buildgo errors."""


class PathResolutionError(BuildError):
    """Path does not exist, a link is broken or links form a cycle."""


class TraversalError(BuildError):
    """Directory walk failed (permission denied, I/O error)."""


class CommandExecutionError(BuildError):
    """External command failed to spawn or exited non-zero."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class CommandCancelledError(CommandExecutionError):
    """External command was terminated because the run was cancelled."""


class DirectoryCreationError(BuildError):
    """Output directory could not be created."""


class ToolNotFoundError(BuildError):
    """Required executable is not available on PATH."""


class DirtyTreeError(BuildError):
    """Working tree has uncommitted changes."""


class ConfigError(BuildError):
    """Config file is missing a required setting or has the wrong shape."""


class TaskError(BuildError):
    """Problem with the task graph itself."""


class UnknownTaskError(TaskError):
    pass


class DependencyCycleError(TaskError):
    pass


class CancelledError(BuildError):
    """Run was cancelled before a task could start."""


def error_chain(exc: BaseException) -> str:
    """Render ``exc`` and its causes as ``outer: inner: root``."""
    parts: list[str] = []
    seen: set[int] = set()
    cur: BaseException | None = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        msg = str(cur) or type(cur).__name__
        parts.append(msg)
        cur = cur.__cause__
    return ": ".join(parts)
