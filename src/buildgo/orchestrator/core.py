from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Sequence, Union

from ..errors import CancelledError, DependencyCycleError, UnknownTaskError
from .logging import fields


@dataclass
class Context:
    """Everything a task body needs: logger, parsed config and cancel token."""

    log: logging.Logger
    config: dict = field(default_factory=dict)
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def cancel(self) -> None:
        self.cancel_event.set()

    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def child(self, name: str) -> "Context":
        return Context(
            log=self.log.getChild(name),
            config=self.config,
            cancel_event=self.cancel_event,
        )


TaskRef = Union[str, Callable[..., None]]
DepsFunc = Callable[..., None]


@dataclass
class TaskSpec:
    name: str
    fn: Callable[[Context, DepsFunc], None]
    dependencies: tuple[str, ...] = ()
    description: str = ""


def task(
    name: str,
    dependencies: Sequence[TaskRef] = (),
    description: str | None = None,
):
    """Decorator to declare a task on a function.

    The wrapped function receives the run ``Context`` and a ``deps`` callback;
    calling ``deps(other_task, ...)`` runs those tasks now unless they already
    ran. ``dependencies`` are run before the body starts.
    """

    def deco(fn: Callable[[Context, DepsFunc], None]):
        doc = (fn.__doc__ or "").strip().splitlines()
        spec = TaskSpec(
            name=name,
            fn=fn,
            dependencies=tuple(_ref_name(d) for d in dependencies),
            description=description if description is not None else (doc[0] if doc else ""),
        )
        setattr(fn, "_task_spec", spec)
        return fn

    return deco


def _ref_name(ref: TaskRef) -> str:
    if isinstance(ref, str):
        return ref
    spec = getattr(ref, "_task_spec", None)
    if not isinstance(spec, TaskSpec):
        raise UnknownTaskError(f"{ref!r} is not a registered task")
    return spec.name


def topo_sort(nodes: Iterable[str], edges: Iterable[tuple[str, str]]) -> list[str]:
    """Order nodes so that for every edge (u, v) u comes before v.

    Ties keep the order in which nodes were given.
    """
    nodes = list(nodes)
    incoming = {n: set() for n in nodes}
    outgoing = {n: [] for n in nodes}
    for u, v in edges:
        if u not in incoming or v not in incoming:
            raise UnknownTaskError(f"Edge references unknown node: {(u, v)}")
        if u not in incoming[v]:
            outgoing[u].append(v)
            incoming[v].add(u)
    ordered: list[str] = []
    roots = [n for n in nodes if not incoming[n]]
    while roots:
        n = roots.pop(0)
        ordered.append(n)
        for m in outgoing[n]:
            incoming[m].discard(n)
            if not incoming[m]:
                roots.append(m)
        outgoing[n] = []
    if any(incoming[n] for n in nodes):
        raise DependencyCycleError("Cycle detected in task dependencies")
    return ordered


class Executor:
    """Runs tasks with their prerequisites, each at most once per executor."""

    def __init__(self, tasks: dict[str, TaskSpec], ctx: Context):
        self.tasks = tasks
        self.ctx = ctx
        self.done: list[str] = []
        self._running: list[str] = []

    def run(self, *names: TaskRef) -> None:
        for ref in names:
            self._execute(self._spec(ref))

    def deps(self, *refs: TaskRef) -> None:
        """Callback handed to task bodies."""
        self.run(*refs)

    def plan(self, *names: TaskRef) -> list[str]:
        """Static execution order for ``names`` based on declared dependencies.

        Dependencies requested from inside a task body are not visible here.
        """
        closure: list[str] = []
        stack = [self._spec(n).name for n in reversed(names)]
        while stack:
            name = stack.pop()
            if name in closure:
                continue
            closure.append(name)
            stack.extend(reversed(self._spec(name).dependencies))
        edges = [(d, n) for n in closure for d in self._spec(n).dependencies]
        return topo_sort(closure, edges)

    def _spec(self, ref: TaskRef) -> TaskSpec:
        name = _ref_name(ref)
        spec = self.tasks.get(name)
        if spec is None:
            raise UnknownTaskError(f"Task not found: {name}")
        return spec

    def _execute(self, spec: TaskSpec) -> None:
        if spec.name in self.done:
            return
        if spec.name in self._running:
            chain = " -> ".join([*self._running, spec.name])
            raise DependencyCycleError(f"dependency cycle: {chain}")
        if self.ctx.cancelled():
            raise CancelledError(f"run cancelled before task '{spec.name}'")

        self._running.append(spec.name)
        try:
            for dep in spec.dependencies:
                self._execute(self._spec(dep))
            self.ctx.log.info("Run: %s", fields(task=spec.name))
            spec.fn(self.ctx.child(spec.name), self.deps)
        finally:
            self._running.pop()
        self.done.append(spec.name)
