from __future__ import annotations

import importlib
import pkgutil
import signal
from pathlib import Path
from typing import Dict, List, Optional

import typer
import yaml
from dotenv import load_dotenv

from ..errors import BuildError, error_chain
from .core import Context, Executor, TaskSpec
from .logging import configure, get_logger


app = typer.Typer(add_completion=False, help="Build, lint, test and tidy Go modules")
log = get_logger("cli")

DEFAULT_CONFIG = "configs/base.yaml"


def load_config(path: str | Path) -> dict:
    p = Path(path)
    if not p.exists() and str(path) == DEFAULT_CONFIG:
        return {}
    with open(p, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def discover_tasks(tasks_pkg: str = "buildgo.tasks") -> Dict[str, TaskSpec]:
    """Import all modules in the tasks package and collect decorated functions."""
    specs: Dict[str, TaskSpec] = {}
    pkg = importlib.import_module(tasks_pkg)
    for m in pkgutil.iter_modules(pkg.__path__, prefix=f"{tasks_pkg}."):
        mod = importlib.import_module(m.name)
        for attr_name in dir(mod):
            obj = getattr(mod, attr_name)
            spec = getattr(obj, "_task_spec", None)
            if isinstance(spec, TaskSpec):
                specs[spec.name] = spec
    return specs


@app.command("list")
def list_tasks():
    """List registered tasks."""
    specs = discover_tasks()
    typer.echo("Registered tasks:")
    for name in sorted(specs.keys()):
        typer.echo(f"- {name}: {specs[name].description}")


@app.command()
def plan(names: List[str] = typer.Argument(..., help="Tasks to plan")):
    """Print the order in which declared dependencies would run."""
    specs = discover_tasks()
    ctx = Context(log=log)
    try:
        order = Executor(specs, ctx).plan(*names)
    except BuildError as e:
        typer.echo(f"Error: {error_chain(e)}", err=True)
        raise typer.Exit(code=1)
    typer.echo(" -> ".join(order))


@app.command()
def run(
    names: List[str] = typer.Argument(..., help="Tasks to run"),
    config: str = typer.Option(DEFAULT_CONFIG, help="Path to YAML config"),
    tag: List[str] = typer.Option([], "--tag", help="Go build tag, repeatable"),
    log_level: Optional[str] = typer.Option(None, help="Log level (default from BUILDGO_LOG_LEVEL)"),
    log_file: Optional[Path] = typer.Option(None, help="Also write logs to this file"),
):
    """Run tasks by name, with their dependencies."""
    configure(level=log_level, log_file=log_file)
    params = load_config(config)
    if tag:
        params.setdefault("go", {})["tags"] = list(tag)

    specs = discover_tasks()
    ctx = Context(log=get_logger("run"), config=params)
    executor = Executor(specs, ctx)

    def _interrupt(signum, frame):
        log.warning("Interrupted, cancelling")
        ctx.cancel()

    previous = signal.signal(signal.SIGINT, _interrupt)
    try:
        executor.run(*names)
    except BuildError as e:
        log.error("Task failed: %s", error_chain(e))
        typer.echo(f"Error: {error_chain(e)}", err=True)
        raise typer.Exit(code=1)
    finally:
        signal.signal(signal.SIGINT, previous)
    log.info("Done: %s", ", ".join(executor.done))


def main():  # pragma: no cover
    load_dotenv()
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
