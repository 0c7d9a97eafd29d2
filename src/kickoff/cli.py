"""CLI entry point that applies the kickoff template to a Rails application."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import typer

from .config import load_options
from .context import RunContext
from .errors import KickoffError
from .orchestrator import Orchestrator
from .preconditions import PreconditionError
from .tools.commands import CommandRunner

APP_HELP = "Bootstrap a freshly generated Rails application with the kickoff template."
LOG_LEVEL_VARIABLE = "KICKOFF_LOG_LEVEL"

app = typer.Typer(help=APP_HELP)


def _configure_logging() -> None:
    level_name = os.getenv(LOG_LEVEL_VARIABLE, "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def apply(
    path: Optional[Path] = typer.Argument(
        None,
        help="Application directory (defaults to the current directory).",
    ),
    accept_all: bool = typer.Option(
        False,
        "--accept-all",
        "-y",
        help="Answer yes to every question (same as ACCEPT_ALL=1).",
    ),
    install: bool = typer.Option(
        True,
        "--install/--no-install",
        help="Run the dependency install phase before the deferred steps.",
    ),
) -> None:
    """Apply every template step, then run the deferred post-install work."""

    _configure_logging()
    root = (path or Path.cwd()).resolve()
    if not root.is_dir():
        typer.echo(f"Application directory not found: {root}", err=True)
        raise typer.Exit(code=1)

    try:
        options = load_options(
            root,
            accept_all=True if accept_all else None,
            run_install=None if install else False,
        )
        context = RunContext.create(options, runner=CommandRunner(root))
        summary = Orchestrator(context).run()
    except PreconditionError as error:
        typer.echo(f"Aborted: {error}", err=True)
        raise typer.Exit(code=1) from error
    except KickoffError as error:
        typer.echo(f"Template failed: {error}", err=True)
        raise typer.Exit(code=1) from error

    typer.echo(
        f"Applied {len(summary.steps)} step(s) and {summary.deferred} deferred action(s); "
        f"{len(summary.checkpoints)} commit(s) recorded."
    )


if __name__ == "__main__":
    app()
