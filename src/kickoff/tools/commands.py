"""Synchronous execution of external commands (installers, generators)."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Sequence

from kickoff.errors import KickoffError

from .mutator import emit_action

LOGGER = logging.getLogger(__name__)


class ExternalCommandError(KickoffError):
    """Raised when an external command is missing or exits non-zero."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(
            message,
            details={"command": list(command), "returncode": returncode},
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


@dataclass(slots=True)
class CommandResult:
    """Outcome of a finished external command."""

    command: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def _merge_env(extra: Mapping[str, str] | None) -> Dict[str, str]:
    """Merge provided environment overrides with the current process state."""
    env: Dict[str, str] = os.environ.copy()
    if extra:
        env.update({str(key): str(value) for key, value in extra.items()})
    return env


def split_command(command: str | Sequence[str]) -> list[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command]


class CommandRunner:
    """Run commands from the application root and fail loudly.

    Output is streamed to the terminal unless ``capture`` is requested. There
    is no timeout: a hung installer hangs the run.
    """

    def __init__(self, root: Path | str, *, env: Mapping[str, str] | None = None) -> None:
        self.root = Path(root).resolve()
        self._env = dict(env or {})

    def run(self, command: str | Sequence[str], *, capture: bool = False) -> CommandResult:
        args = split_command(command)
        if not args:
            raise ValueError("Cannot run an empty command.")
        display = shlex.join(args)
        emit_action("run", command=display)

        try:
            process = subprocess.run(  # noqa: S603 - commands come from the pipeline definition
                args,
                cwd=self.root,
                env=_merge_env(self._env),
                capture_output=capture,
                text=True,
                check=False,
            )
        except FileNotFoundError as error:
            raise ExternalCommandError(
                f"Executable not available: {args[0]}",
                command=args,
            ) from error

        result = CommandResult(
            command=tuple(args),
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
        )
        if not result.ok:
            message = result.stderr.strip() or result.stdout.strip()
            suffix = f": {message.splitlines()[-1]}" if message else ""
            raise ExternalCommandError(
                f"`{display}` exited with status {result.returncode}{suffix}",
                command=args,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        LOGGER.debug("`%s` finished", display)
        return result

    # Shorthands for the tools every template step leans on.
    def bundle(self, *args: str) -> CommandResult:
        return self.run(["bundle", *args])

    def rails(self, *args: str) -> CommandResult:
        return self.run(["bundle", "exec", "rails", *args])

    def yarn(self, *args: str) -> CommandResult:
        return self.run(["yarn", *args])


__all__ = ["CommandResult", "CommandRunner", "ExternalCommandError", "split_command"]
