"""State handed to every pipeline step."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

import typer

from kickoff.config import RunOptions
from kickoff.tools.commands import CommandResult, CommandRunner
from kickoff.tools.deferred import DeferredActionQueue
from kickoff.tools.manifest import GemfileManifest
from kickoff.tools.mutator import TextMutator
from kickoff.tools.prompts import PromptResolver, build_resolver
from kickoff.tools.vcs import Checkpoint, CheckpointRecorder

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RunContext:
    """Collaborators and options for a single template run.

    ``options`` is frozen; the orchestrator swaps in an updated copy once the
    one-time questions have been answered.
    """

    options: RunOptions
    mutator: TextMutator
    runner: CommandRunner
    resolver: PromptResolver
    recorder: CheckpointRecorder = field(default_factory=CheckpointRecorder)
    deferred: DeferredActionQueue = field(default_factory=DeferredActionQueue)
    gemfile: GemfileManifest | None = None
    echo: Callable[[str], None] = typer.echo

    def __post_init__(self) -> None:
        if self.gemfile is None:
            self.gemfile = GemfileManifest(self.mutator)

    @classmethod
    def create(
        cls,
        options: RunOptions,
        *,
        runner: CommandRunner | None = None,
        resolver: PromptResolver | None = None,
    ) -> "RunContext":
        mutator = TextMutator(options.root)
        return cls(
            options=options,
            mutator=mutator,
            runner=runner or CommandRunner(options.root),
            resolver=resolver or build_resolver(options.accept_all),
        )

    # ---------------------------------------------------------------- helpers
    def ask(self, question: str) -> bool:
        return self.resolver.ask_yes_no(question)

    def resolve_flag(self, name: str, question: str) -> bool:
        """Return option ``name``, asking ``question`` the first time it is unset.

        The answer is stored by replacing ``options`` with an updated copy.
        """

        current = getattr(self.options, name)
        if current is not None:
            return bool(current)
        answer = self.ask(question)
        self.options = self.options.model_copy(update={name: answer})
        LOGGER.debug("Resolved %s=%s", name, answer)
        return answer

    def checkpoint(self, message: str) -> Checkpoint | None:
        return self.recorder.checkpoint(message)

    def after_install(self, label: str) -> Callable[[Callable[[], None]], Callable[[], None]]:
        """Decorator form of :meth:`DeferredActionQueue.enqueue`."""

        def register(action: Callable[[], None]) -> Callable[[], None]:
            self.deferred.enqueue(action, label=label)
            return action

        return register

    def run(self, command: str | tuple[str, ...] | list[str]) -> CommandResult:
        return self.runner.run(command)

    def rails(self, *args: str) -> CommandResult:
        return self.runner.rails(*args)

    def say(self, message: str) -> None:
        self.echo(message)


__all__ = ["RunContext"]
