"""Drive the template steps against a generated application."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from .context import RunContext
from .pipeline.steps import DEFAULT_STEPS, PipelineStep
from .preconditions import assert_minimum_versions
from .tools.mutator import emit_action
from .tools.vcs import Checkpoint, GitRepository

LOGGER = logging.getLogger(__name__)

GIT_QUESTION = "Do you want to add git commits (recommended)"


@dataclass(slots=True)
class RunSummary:
    """What a finished run did."""

    steps: List[str] = field(default_factory=list)
    deferred: int = 0
    installed: bool = False
    checkpoints: List[Checkpoint] = field(default_factory=list)

    @property
    def commit_messages(self) -> List[str]:
        return [checkpoint.message for checkpoint in self.checkpoints]


class Orchestrator:
    """Run preconditions, the step list, the install phase and deferred work.

    The run is single-shot and strictly sequential. Any exception aborts it;
    checkpoints recorded before the failure stay in the history.
    """

    def __init__(
        self,
        context: RunContext,
        steps: Sequence[PipelineStep] = DEFAULT_STEPS,
        *,
        check_preconditions: bool = True,
    ) -> None:
        self.context = context
        self.steps = tuple(steps)
        self.check_preconditions = check_preconditions
        self._started = False

    def run(self) -> RunSummary:
        if self._started:
            raise RuntimeError("An orchestrator can only run once.")
        self._started = True

        context = self.context
        summary = RunSummary()

        if self.check_preconditions:
            assert_minimum_versions(context)

        if context.resolve_flag("use_git", GIT_QUESTION):
            context.recorder.enable(GitRepository.init(context.options.root))
        context.checkpoint("Initial commit")
        self._register_post_install(context)

        for step in self.steps:
            name = getattr(step, "__name__", repr(step))
            LOGGER.info("Running step %s", name)
            emit_action("step", name=name)
            step(context)
            summary.steps.append(name)

        if context.options.run_install:
            context.run(list(context.options.install_command))
            summary.installed = True
        else:
            LOGGER.info("Skipping install phase")

        summary.deferred = context.deferred.drain()
        summary.checkpoints = list(context.recorder.history)
        LOGGER.info(
            "Finished %d step(s), %d deferred action(s), %d commit(s)",
            len(summary.steps),
            summary.deferred,
            len(summary.checkpoints),
        )
        return summary

    @staticmethod
    def _register_post_install(context: RunContext) -> None:
        @context.after_install("commit_after_bundle")
        def _commit_after_bundle() -> None:
            context.checkpoint("Commit after bundle")
            if context.mutator.exists("bin/spring"):
                context.run(["bin/spring", "stop"])


__all__ = ["DEFAULT_STEPS", "GIT_QUESTION", "Orchestrator", "PipelineStep", "RunSummary"]
