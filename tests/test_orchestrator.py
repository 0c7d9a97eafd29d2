from __future__ import annotations

import pytest

from kickoff.context import RunContext
from kickoff.orchestrator import GIT_QUESTION, Orchestrator
from kickoff.preconditions import PreconditionError
from kickoff.tools.commands import ExternalCommandError

from conftest import FakeRunner, RailsApp, ScriptedResolver


def _recording_steps(events: list[str]):
    def first_step(context: RunContext) -> None:
        events.append("first_step")
        context.after_install("deferred_from_first")(lambda: events.append("deferred_from_first"))

    def second_step(context: RunContext) -> None:
        events.append("second_step")

    return (first_step, second_step)


def test_run_order_is_steps_then_install_then_deferred(rails_app: RailsApp) -> None:
    events: list[str] = []
    runner = FakeRunner(rails_app.root)
    context = rails_app.context(runner=runner)

    summary = Orchestrator(context, _recording_steps(events)).run()

    assert events == ["first_step", "second_step", "deferred_from_first"]
    assert runner.command_lines == ["rails --version", "ruby --version", "bundle install"]
    assert summary.steps == ["first_step", "second_step"]
    assert summary.deferred == 2
    assert summary.installed is True
    assert summary.checkpoints == []
    assert not (rails_app.root / ".git").exists()


def test_git_question_is_asked_first_after_preconditions(rails_app: RailsApp) -> None:
    resolver = ScriptedResolver({GIT_QUESTION: False})
    context = rails_app.context(resolver=resolver, use_git=None)

    Orchestrator(context, ()).run()

    assert resolver.asked == [GIT_QUESTION]
    assert context.options.use_git is False
    assert context.recorder.enabled is False


def test_spring_is_stopped_after_install_when_present(rails_app: RailsApp) -> None:
    (rails_app.root / "bin").mkdir()
    (rails_app.root / "bin" / "spring").write_text("#!/usr/bin/env ruby\n", encoding="utf-8")
    runner = FakeRunner(rails_app.root)
    context = rails_app.context(runner=runner)

    Orchestrator(context, (), check_preconditions=False).run()

    assert runner.command_lines == ["bundle install", "bin/spring stop"]


def test_install_phase_can_be_disabled(rails_app: RailsApp) -> None:
    runner = FakeRunner(rails_app.root)
    context = rails_app.context(runner=runner, run_install=False)

    summary = Orchestrator(context, (), check_preconditions=False).run()

    assert summary.installed is False
    assert runner.commands == []
    assert summary.deferred == 1


def test_declined_precondition_stops_before_any_step(rails_app: RailsApp) -> None:
    events: list[str] = []
    runner = FakeRunner(rails_app.root, rails_version="5.2.0")
    context = rails_app.context(runner=runner, resolver=ScriptedResolver(default=False))

    with pytest.raises(PreconditionError):
        Orchestrator(context, _recording_steps(events)).run()

    assert events == []
    assert context.deferred.pending == 0


def test_failing_step_aborts_the_run(rails_app: RailsApp) -> None:
    events: list[str] = []
    runner = FakeRunner(rails_app.root, failing=["bundle exec rails generate"])

    def generator_step(context: RunContext) -> None:
        context.rails("generate", "pghero:query_stats")
        events.append("unreachable")

    context = rails_app.context(runner=runner)

    with pytest.raises(ExternalCommandError):
        Orchestrator(context, (generator_step,), check_preconditions=False).run()

    assert events == []
    assert not runner.ran("bundle install")
    assert context.deferred.labels == ["commit_after_bundle"]


def test_orchestrator_runs_only_once(rails_app: RailsApp) -> None:
    orchestrator = Orchestrator(rails_app.context(), (), check_preconditions=False)
    orchestrator.run()

    with pytest.raises(RuntimeError):
        orchestrator.run()
