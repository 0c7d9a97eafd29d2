"""Yes/no decisions asked while the pipeline runs."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

import typer

LOGGER = logging.getLogger(__name__)

_YES = {"y", "yes"}
_NO = {"n", "no"}


class PromptResolver(Protocol):
    """Anything that can turn a question into a boolean answer."""

    def ask_yes_no(self, question: str) -> bool:  # pragma: no cover - protocol
        ...


class FixedAnswerResolver:
    """Answer every question the same way without reading input."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.asked: list[str] = []

    def ask_yes_no(self, question: str) -> bool:
        self.asked.append(question)
        LOGGER.info("%s -> %s (non-interactive)", question, "yes" if self.answer else "no")
        return self.answer


def _default_reader(text: str) -> str:
    return typer.prompt(text, default="", show_default=False)


def _default_echo(message: str) -> None:
    typer.echo(message)


class InteractivePromptResolver:
    """Ask on the terminal until the answer is recognisably yes or no.

    Answers are never cached: asking the same question twice prompts twice.
    """

    def __init__(
        self,
        reader: Callable[[str], str] | None = None,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self._reader = reader or _default_reader
        self._echo = echo or _default_echo

    def ask_yes_no(self, question: str) -> bool:
        text = f"{question} [y/n]"
        while True:
            answer = (self._reader(text) or "").strip().lower()
            if answer in _YES:
                return True
            if answer in _NO:
                return False
            self._echo("Please answer 'y' or 'n'.")


def build_resolver(accept_all: bool) -> PromptResolver:
    if accept_all:
        return FixedAnswerResolver(True)
    return InteractivePromptResolver()


__all__ = [
    "FixedAnswerResolver",
    "InteractivePromptResolver",
    "PromptResolver",
    "build_resolver",
]
