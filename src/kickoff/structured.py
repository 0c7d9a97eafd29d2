"""Typed payloads that describe declarative file mutations."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Literal

MutationKind = Literal[
    "insert-after",
    "insert-before",
    "replace",
    "comment-lines",
    "uncomment-lines",
    "create-file",
    "append-file",
    "remove-file",
]

Anchor = str | re.Pattern[str]
LinePredicate = str | re.Pattern[str] | Callable[[str], bool]


@dataclass(slots=True)
class MutationStep:
    """Single file mutation, applied through :meth:`TextMutator.apply`.

    ``anchor`` locates insertion points, ``pattern``/``replacement`` drive
    ``replace``, ``predicate`` selects lines for the comment toggles and
    ``text`` is the payload for inserts and file writes.
    """

    kind: MutationKind
    path: str
    name: str | None = None
    anchor: Anchor | None = None
    text: str | None = None
    pattern: Anchor | None = None
    replacement: str | None = None
    count: int = 1
    predicate: LinePredicate | None = None
    prefix: str = "#"
    overwrite: bool = False

    @property
    def label(self) -> str:
        return self.name or f"{self.kind} {self.path}"
