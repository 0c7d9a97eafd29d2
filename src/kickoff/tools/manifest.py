"""Gemfile declarations, optionally grouped by environment."""

from __future__ import annotations

import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

from .mutator import TextMutator, emit_action


def _quote(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def format_declaration(name: str, *requirements: str, comment: str | None = None) -> str:
    """Render ``gem 'name', 'req'`` with an optional trailing comment."""

    parts = [f"gem {_quote(name)}"]
    parts.extend(_quote(requirement) for requirement in requirements)
    line = ", ".join(parts)
    if comment:
        line = f"{line} # {comment}"
    return line


class GemfileManifest:
    """Append gem declarations to the application's Gemfile."""

    def __init__(self, mutator: TextMutator, path: Path | str = "Gemfile") -> None:
        self.mutator = mutator
        self.path = path
        self._group: List[str] | None = None

    def _declaration_pattern(self, name: str) -> re.Pattern[str]:
        return re.compile(rf"""^[ \t]*gem[ \t]+['"]{re.escape(name)}['"]""", re.MULTILINE)

    def declared(self, name: str) -> bool:
        if not self.mutator.exists(self.path):
            return False
        return self._declaration_pattern(name).search(self.mutator.read(self.path)) is not None

    def add(self, name: str, *requirements: str, comment: str | None = None) -> bool:
        """Declare ``name``; returns ``False`` when it is already declared."""

        if self.declared(name):
            return False
        line = format_declaration(name, *requirements, comment=comment)
        if self._group is not None:
            if any(entry.startswith(f"gem {_quote(name)}") for entry in self._group):
                return False
            self._group.append(line)
            return True
        self.mutator.append_file(self.path, line)
        return True

    @contextmanager
    def group(self, *environments: str) -> Iterator["GemfileManifest"]:
        """Collect declarations made inside the block into one ``group`` section.

        Nothing is written when the block raises or declares no gems.
        """

        if not environments:
            raise ValueError("A gem group needs at least one environment")
        if self._group is not None:
            raise RuntimeError("Gem groups cannot be nested")

        self._group = []
        try:
            yield self
            collected = self._group
        finally:
            self._group = None

        if not collected:
            return
        header = ", ".join(f":{env}" for env in environments)
        body = "".join(f"  {line}\n" for line in collected)
        self.mutator.append_file(self.path, f"\ngroup {header} do\n{body}end\n")
        emit_action("gem_group", path=self.path, environments=list(environments), gems=len(collected))

    def remove(self, name: str) -> int:
        """Comment out every declaration of ``name``."""

        pattern = self._declaration_pattern(name)
        return self.mutator.comment_lines(self.path, lambda line: pattern.match(line) is not None)


__all__ = ["GemfileManifest", "format_declaration"]
