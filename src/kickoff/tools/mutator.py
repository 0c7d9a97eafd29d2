"""Line-oriented text mutations applied to files inside the application tree.

Every operation reads the whole file, applies exactly one transformation and
writes the result back through a temporary file that replaces the original.
Anchors and patterns use first-match semantics; the comment toggles are the
only operations that touch every matching line.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from kickoff.errors import KickoffError
from kickoff.structured import Anchor, LinePredicate, MutationStep

ACTIONS_LOGGER = logging.getLogger("kickoff.actions")
LOGGER = logging.getLogger(__name__)


class AnchorNotFoundError(KickoffError):
    """Raised when a required insertion point is missing from a file."""


class MissingFileError(AnchorNotFoundError):
    """Raised when a mutation targets a file that does not exist."""


class FileConflictError(KickoffError):
    """Raised when creating a file that already exists with other content."""


def _serialise_event_value(value: Any) -> Any:
    """Convert event payload values into JSON-friendly representations."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, re.Pattern):
        return value.pattern
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    return str(value)


def emit_action(action: str, **fields: Any) -> None:
    """Log a one-line structured event describing a pipeline action."""
    payload = {"event": action, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    ACTIONS_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


def _normalise_block(text: str | None) -> str:
    """Return ``text`` terminated by a newline (empty text stays empty)."""
    if not text:
        return ""
    if not text.endswith("\n"):
        return text + "\n"
    return text


def _compile(anchor: Anchor) -> re.Pattern[str]:
    if isinstance(anchor, re.Pattern):
        return anchor
    return re.compile(re.escape(anchor))


def _describe(anchor: Anchor) -> str:
    return anchor.pattern if isinstance(anchor, re.Pattern) else anchor


def _line_matches(predicate: LinePredicate, line: str) -> bool:
    if isinstance(predicate, str):
        return predicate in line
    if isinstance(predicate, re.Pattern):
        return predicate.search(line) is not None
    return bool(predicate(line))


def _split_newline(line: str) -> tuple[str, str]:
    """Split a ``keepends`` line into its body and line terminator."""
    body = line.rstrip("\r\n")
    return body, line[len(body):]


class TextMutator:
    """Apply file mutations relative to ``root``."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    # ------------------------------------------------------------------ paths
    def resolve(self, path: Path | str) -> Path:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.root / candidate

    def relative(self, path: Path | str) -> str:
        target = self.resolve(path)
        try:
            return target.relative_to(self.root).as_posix()
        except ValueError:
            return target.as_posix()

    def exists(self, path: Path | str) -> bool:
        return self.resolve(path).exists()

    def find_one(self, pattern: str) -> Path:
        """Return the first file (sorted) matching a glob relative to ``root``.

        Generators that stamp their output with timestamps (migrations, for
        example) are located this way.
        """

        matches = sorted(self.root.glob(pattern))
        if not matches:
            raise MissingFileError(
                f"No file matches {pattern!r} under {self.root}",
                details={"pattern": pattern},
            )
        return matches[0]

    # --------------------------------------------------------------------- io
    def read(self, path: Path | str) -> str:
        target = self.resolve(path)
        if not target.is_file():
            raise MissingFileError(
                f"{self.relative(path)} does not exist",
                details={"path": self.relative(path)},
            )
        with target.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()

    def _write(self, path: Path | str, content: str) -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        mode = target.stat().st_mode & 0o7777 if target.exists() else 0o644
        handle_fd, temp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
        try:
            with os.fdopen(handle_fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(content)
            os.chmod(temp_name, mode)
            os.replace(temp_name, target)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    # -------------------------------------------------------------- inserting
    def _locate(self, path: Path | str, anchor: Anchor) -> tuple[str, re.Match[str]]:
        content = self.read(path)
        match = _compile(anchor).search(content)
        if match is None:
            raise AnchorNotFoundError(
                f"Anchor {_describe(anchor)!r} not found in {self.relative(path)}",
                details={"path": self.relative(path), "anchor": _describe(anchor)},
            )
        return content, match

    def insert_after(self, path: Path | str, anchor: Anchor, text: str) -> bool:
        """Insert ``text`` on the line after the first ``anchor`` match.

        Returns ``False`` when the text already follows the anchor.
        """

        content, match = self._locate(path, anchor)
        block = _normalise_block(text)
        end = match.end()
        if end > match.start() and content[end - 1] == "\n":
            position = end
        else:
            newline = content.find("\n", end)
            if newline == -1:
                if content and not content.endswith("\n"):
                    content += "\n"
                position = len(content)
            else:
                position = newline + 1

        if content.startswith(block, position):
            LOGGER.debug("Skipping insert into %s; text already present", self.relative(path))
            return False

        self._write(path, content[:position] + block + content[position:])
        emit_action("insert", path=self.relative(path), after=_describe(anchor))
        return True

    def insert_before(self, path: Path | str, anchor: Anchor, text: str) -> bool:
        """Insert ``text`` on the line before the first ``anchor`` match."""

        content, match = self._locate(path, anchor)
        block = _normalise_block(text)
        position = content.rfind("\n", 0, match.start()) + 1

        if block and content[max(position - len(block), 0):position] == block:
            LOGGER.debug("Skipping insert into %s; text already present", self.relative(path))
            return False

        self._write(path, content[:position] + block + content[position:])
        emit_action("insert", path=self.relative(path), before=_describe(anchor))
        return True

    def inject_into_class(self, path: Path | str, class_name: str, text: str) -> bool:
        """Insert ``text`` as the first lines of a Ruby class body."""

        anchor = re.compile(rf"^class {re.escape(class_name)}\b.*\n", re.MULTILINE)
        return self.insert_after(path, anchor, text)

    # -------------------------------------------------------------- replacing
    def replace(
        self,
        path: Path | str,
        pattern: Anchor,
        replacement: str,
        *,
        count: int = 1,
    ) -> bool:
        """Replace the first ``count`` matches of ``pattern`` (``0`` means all).

        A missing match is not an error: re-running a step over an already
        patched file must leave it untouched. Returns whether the file changed.
        """

        content = self.read(path)
        if isinstance(pattern, re.Pattern):
            updated, hits = pattern.subn(replacement, content, count=count)
        else:
            updated, hits = _compile(pattern).subn(lambda _: replacement, content, count=count)

        if hits == 0:
            LOGGER.warning("Pattern %r not found in %s; nothing replaced", _describe(pattern), self.relative(path))
            return False
        if updated == content:
            return False

        self._write(path, updated)
        emit_action("replace", path=self.relative(path), pattern=_describe(pattern), hits=hits)
        return True

    # -------------------------------------------------------------- comments
    def comment_lines(self, path: Path | str, predicate: LinePredicate, *, prefix: str = "#") -> int:
        """Comment out every line matching ``predicate``.

        Lines that already start with ``prefix`` are left alone, so running
        the same call twice does not stack prefixes. Returns the number of
        lines changed.
        """

        content = self.read(path)
        lines = content.splitlines(keepends=True)
        changed = 0
        for index, line in enumerate(lines):
            body, terminator = _split_newline(line)
            stripped = body.lstrip()
            if not stripped or stripped.startswith(prefix):
                continue
            if not _line_matches(predicate, body):
                continue
            indent = body[: len(body) - len(stripped)]
            lines[index] = f"{indent}{prefix} {stripped}{terminator}"
            changed += 1

        if changed:
            self._write(path, "".join(lines))
            emit_action("comment", path=self.relative(path), lines=changed)
        return changed

    def uncomment_lines(self, path: Path | str, predicate: LinePredicate, *, prefix: str = "#") -> int:
        """Strip ``prefix`` from every commented line whose code matches ``predicate``."""

        content = self.read(path)
        lines = content.splitlines(keepends=True)
        changed = 0
        for index, line in enumerate(lines):
            body, terminator = _split_newline(line)
            stripped = body.lstrip()
            if not stripped.startswith(prefix):
                continue
            code = stripped[len(prefix):].lstrip(" \t")
            if not code or not _line_matches(predicate, code):
                continue
            indent = body[: len(body) - len(stripped)]
            lines[index] = f"{indent}{code}{terminator}"
            changed += 1

        if changed:
            self._write(path, "".join(lines))
            emit_action("uncomment", path=self.relative(path), lines=changed)
        return changed

    # ----------------------------------------------------------------- files
    def create_file(self, path: Path | str, content: str, *, overwrite: bool = False) -> bool:
        """Create ``path`` with ``content``.

        Writing identical content over an existing file is a no-op; differing
        content requires ``overwrite=True``.
        """

        target = self.resolve(path)
        block = _normalise_block(content)
        if target.is_dir():
            raise FileConflictError(
                f"{self.relative(path)} is a directory",
                details={"path": self.relative(path)},
            )
        if target.exists():
            if self.read(path) == block:
                LOGGER.debug("%s is identical; leaving it in place", self.relative(path))
                return False
            if not overwrite:
                raise FileConflictError(
                    f"{self.relative(path)} already exists",
                    details={"path": self.relative(path)},
                )

        self._write(path, block)
        emit_action("create", path=self.relative(path), overwrite=overwrite)
        return True

    def append_file(self, path: Path | str, content: str) -> bool:
        """Append ``content`` to ``path``, creating it when absent.

        Returns ``False`` when the file already ends with ``content``.
        """

        block = _normalise_block(content)
        existing = self.read(path) if self.resolve(path).is_file() else ""
        if block and existing.endswith(block):
            LOGGER.debug("%s already ends with the appended block", self.relative(path))
            return False

        self._write(path, existing + block)
        emit_action("append", path=self.relative(path))
        return True

    def remove_file(self, path: Path | str) -> bool:
        target = self.resolve(path)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        else:
            return False
        emit_action("remove", path=self.relative(path))
        return True

    def empty_directory(self, path: Path | str) -> Path:
        """Ensure ``path`` exists; a ``.keep`` marker lets git track it."""

        target = self.resolve(path)
        target.mkdir(parents=True, exist_ok=True)
        if not any(target.iterdir()):
            (target / ".keep").write_text("", encoding="utf-8")
            emit_action("create", path=self.relative(target / ".keep"))
        return target

    # ----------------------------------------------------------- declarative
    def apply(self, step: MutationStep) -> bool:
        """Apply a declarative :class:`MutationStep`; returns whether anything changed."""

        kind = step.kind
        if kind in {"insert-after", "insert-before"}:
            if step.anchor is None or step.text is None:
                raise ValueError(f"{step.label}: insert steps need an anchor and text")
            if kind == "insert-after":
                return self.insert_after(step.path, step.anchor, step.text)
            return self.insert_before(step.path, step.anchor, step.text)
        if kind == "replace":
            if step.pattern is None or step.replacement is None:
                raise ValueError(f"{step.label}: replace steps need a pattern and replacement")
            return self.replace(step.path, step.pattern, step.replacement, count=step.count)
        if kind in {"comment-lines", "uncomment-lines"}:
            if step.predicate is None:
                raise ValueError(f"{step.label}: comment steps need a predicate")
            toggle = self.comment_lines if kind == "comment-lines" else self.uncomment_lines
            return toggle(step.path, step.predicate, prefix=step.prefix) > 0
        if kind == "create-file":
            return self.create_file(step.path, step.text or "", overwrite=step.overwrite)
        if kind == "append-file":
            return self.append_file(step.path, step.text or "")
        if kind == "remove-file":
            return self.remove_file(step.path)
        raise ValueError(f"Unknown mutation kind: {kind!r}")


__all__ = [
    "AnchorNotFoundError",
    "FileConflictError",
    "MissingFileError",
    "TextMutator",
    "emit_action",
]
