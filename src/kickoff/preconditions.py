"""Minimum tool version checks run before any file is touched."""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Sequence, Tuple

from kickoff.errors import KickoffError
from kickoff.tools.commands import CommandRunner, ExternalCommandError

if TYPE_CHECKING:  # pragma: no cover - typing only
    from kickoff.context import RunContext

LOGGER = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"\d+(?:\.\d+)+|\d+")
_REQUIREMENT_RE = re.compile(r"^\s*(~>|>=|<=|!=|=|>|<)?\s*(\d+(?:\.\d+)*)\s*$")

Version = Tuple[int, ...]


class PreconditionError(KickoffError):
    """Raised when a version requirement is unmet and the user declines to continue."""


def parse_version(text: str) -> Version:
    """Return the first dotted version found in ``text`` as an integer tuple."""

    match = _VERSION_RE.search(text)
    if match is None:
        raise ValueError(f"No version number in {text!r}")
    return tuple(int(part) for part in match.group(0).split("."))


def _pad(left: Version, right: Version) -> tuple[Version, Version]:
    width = max(len(left), len(right))
    return left + (0,) * (width - len(left)), right + (0,) * (width - len(right))


def _compare(op: Callable[[Version, Version], bool]) -> Callable[[Version, Version], bool]:
    def check(actual: Version, wanted: Version) -> bool:
        return op(*_pad(actual, wanted))

    return check


def _pessimistic(actual: Version, wanted: Version) -> bool:
    # ~> 6.0.2 means >= 6.0.2 and < 6.1; ~> 6 behaves like ~> 6.0
    prefix = wanted[:-1] if len(wanted) > 1 else wanted
    upper = prefix[:-1] + (prefix[-1] + 1,)
    low_actual, low_wanted = _pad(actual, wanted)
    high_actual, high_upper = _pad(actual, upper)
    return low_actual >= low_wanted and high_actual < high_upper


_OPERATORS: Dict[str, Callable[[Version, Version], bool]] = {
    "=": _compare(operator.eq),
    "!=": _compare(operator.ne),
    ">": _compare(operator.gt),
    ">=": _compare(operator.ge),
    "<": _compare(operator.lt),
    "<=": _compare(operator.le),
    "~>": _pessimistic,
}


@dataclass(frozen=True, slots=True)
class VersionRequirement:
    """A single ``<op> <version>`` constraint such as ``>= 6.0.2``."""

    op: str
    version: Version

    @classmethod
    def parse(cls, text: str) -> "VersionRequirement":
        match = _REQUIREMENT_RE.match(text or "")
        if match is None:
            raise ValueError(f"Invalid version requirement: {text!r}")
        op = match.group(1) or "="
        version = tuple(int(part) for part in match.group(2).split("."))
        return cls(op=op, version=version)

    def satisfied_by(self, version: Version | str) -> bool:
        actual = parse_version(version) if isinstance(version, str) else tuple(version)
        return _OPERATORS[self.op](actual, self.version)

    def __str__(self) -> str:
        return f"{self.op} {'.'.join(str(part) for part in self.version)}"


def format_version(version: Version) -> str:
    return ".".join(str(part) for part in version)


def detect_version(runner: CommandRunner, command: str | Sequence[str]) -> Version:
    """Run ``command`` and parse the first version number in its output."""

    result = runner.run(command, capture=True)
    try:
        return parse_version(result.output)
    except ValueError as error:
        raise ExternalCommandError(
            f"Could not read a version from `{result.command[0]}` output",
            command=result.command,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        ) from error


def _check(context: "RunContext", tool: str, command: Sequence[str], requirement_text: str) -> None:
    requirement = VersionRequirement.parse(requirement_text)
    version = detect_version(context.runner, command)
    if requirement.satisfied_by(version):
        LOGGER.debug("%s %s satisfies %s", tool, format_version(version), requirement)
        return

    question = (
        f"This template requires {tool} {requirement_text}. "
        f"You are using {format_version(version)}. Continue anyway?"
    )
    if not context.resolver.ask_yes_no(question):
        raise PreconditionError(
            f"{tool} {format_version(version)} does not satisfy {requirement_text}",
            details={"tool": tool, "version": format_version(version), "requirement": requirement_text},
        )
    LOGGER.warning("Continuing with %s %s (requires %s)", tool, format_version(version), requirement_text)


def assert_minimum_versions(context: "RunContext") -> None:
    """Check Rails, then Ruby, asking before continuing on an unmet requirement."""

    _check(context, "Rails", ("rails", "--version"), context.options.rails_requirement)
    _check(context, "Ruby", ("ruby", "--version"), context.options.ruby_requirement)


__all__ = [
    "PreconditionError",
    "VersionRequirement",
    "assert_minimum_versions",
    "detect_version",
    "format_version",
    "parse_version",
]
