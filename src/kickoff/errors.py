"""Base exception shared by every failure the kickoff pipeline can raise."""

from __future__ import annotations

from typing import Any, Mapping


class KickoffError(RuntimeError):
    """Raised when a pipeline step cannot complete.

    Subclasses live next to the code that raises them; the CLI is the only
    place that turns them into an exit status.
    """

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


__all__ = ["KickoffError"]
