"""Work that must wait until the dependency-install phase has finished."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List

from .mutator import emit_action

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class DeferredAction:
    """Zero-argument callable queued for the post-install phase."""

    label: str
    callback: Callable[[], None]

    def __call__(self) -> None:
        self.callback()


class DeferredActionQueue:
    """FIFO work-list drained once after the install phase.

    Actions enqueued while the queue is draining are appended to the same
    work-list and run in the same pass. A failing action stops the drain; the
    actions behind it stay queued.
    """

    def __init__(self) -> None:
        self._queue: Deque[DeferredAction] = deque()
        self._draining = False
        self._executed: List[str] = []

    def enqueue(self, action: Callable[[], None], *, label: str | None = None) -> DeferredAction:
        if isinstance(action, DeferredAction) and label is None:
            entry = action
        else:
            name = label or getattr(action, "__name__", None) or repr(action)
            entry = DeferredAction(label=name, callback=action)
        self._queue.append(entry)
        LOGGER.debug("Deferred %s (%d pending)", entry.label, len(self._queue))
        return entry

    def drain(self) -> int:
        """Run queued actions front to back until none remain.

        Returns the number of actions executed.
        """

        if self._draining:
            raise RuntimeError("drain() called while the deferred queue is already draining")

        self._draining = True
        executed = 0
        try:
            while self._queue:
                entry = self._queue.popleft()
                emit_action("deferred", label=entry.label)
                entry()
                self._executed.append(entry.label)
                executed += 1
        finally:
            self._draining = False
        return executed

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def labels(self) -> List[str]:
        return [entry.label for entry in self._queue]

    @property
    def executed(self) -> List[str]:
        return list(self._executed)

    @property
    def draining(self) -> bool:
        return self._draining

    def __len__(self) -> int:
        return len(self._queue)


__all__ = ["DeferredAction", "DeferredActionQueue"]
