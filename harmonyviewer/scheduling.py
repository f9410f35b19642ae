"""Deferred callbacks used to terminate notes after a fixed duration."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable


class Handle(ABC):
    """A scheduled callback that can be cancelled before it fires."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running (no-op once it has run)."""


class Scheduler(ABC):
    """Abstract source of delayed calls."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle:
        """Run *callback* after *delay* seconds."""


class _TimerHandle(Handle):
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingScheduler(Scheduler):
    """Scheduler backed by daemon :class:`threading.Timer` threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Handle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return _TimerHandle(timer)
