"""Deferred signal delivery for the supervisor and worker loops.

Signal handlers only record which signals arrived. The owning loop calls
``dispatch()`` once per iteration and runs the registered callbacks in
ordinary program context, where logging and ``waitpid`` are safe.

Usage::

    signals = SignalQueue()
    signals.on(signal.SIGTERM, self.stop)
    signals.install()

    while self.running:
        signals.dispatch()
        ...
"""

import signal
from collections import deque
from collections.abc import Callable
from types import FrameType
from typing import TypeAlias

SignalCallback: TypeAlias = Callable[[int], None]


class SignalQueue:
    """Queue of received signals plus the callbacks that handle them."""

    __slots__ = ("_callbacks", "_pending", "_previous")

    def __init__(self) -> None:
        self._callbacks: dict[int, SignalCallback] = {}
        self._pending: deque[int] = deque()
        self._previous: dict[int, object] = {}

    def on(self, signum: int, callback: SignalCallback) -> None:
        """Register *callback* for *signum*. Takes effect on ``install()``."""
        self._callbacks[signum] = callback

    def install(self) -> None:
        """Point the OS handlers for every registered signal at the queue."""
        for signum in self._callbacks:
            self._previous[signum] = signal.signal(signum, self._record)

    def restore(self) -> None:
        """Put back the handlers that were active before ``install()``."""
        for signum, previous in self._previous.items():
            signal.signal(signum, previous)  # type: ignore[arg-type]
        self._previous.clear()

    def _record(self, signum: int, frame: FrameType | None) -> None:
        self._pending.append(signum)

    def push(self, signum: int) -> None:
        """Queue *signum* as if it had been delivered."""
        self._pending.append(signum)

    @property
    def pending(self) -> tuple[int, ...]:
        return tuple(self._pending)

    def dispatch(self) -> int:
        """Run callbacks for every queued signal. Returns how many ran."""
        handled = 0
        while self._pending:
            signum = self._pending.popleft()
            callback = self._callbacks.get(signum)
            if callback is not None:
                callback(signum)
                handled += 1
        return handled


def reset_to_default(*signums: int) -> None:
    """Restore the default disposition for *signums* (used in forked children)."""
    for signum in signums:
        signal.signal(signum, signal.SIG_DFL)
