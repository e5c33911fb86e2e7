from __future__ import annotations

"""Delayed callbacks with cancellation handles.

Sessions never sleep: they ask a scheduler to run a callback later and keep
the returned handle so a reset can cancel it. ``ThreadingScheduler`` is the
wall-clock implementation; ``ManualScheduler`` runs callbacks only when its
virtual clock is advanced, which keeps tests deterministic.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, fn: Callable[[], None]) -> Handle: ...


class ThreadingScheduler:
    def call_later(self, delay: float, fn: Callable[[], None]) -> Handle:
        timer = threading.Timer(max(0.0, delay), fn)
        timer.daemon = True
        timer.start()
        return timer


@dataclass
class _Pending:
    due: float
    seq: int
    fn: Callable[[], None] = field(repr=False)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)
        self._queue: List[_Pending] = []
        self._seq = 0

    def monotonic(self) -> float:
        """Clock function matching the virtual time, for ``clock=`` arguments."""
        return self.now

    def call_later(self, delay: float, fn: Callable[[], None]) -> Handle:
        self._seq += 1
        p = _Pending(due=self.now + max(0.0, delay), seq=self._seq, fn=fn)
        self._queue.append(p)
        return p

    def pending(self) -> int:
        return sum(1 for p in self._queue if not p.cancelled)

    def _pop_due(self, until: float) -> Optional[_Pending]:
        live = [p for p in self._queue if not p.cancelled and p.due <= until]
        if not live:
            return None
        nxt = min(live, key=lambda p: (p.due, p.seq))
        self._queue.remove(nxt)
        return nxt

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every callback that falls due in order."""
        target = self.now + seconds
        while True:
            p = self._pop_due(target)
            if p is None:
                break
            self.now = max(self.now, p.due)
            p.fn()
        self._queue = [p for p in self._queue if not p.cancelled]
        self.now = target


class ClockTicker:
    """Calls ``callback`` once per ``interval`` seconds on a daemon thread until stopped."""

    def __init__(self, callback: Callable[[], None], interval: float = 1.0) -> None:
        self.callback = callback
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="countdown", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.callback()

    def stop(self) -> None:
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=self.interval * 2)
