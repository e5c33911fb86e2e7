from __future__ import annotations

"""Match session state machine shared by the fixed-count and timed variants.

A session moves ``setup -> playing -> summary``. Subclasses decide how
problems are sequenced and what record is produced; this base owns answer
parsing, grading, the single pending scheduled callback and the handoff of
the finished record to the store.
"""

import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from storage.schema import FixedCountMatch, Problem, Settings, TimedMatch
from storage.store import MatchStore

from ..app.events import EventBus
from ..app.explain import trace as xtrace
from ..errors import SessionError
from ..problems.generator import ProblemGenerator
from .scheduling import Handle, Scheduler, ThreadingScheduler


class Phase(str, Enum):
    SETUP = "setup"
    PLAYING = "playing"
    SUMMARY = "summary"


@dataclass(frozen=True)
class SubmitResult:
    graded: bool
    correct: Optional[bool] = None
    correct_answer: Optional[int] = None


def parse_answer(raw: Any) -> Optional[int]:
    """Parse a typed answer. Empty or non-integer input yields ``None``."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class BaseSession:
    kind: str = ""

    def __init__(
        self,
        store: MatchStore,
        settings: Optional[Settings] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.scheduler = scheduler or ThreadingScheduler()
        self.clock = clock or time.monotonic
        self.rng = rng
        self.events = events or EventBus()

        self.phase = Phase.SETUP
        self.score = 0
        self.attempted = 0
        self.current: Optional[Problem] = None
        self.match: Optional[Union[FixedCountMatch, TimedMatch]] = None

        self._generator: Optional[ProblemGenerator] = None
        self._question_started: Optional[float] = None
        self._pending: Optional[Handle] = None
        # Bumped on every cancel; callbacks from an older generation are ignored
        self._generation = 0
        self._lock = threading.RLock()

    # --- public API ---

    def start(self, settings: Optional[Settings] = None) -> bool:
        """Begin a fresh match. Returns False, staying in setup, if no operator is enabled."""
        with self._lock:
            self._cancel_pending()
            if settings is not None:
                self.settings = settings
            self._clear()
            if not self.settings.enabled_operators():
                self._set_phase(Phase.SETUP)
                xtrace("start_refused", {"kind": self.kind, "reason": "no operators enabled"})
                return False
            self._generator = ProblemGenerator(self.settings, self.rng)
            self._set_phase(Phase.PLAYING)
            self._begin()
            xtrace("session_started", {"kind": self.kind, "operators": [op.value for op in self.settings.enabled_operators()]})
            return True

    def submit(self, raw: Any) -> SubmitResult:
        with self._lock:
            if self.phase is not Phase.PLAYING or self.current is None or self._is_locked():
                return SubmitResult(graded=False)
            answer = parse_answer(raw)
            if answer is None:
                return SubmitResult(graded=False)

            problem = self.current
            now = self.clock()
            started = self._question_started if self._question_started is not None else now
            elapsed_ms = int(round((now - started) * 1000))
            correct = problem.grade(answer, elapsed_ms)
            self.attempted += 1
            if correct:
                self.score += 1
            xtrace("graded", {"question": problem.question, "answer": answer, "correct": correct})
            self.events.emit("graded", problem)
            self._after_grade(problem, correct)
            return SubmitResult(graded=True, correct=correct, correct_answer=problem.correct_answer)

    def tick(self) -> None:
        raise SessionError(f"{type(self).__name__} has no countdown")

    def reset(self) -> None:
        """Return to setup, cancelling any pending callback first."""
        with self._lock:
            self._cancel_pending()
            self._clear()
            self._set_phase(Phase.SETUP)

    @property
    def accuracy(self) -> float:
        return (self.score / self.attempted) * 100 if self.attempted else 0.0

    # --- hooks ---

    def _clear(self) -> None:
        self.score = 0
        self.attempted = 0
        self.current = None
        self.match = None
        self._question_started = None

    def _begin(self) -> None:
        raise NotImplementedError

    def _is_locked(self) -> bool:
        raise NotImplementedError

    def _after_grade(self, problem: Problem, correct: bool) -> None:
        raise NotImplementedError

    def _build_record(self) -> Union[FixedCountMatch, TimedMatch]:
        raise NotImplementedError

    # --- helpers ---

    def _present(self, problem: Problem) -> None:
        self.current = problem
        self._question_started = self.clock()
        self.events.emit("question", problem)

    def _set_phase(self, phase: Phase) -> None:
        if phase is self.phase:
            return
        self.phase = phase
        self.events.emit("phase", phase)

    def _schedule(self, delay: float, fn: Callable[[], None]) -> None:
        self._cancel_pending()
        generation = self._generation

        def fire() -> None:
            with self._lock:
                if generation != self._generation:
                    return
                self._pending = None
                fn()

        self._pending = self.scheduler.call_later(delay, fire)

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _finish(self) -> None:
        # Timer expiry and the last answer can both get here; only the first counts
        if self.phase is not Phase.PLAYING:
            return
        self._cancel_pending()
        record = self._build_record()
        # match is set before the phase becomes SUMMARY
        self.match = self.store.append(record)
        self._set_phase(Phase.SUMMARY)
        xtrace("session_finished", {"kind": self.kind, "id": self.match.id, "score": self.match.score, "attempted": self.match.attempted})
        self.events.emit("finished", self.match)
