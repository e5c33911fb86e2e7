from __future__ import annotations

"""Timed matches: answer as many problems as possible before the countdown ends.

A correct answer moves straight on to the next problem. A wrong answer locks
input while the correct answer is shown, then moves on. Every graded problem
goes into the log immediately, because the countdown can end the match at any
moment.
"""

from typing import List, Optional

from storage.schema import Problem, TimedMatch

from ..app.explain import trace as xtrace
from .base import BaseSession, Phase

DEFAULT_WRONG_ANSWER_DELAY_S = 0.8


class TimedSession(BaseSession):
    kind = "timed"

    def __init__(
        self,
        store,
        settings=None,
        *,
        duration: Optional[int] = None,
        wrong_answer_delay: float = DEFAULT_WRONG_ANSWER_DELAY_S,
        **kwargs,
    ) -> None:
        super().__init__(store, settings, **kwargs)
        self.duration = duration
        self.wrong_answer_delay = wrong_answer_delay
        self.timer_duration = 0
        self.remaining = 0
        self.locked = False
        self.log: List[Problem] = []

    def tick(self) -> None:
        """Advance the countdown by one second; the match ends when it reaches zero."""
        with self._lock:
            if self.phase is not Phase.PLAYING:
                return
            self.remaining = max(0, self.remaining - 1)
            self.events.emit("tick", self.remaining)
            if self.remaining == 0:
                xtrace("time_up", {"score": self.score, "attempted": self.attempted})
                self._finish()

    def _clear(self) -> None:
        super()._clear()
        self.timer_duration = 0
        self.remaining = 0
        self.locked = False
        self.log = []

    def _begin(self) -> None:
        self.timer_duration = int(self.duration or self.settings.duration)
        self.remaining = self.timer_duration
        self._next_problem()

    def _next_problem(self) -> None:
        assert self._generator is not None
        self.locked = False
        self._present(self._generator.next())

    def _is_locked(self) -> bool:
        return self.locked

    def _after_grade(self, problem: Problem, correct: bool) -> None:
        self.log.append(problem)
        if correct:
            self._next_problem()
        else:
            self.locked = True
            self._schedule(self.wrong_answer_delay, self._next_problem)

    def _build_record(self) -> TimedMatch:
        self.locked = False
        return TimedMatch(
            timer_duration=self.timer_duration,
            score=self.score,
            attempted=self.attempted,
            questions=[q.model_copy() for q in self.log],
        )
