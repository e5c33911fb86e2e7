from __future__ import annotations

"""Fixed-count matches: N pre-generated problems, each shown for a moment after grading."""

from typing import List, Optional

from storage.schema import FixedCountMatch, Problem

from .base import BaseSession

DEFAULT_REVEAL_DELAY_S = 1.0


class FixedCountSession(BaseSession):
    kind = "fixedCount"

    def __init__(
        self,
        store,
        settings=None,
        *,
        question_count: Optional[int] = None,
        difficulty: Optional[str] = None,
        reveal_delay: float = DEFAULT_REVEAL_DELAY_S,
        **kwargs,
    ) -> None:
        super().__init__(store, settings, **kwargs)
        self.question_count = question_count
        self.difficulty = difficulty
        self.reveal_delay = reveal_delay
        self.questions: List[Problem] = []
        self.index = 0
        self.time_taken = 0
        self._started_at: Optional[float] = None

    @property
    def total(self) -> int:
        return len(self.questions)

    def _clear(self) -> None:
        super()._clear()
        self.questions = []
        self.index = 0
        self.time_taken = 0
        self._started_at = None

    def _begin(self) -> None:
        assert self._generator is not None
        n = int(self.question_count or self.settings.question_count)
        self.questions = self._generator.batch(max(n, 1))
        self.index = 0
        self._started_at = self.clock()
        self._present(self.questions[0])

    def _is_locked(self) -> bool:
        # The graded question stays on screen until the reveal delay runs out
        return self.current is not None and self.current.is_graded

    def _after_grade(self, problem: Problem, correct: bool) -> None:
        self._schedule(self.reveal_delay, self._advance)

    def _advance(self) -> None:
        if self.index < len(self.questions) - 1:
            self.index += 1
            self._present(self.questions[self.index])
        else:
            self._finish()

    def _build_record(self) -> FixedCountMatch:
        elapsed = self.clock() - (self._started_at if self._started_at is not None else self.clock())
        self.time_taken = int(round(max(elapsed, 0.0)))
        return FixedCountMatch(
            count=len(self.questions),
            difficulty=self.difficulty,
            score=self.score,
            attempted=self.attempted,
            time_taken=self.time_taken,
            questions=[q.model_copy() for q in self.questions],
        )
