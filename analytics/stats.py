from __future__ import annotations

"""Summary statistics over match history.

``compute`` is a pure function of the records it is given: no I/O, no
sorting, no hidden state. All percentages and means are rounded to one
decimal place.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from storage.schema import FixedCountMatch, Operator, Problem, TimedMatch

AnyMatch = Union[FixedCountMatch, TimedMatch]

PRECISION = 1
UNKNOWN_BUCKET = "unknown"

# Scan order for legacy question text without an operator field
_SCAN_ORDER = [("+", Operator.ADD), ("-", Operator.SUBTRACT), ("×", Operator.MULTIPLY), ("÷", Operator.DIVIDE)]


@dataclass(frozen=True)
class TrendPoint:
    index: int
    kind: str
    score: int
    attempted: int
    accuracy: float
    duration: Optional[int] = None
    difficulty: Optional[str] = None
    date: Optional[str] = None


@dataclass(frozen=True)
class ScoreBucket:
    best: int
    avg: float
    matches: int


@dataclass(frozen=True)
class Stats:
    total_matches: int = 0
    total_questions_answered: int = 0
    overall_accuracy: float = 0.0
    average_score: float = 0.0
    best_score: int = 0
    best_accuracy: float = 0.0
    average_qpm: float = 0.0
    accuracy_by_operation: Dict[str, float] = field(default_factory=dict)
    score_trend: List[TrendPoint] = field(default_factory=list)
    score_by_duration: Dict[str, ScoreBucket] = field(default_factory=dict)
    score_by_difficulty: Dict[str, ScoreBucket] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _r(x: float) -> float:
    return round(float(x), PRECISION)


def operator_from_text(question: str) -> Operator:
    """Operator for a rendered question, checking ``+ - × ÷`` in that order; ``+`` if none."""
    for symbol, op in _SCAN_ORDER:
        if symbol in question:
            return op
    return Operator.ADD


def problem_operator(problem: Problem) -> Operator:
    if problem.operator is not None:
        return problem.operator
    return operator_from_text(problem.question)


def match_duration(match: AnyMatch) -> Optional[int]:
    """Seconds the match lasted: the timer for timed matches, time taken for fixed ones."""
    if isinstance(match, TimedMatch):
        return match.timer_duration
    return match.time_taken


def _bucket(scores: List[int]) -> ScoreBucket:
    return ScoreBucket(best=max(scores), avg=_r(sum(scores) / len(scores)), matches=len(scores))


def compute(records: Sequence[AnyMatch]) -> Stats:
    if not records:
        return Stats()

    total_matches = len(records)
    total_correct = sum(m.score for m in records)
    total_attempted = sum(m.attempted for m in records)

    op_counts: Dict[Operator, List[int]] = {}
    by_duration: Dict[str, List[int]] = {}
    by_difficulty: Dict[str, List[int]] = {}
    trend: List[TrendPoint] = []
    qpm_values: List[float] = []

    for idx, m in enumerate(records):
        date = m.timestamp.isoformat() if isinstance(m.timestamp, datetime) else None
        if isinstance(m, TimedMatch):
            key = f"{m.timer_duration}s" if m.timer_duration else UNKNOWN_BUCKET
            by_duration.setdefault(key, []).append(m.score)
            trend.append(
                TrendPoint(idx, m.kind, m.score, m.attempted, _r(m.accuracy), duration=m.timer_duration or 0, date=date)
            )
        else:
            key = m.difficulty.lower() if m.difficulty else UNKNOWN_BUCKET
            by_difficulty.setdefault(key, []).append(m.score)
            trend.append(
                TrendPoint(idx, m.kind, m.score, m.attempted, _r(m.accuracy), difficulty=m.difficulty, date=date)
            )

        # timed matches only
        if isinstance(m, TimedMatch) and m.timer_duration:
            qpm_values.append(m.attempted / m.timer_duration * 60)

        for q in m.questions:
            if q.is_correct is None:
                continue
            bucket = op_counts.setdefault(problem_operator(q), [0, 0])
            bucket[1] += 1
            if q.is_correct:
                bucket[0] += 1

    accuracy_by_operation = {
        op.value: _r(correct / total * 100) for op, (correct, total) in op_counts.items() if total > 0
    }

    return Stats(
        total_matches=total_matches,
        total_questions_answered=total_attempted,
        overall_accuracy=_r(total_correct / total_attempted * 100) if total_attempted > 0 else 0.0,
        average_score=_r(total_correct / total_matches),
        best_score=max(m.score for m in records),
        best_accuracy=_r(max(m.accuracy for m in records)),
        average_qpm=_r(sum(qpm_values) / len(qpm_values)) if qpm_values else 0.0,
        accuracy_by_operation=accuracy_by_operation,
        score_trend=trend,
        score_by_duration={k: _bucket(v) for k, v in by_duration.items()},
        score_by_difficulty={k: _bucket(v) for k, v in by_difficulty.items()},
    )
