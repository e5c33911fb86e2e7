from __future__ import annotations

"""Pydantic record shapes for problems, matches and settings.

Records are persisted as camelCase JSON (``correctAnswer``, ``isCorrect``,
``timerDuration`` ...). Two match shapes exist and are kept apart by the
``kind`` tag: fixed-count matches (a planned number of questions) and timed
matches (as many questions as fit in the timer).
"""

import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class Operator(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"

    @property
    def symbol(self) -> str:
        return SYMBOLS[self]

    @classmethod
    def from_symbol(cls, symbol: str) -> "Operator":
        s = str(symbol).strip()
        for op in cls:
            if s == op.value:
                return op
        try:
            return _FROM_SYMBOL[s]
        except KeyError:
            raise ValueError(f"Unknown operator symbol: {symbol!r}") from None

    def apply(self, a: int, b: int) -> int:
        if self is Operator.ADD:
            return a + b
        if self is Operator.SUBTRACT:
            return a - b
        if self is Operator.MULTIPLY:
            return a * b
        return a // b


SYMBOLS: Dict[Operator, str] = {
    Operator.ADD: "+",
    Operator.SUBTRACT: "-",
    Operator.MULTIPLY: "×",
    Operator.DIVIDE: "÷",
}

_FROM_SYMBOL: Dict[str, Operator] = {
    **{sym: op for op, sym in SYMBOLS.items()},
    "*": Operator.MULTIPLY,
    "x": Operator.MULTIPLY,
    "/": Operator.DIVIDE,
}

# "12 ÷ 4", "7 - 3"; legacy records only carry the rendered text
_QUESTION_RE = re.compile(r"^\s*(-?\d+)\s*([+\-×÷*/x])\s*(-?\d+)\s*$")


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --- Settings ---

class OperandRange(_Record):
    """Inclusive bounds for the two operands. ``min > max`` means the single value ``min``."""

    min1: int
    max1: int
    min2: int
    max2: int


class OperatorPolicy(_Record):
    enabled: bool = True
    range: OperandRange


def default_operator_policies() -> Dict[Operator, OperatorPolicy]:
    add_range = OperandRange(min1=2, max1=100, min2=2, max2=100)
    return {
        Operator.ADD: OperatorPolicy(range=add_range),
        Operator.SUBTRACT: OperatorPolicy(range=add_range.model_copy()),
        # factor 1 x factor 2
        Operator.MULTIPLY: OperatorPolicy(range=OperandRange(min1=2, max1=12, min2=2, max2=100)),
        # range 1 bounds the divisor, range 2 the quotient
        Operator.DIVIDE: OperatorPolicy(range=OperandRange(min1=2, max1=12, min2=2, max2=100)),
    }


class Settings(_Record):
    operators: Dict[Operator, OperatorPolicy] = Field(default_factory=default_operator_policies)
    duration: int = Field(120, gt=0)
    question_count: int = Field(10, ge=1)

    @field_validator("operators")
    @classmethod
    def _fill_missing_operators(cls, v: Dict[Operator, OperatorPolicy]) -> Dict[Operator, OperatorPolicy]:
        defaults = default_operator_policies()
        return {op: v.get(op, defaults[op]) for op in Operator}

    def enabled_operators(self) -> List[Operator]:
        return [op for op in Operator if self.operators[op].enabled]

    def ranges(self) -> Dict[Operator, OperandRange]:
        return {op: policy.range for op, policy in self.operators.items()}


# --- Problems ---

class ProblemAlreadyGraded(RuntimeError):
    pass


class Problem(_Record):
    """One arithmetic question.

    ``correct_answer`` is fixed at generation time. ``user_answer`` and
    ``is_correct`` stay ``None`` until :meth:`grade` is called, which may
    happen exactly once.
    """

    operands: Tuple[int, int]
    operator: Optional[Operator] = None
    correct_answer: int
    user_answer: Optional[int] = None
    is_correct: Optional[bool] = None
    time_taken_ms: int = Field(0, ge=0)
    question: str = ""

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "operands" in data:
            return data
        data = dict(data)
        m = _QUESTION_RE.match(str(data.get("question", "")))
        data["operands"] = (int(m.group(1)), int(m.group(3))) if m else (0, 0)
        if "correctAnswer" not in data and "correct_answer" not in data and "answer" in data:
            data["correctAnswer"] = data["answer"]
        if data.get("operator") is None and data.get("operation"):
            try:
                data["operator"] = Operator.from_symbol(data["operation"])
            except ValueError:
                pass
        taken = data.get("timeTaken")
        # json.loads accepts Infinity and NaN
        if "timeTakenMs" not in data and isinstance(taken, (int, float)) and math.isfinite(taken):
            data["timeTakenMs"] = max(0, int(taken))
        return data

    @model_validator(mode="after")
    def _render_text(self) -> "Problem":
        if not self.question and self.operator is not None:
            self.question = self.render()
        return self

    def render(self) -> str:
        a, b = self.operands
        symbol = self.operator.symbol if self.operator is not None else "?"
        return f"{a} {symbol} {b}"

    @property
    def is_graded(self) -> bool:
        return self.is_correct is not None

    def grade(self, answer: int, elapsed_ms: int = 0) -> bool:
        if self.is_graded:
            raise ProblemAlreadyGraded(f"{self.question} was already graded")
        self.user_answer = int(answer)
        self.is_correct = self.user_answer == self.correct_answer
        self.time_taken_ms = max(0, int(elapsed_ms))
        return self.is_correct


# --- Matches ---

class _MatchBase(_Record):
    id: Optional[int] = None
    timestamp: Optional[datetime] = None
    score: int = Field(0, ge=0)
    attempted: int = Field(0, ge=0)
    questions: List[Problem] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _check_counts(self):
        if not (self.score <= self.attempted <= len(self.questions)):
            raise ValueError(
                f"expected score <= attempted <= questions, got {self.score}/{self.attempted}/{len(self.questions)}"
            )
        correct = sum(1 for q in self.questions if q.is_correct is True)
        if correct != self.score:
            raise ValueError(f"score {self.score} does not match {correct} correct questions")
        return self

    @property
    def accuracy(self) -> float:
        return (self.score / self.attempted) * 100 if self.attempted > 0 else 0.0


class FixedCountMatch(_MatchBase):
    kind: Literal["fixedCount"] = "fixedCount"
    count: int = Field(ge=1)
    difficulty: Optional[str] = None
    time_taken: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _check_planned(self) -> "FixedCountMatch":
        if self.attempted > self.count:
            raise ValueError(f"attempted {self.attempted} exceeds planned count {self.count}")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return self.count

    @property
    def duration(self) -> Optional[int]:
        return self.time_taken or None


class TimedMatch(_MatchBase):
    kind: Literal["timed"] = "timed"
    timer_duration: Optional[int] = Field(None, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return self.attempted

    @property
    def duration(self) -> Optional[int]:
        return self.timer_duration or None


Match = Annotated[Union[FixedCountMatch, TimedMatch], Field(discriminator="kind")]

MatchAdapter: TypeAdapter[Union[FixedCountMatch, TimedMatch]] = TypeAdapter(Match)


def upgrade_legacy_match(raw: Any) -> Any:
    """Tag untagged records from older versions.

    Records carrying ``timerDuration`` are timed matches, anything else was a
    fixed-count game. The score is recomputed from the question log because
    older writers could store it one answer behind.
    """
    if not isinstance(raw, dict) or "kind" in raw:
        return raw
    if not isinstance(raw.get("questions") or [], list):
        # left untagged so validation rejects it
        return raw
    data = dict(raw)
    questions = [q for q in (data.get("questions") or []) if isinstance(q, dict)]
    graded = [q for q in questions if q.get("isCorrect") is not None]
    data["score"] = sum(1 for q in graded if q.get("isCorrect") is True)
    if "timerDuration" in data:
        data["kind"] = "timed"
        data["questions"] = graded
    else:
        data["kind"] = "fixedCount"
        data["questions"] = questions
        data.setdefault("count", data.get("total") or max(len(questions), 1))
    data["attempted"] = len(graded)
    return data


def parse_match(raw: Any) -> Union[FixedCountMatch, TimedMatch]:
    if isinstance(raw, (FixedCountMatch, TimedMatch)):
        return raw
    return MatchAdapter.validate_python(upgrade_legacy_match(raw))
