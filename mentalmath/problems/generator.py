from __future__ import annotations

"""Random arithmetic problem generation.

Each operator draws its operands from its own range. Subtraction swaps the
operands so the answer is never negative; division picks the divisor and the
quotient first and derives the dividend, so every quotient is an integer.
"""

import random
from typing import Iterable, List, Mapping, Optional, Union

from storage.schema import OperandRange, Operator, Problem, Settings

from ..errors import EmptyOperatorPool
from ..util.randomness import shared_rng


def inclusive_randint(rng: random.Random, lo: int, hi: int) -> int:
    """Uniform integer in ``[lo, hi]``; ``lo > hi`` collapses to ``lo``."""
    if lo >= hi:
        return lo
    return rng.randint(lo, hi)


def _as_range(value: Union[OperandRange, Mapping[str, int]]) -> OperandRange:
    if isinstance(value, OperandRange):
        return value
    return OperandRange.model_validate(value)


def generate(
    operator_pool: Iterable[Union[Operator, str]],
    ranges: Mapping[Union[Operator, str], Union[OperandRange, Mapping[str, int]]],
    rng: Optional[random.Random] = None,
) -> Problem:
    """Generate one ungraded problem.

    Args:
        operator_pool: Operators to choose from (uniformly). Must not be empty.
        ranges: Operand bounds per operator; only the chosen operator's entry is read.
        rng: Random source; the shared (optionally seeded) generator when omitted.

    Raises:
        EmptyOperatorPool: if ``operator_pool`` is empty.
    """
    rng = rng or shared_rng()
    wanted = {Operator(op) for op in operator_pool}
    # Stable order so a seeded rng reproduces the same sequence
    pool = [op for op in Operator if op in wanted]
    if not pool:
        raise EmptyOperatorPool("at least one operator must be enabled")

    op = rng.choice(pool)
    bounds = {Operator(k): v for k, v in ranges.items()}
    r = _as_range(bounds[op])

    if op is Operator.DIVIDE:
        # range 1 bounds the divisor, range 2 the quotient
        divisor = inclusive_randint(rng, max(r.min1, 1), max(r.max1, 1))
        quotient = inclusive_randint(rng, r.min2, r.max2)
        a, b, answer = divisor * quotient, divisor, quotient
    else:
        a = inclusive_randint(rng, r.min1, r.max1)
        b = inclusive_randint(rng, r.min2, r.max2)
        if op is Operator.SUBTRACT and a < b:
            a, b = b, a
        answer = op.apply(a, b)

    return Problem(operands=(a, b), operator=op, correct_answer=answer)


def generate_batch(
    n: int,
    operator_pool: Iterable[Union[Operator, str]],
    ranges: Mapping[Union[Operator, str], Union[OperandRange, Mapping[str, int]]],
    rng: Optional[random.Random] = None,
) -> List[Problem]:
    rng = rng or shared_rng()
    pool = list(operator_pool)
    return [generate(pool, ranges, rng) for _ in range(n)]


class ProblemGenerator:
    """Generator bound to one settings snapshot, as used by sessions."""

    def __init__(self, settings: Settings, rng: Optional[random.Random] = None) -> None:
        self.settings = settings
        self.rng = rng or shared_rng()

    def next(self) -> Problem:
        return generate(self.settings.enabled_operators(), self.settings.ranges(), self.rng)

    def batch(self, n: int) -> List[Problem]:
        return [self.next() for _ in range(n)]
