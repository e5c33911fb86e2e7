from __future__ import annotations

"""Curated difficulty presets.

Each preset enables a set of operators over one number range. Division keeps
small divisors so the dividend stays inside the preset's range.
"""

from typing import Dict, List, Optional

from storage.schema import OperandRange, Operator, OperatorPolicy, Settings

DIFFICULTY_PRESETS: Dict[str, Dict] = {
    "easy": {
        "label": "Easy",
        "range": [1, 20],
        "operators": [Operator.ADD, Operator.SUBTRACT],
    },
    "medium": {
        "label": "Medium",
        "range": [1, 50],
        "operators": [Operator.ADD, Operator.SUBTRACT, Operator.MULTIPLY, Operator.DIVIDE],
    },
    "hard": {
        "label": "Hard",
        "range": [1, 100],
        "operators": [Operator.ADD, Operator.SUBTRACT, Operator.MULTIPLY, Operator.DIVIDE],
    },
}


def list_presets() -> List[str]:
    return list(DIFFICULTY_PRESETS)


def settings_for_difficulty(name: str, base: Optional[Settings] = None) -> Settings:
    """Settings for preset ``name``, keeping duration and question count from ``base``."""
    try:
        preset = DIFFICULTY_PRESETS[name.lower()]
    except KeyError:
        raise KeyError(f"Unknown difficulty: {name}") from None
    lo, hi = preset["range"]
    enabled = set(preset["operators"])
    divisor_hi = max(lo, hi // 10)

    operators: Dict[Operator, OperatorPolicy] = {}
    for op in Operator:
        if op is Operator.DIVIDE:
            bounds = OperandRange(min1=max(lo, 1), max1=divisor_hi, min2=lo, max2=max(lo, hi // divisor_hi))
        else:
            bounds = OperandRange(min1=lo, max1=hi, min2=lo, max2=hi)
        operators[op] = OperatorPolicy(enabled=op in enabled, range=bounds)

    base = base or Settings()
    return Settings(operators=operators, duration=base.duration, question_count=base.question_count)
