from __future__ import annotations

"""Explain mode: one-line JSON traces of session milestones.

Each line carries the seconds elapsed since tracing was switched on, which
makes reveal delays and countdown expiry easy to follow:

    [EXPLAIN +1.803s] graded :: {"question":"7 × 8","answer":54,"correct":false}
"""

import json
import sys
import time
from typing import Any, Dict, Optional, TextIO

_state: Dict[str, Any] = {"on": False, "t0": 0.0, "stream": None}


def enable(flag: bool = True, stream: Optional[TextIO] = None) -> None:
    _state["on"] = bool(flag)
    _state["t0"] = time.monotonic()
    _state["stream"] = stream


def enabled() -> bool:
    return _state["on"]


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _state["on"]:
        return
    elapsed = time.monotonic() - _state["t0"]
    data = json.dumps(payload or {}, separators=(",", ":"), default=str, ensure_ascii=False)
    print(f"[EXPLAIN +{elapsed:.3f}s] {event} :: {data}", file=_state["stream"] or sys.stderr)
