from __future__ import annotations

"""Tabular views of match history (pandas) and export to disk."""

from pathlib import Path
from typing import Sequence, Union

import numpy as np
import pandas as pd

from storage.schema import FixedCountMatch, TimedMatch

from .stats import match_duration, problem_operator

AnyMatch = Union[FixedCountMatch, TimedMatch]

MATCH_COLUMNS = ["id", "timestamp", "kind", "score", "attempted", "duration", "difficulty", "accuracy", "qpm"]
QUESTION_COLUMNS = [
    "match_id",
    "position",
    "operator",
    "operand1",
    "operand2",
    "correct_answer",
    "user_answer",
    "is_correct",
    "time_taken_ms",
]


def matches_frame(records: Sequence[AnyMatch]) -> pd.DataFrame:
    """One row per match, in input order, with accuracy and questions-per-minute.

    ``match_idx`` is a stable 0-based position used for trend plots and smoothing.
    """
    rows = [
        {
            "id": m.id,
            "timestamp": m.timestamp,
            "kind": m.kind,
            "score": m.score,
            "attempted": m.attempted,
            "duration": match_duration(m) or np.nan,
            "difficulty": getattr(m, "difficulty", None),
        }
        for m in records
    ]
    df = pd.DataFrame(rows, columns=MATCH_COLUMNS[:-2])
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df["kind"] = df["kind"].astype("category")
    score = df["score"].astype("float64")
    attempted = df["attempted"].astype("float64")
    duration = df["duration"].astype("float64")
    with np.errstate(divide="ignore", invalid="ignore"):
        df["accuracy"] = np.where(attempted > 0, score / attempted * 100, 0.0)
        df["qpm"] = np.where(duration > 0, attempted / duration * 60, np.nan)
    df["match_idx"] = np.arange(len(df))
    return df


def questions_frame(records: Sequence[AnyMatch]) -> pd.DataFrame:
    rows = []
    for m in records:
        for pos, q in enumerate(m.questions):
            rows.append(
                {
                    "match_id": m.id,
                    "position": pos,
                    "operator": problem_operator(q).value,
                    "operand1": q.operands[0],
                    "operand2": q.operands[1],
                    "correct_answer": q.correct_answer,
                    "user_answer": q.user_answer,
                    "is_correct": q.is_correct,
                    "time_taken_ms": q.time_taken_ms,
                }
            )
    df = pd.DataFrame(rows, columns=QUESTION_COLUMNS)
    df["user_answer"] = df["user_answer"].astype("Int64")
    df["is_correct"] = df["is_correct"].astype("boolean")
    return df


def export_matches(records: Sequence[AnyMatch], out_path: Union[str, Path]) -> Path:
    """Write one row per match to ``.parquet``, ``.ndjson``/``.jsonl`` or ``.csv``."""
    out = Path(out_path)
    df = matches_frame(records).drop(columns=["match_idx"])
    df["kind"] = df["kind"].astype("string")
    out.parent.mkdir(parents=True, exist_ok=True)
    suffix = out.suffix.lower()
    if suffix == ".parquet":
        df.to_parquet(out, engine="pyarrow", compression="zstd", index=False)
    elif suffix in (".ndjson", ".jsonl"):
        df.to_json(out, orient="records", lines=True, date_format="iso")
    elif suffix == ".csv":
        df.to_csv(out, index=False)
    else:
        raise ValueError(f"Unsupported export format: {out.suffix or '(none)'}")
    return out
