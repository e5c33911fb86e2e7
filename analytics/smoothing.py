from __future__ import annotations

"""Smoothing utilities (EWMA over match order)."""

import pandas as pd


def ewma_by_match(
    df: pd.DataFrame,
    value_col: str = "accuracy",
    span: int = 5,
    group_cols: list[str] | None = None,
) -> pd.DataFrame:
    """Apply EWMA smoothing per group over match order.

    Returns a copy of df sorted by ``match_idx`` with a new column
    f"{value_col}_smooth". Groups (e.g. ``["kind"]``) are smoothed independently.
    """
    g = df.sort_values("match_idx").copy()
    if g.empty:
        g[f"{value_col}_smooth"] = pd.Series(dtype="float64")
        return g
    values = g[value_col].astype("float64")
    if group_cols:
        # transform keeps the original row index, so assignment aligns
        smooth = values.groupby([g[c] for c in group_cols], observed=True).transform(
            lambda s: s.ewm(span=span).mean()
        )
    else:
        smooth = values.ewm(span=span).mean()
    g[f"{value_col}_smooth"] = smooth
    return g
