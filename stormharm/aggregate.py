# stormharm/aggregate.py
from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd

from stormharm import schema
from stormharm.schema import AggregateRow, MEASURES, share_column

SHARE_DECIMALS = 3


def percent_share(totals: pd.Series) -> pd.Series:
    """Each total as a percentage of the grand total, rounded half-to-even.

    All shares are 0.0 when the grand total is zero.
    """
    grand = totals.sum()
    if grand == 0:
        return pd.Series(0.0, index=totals.index)
    return (totals * 100 / grand).round(SHARE_DECIMALS)


def summarize(frame: pd.DataFrame) -> pd.DataFrame:
    """One row per category key with summed measures, shares and event count.

    Missing damage totals are left out of the sums. The input is not modified.
    """
    grouped = frame.groupby(schema.CATEGORY, sort=True)
    summary = pd.DataFrame(
        {measure: grouped[column].sum() for measure, column in MEASURES.items()}
    )
    summary["events"] = grouped.size()
    for measure in MEASURES:
        summary[share_column(measure)] = percent_share(summary[measure])
    summary.index.name = schema.CATEGORY
    return summary.reset_index()


def _check_measure(measure: str) -> None:
    if measure not in MEASURES:
        raise ValueError(f"measure must be one of {list(MEASURES)}, got {measure!r}")


def rank(summary: pd.DataFrame, measure: str) -> pd.DataFrame:
    """(category, total, share) sorted by total desc, ties by category asc."""
    _check_measure(measure)
    table = summary.loc[:, [schema.CATEGORY, measure, share_column(measure)]].rename(
        columns={measure: "total", share_column(measure): "share"}
    )
    return table.sort_values(
        ["total", schema.CATEGORY], ascending=[False, True]
    ).reset_index(drop=True)


def top_n(summary: pd.DataFrame, measure: str, n: Optional[int] = 10) -> pd.DataFrame:
    ranked = rank(summary, measure)
    return ranked if n is None else ranked.head(n)


def rankings(summary: pd.DataFrame, n: Optional[int] = 10) -> Dict[str, pd.DataFrame]:
    return {measure: top_n(summary, measure, n) for measure in MEASURES}


def to_rows(table: pd.DataFrame) -> List[AggregateRow]:
    return [
        AggregateRow(category=str(r.category), total=float(r.total), share=float(r.share))
        for r in table.itertuples(index=False)
    ]
