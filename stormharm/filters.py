# stormharm/filters.py
from __future__ import annotations

from datetime import date
from typing import Optional

import pandas as pd
import structlog

from stormharm import schema
from stormharm.settings import DEFAULT_START_DATE

log = structlog.get_logger()


def project_columns(frame: pd.DataFrame) -> pd.DataFrame:
    """Keep only the record columns, in canonical order."""
    missing = [c for c in schema.RECORD_COLUMNS if c not in frame.columns]
    if missing:
        raise KeyError(f"Expected columns not found in data: {missing}")
    return frame.loc[:, schema.RECORD_COLUMNS].copy()


def parse_dates(frame: pd.DataFrame, date_format: Optional[str] = None) -> pd.DataFrame:
    """Return a copy with the date column parsed to datetimes.

    A record whose date cannot be placed in or out of the window is an error,
    never a silent default.
    """
    out = frame.copy()
    col = out[schema.DATE]
    if pd.api.types.is_datetime64_any_dtype(col):
        parsed = col
    else:
        parsed = pd.to_datetime(col, format=date_format, errors="coerce")
    bad = parsed.isna()
    if bad.any():
        ids = out.loc[bad, schema.RECORD_ID].head(10).tolist()
        samples = col[bad].head(3).tolist()
        raise ValueError(
            f"{int(bad.sum())} records have a malformed date "
            f"(record ids {ids}, values {samples})"
        )
    out[schema.DATE] = parsed
    return out


def filter_date_window(
    frame: pd.DataFrame,
    start: date = DEFAULT_START_DATE,
    end: Optional[date] = None,
) -> pd.DataFrame:
    """Keep records dated within [start, end]; end=None leaves the window open."""
    day = frame[schema.DATE].dt.normalize()
    keep = day >= pd.Timestamp(start)
    if end is not None:
        keep &= day <= pd.Timestamp(end)
    return frame.loc[keep].copy()


def drop_zero_harm(frame: pd.DataFrame) -> pd.DataFrame:
    """Drop records with no fatalities, injuries, property or crop damage.

    Missing numbers count as zero; text fields are not considered.
    """
    harm = frame[schema.HARM_COLUMNS].fillna(0)
    zero = (harm <= 0).all(axis=1)
    return frame.loc[~zero].copy()


def apply_filters(
    frame: pd.DataFrame,
    start: date = DEFAULT_START_DATE,
    end: Optional[date] = None,
    date_format: Optional[str] = None,
) -> pd.DataFrame:
    rows_in = len(frame)
    out = parse_dates(project_columns(frame), date_format)
    out = filter_date_window(out, start, end)
    in_window = len(out)
    out = drop_zero_harm(out)
    log.info(
        "filtered",
        rows_in=rows_in,
        rows_in_window=in_window,
        rows_out=len(out),
        start=start.isoformat(),
        end=end.isoformat() if end else None,
    )
    return out.reset_index(drop=True)
