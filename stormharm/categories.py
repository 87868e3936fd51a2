# stormharm/categories.py
"""Collapse the free-text event type labels into a small set of category keys.

Wind variants (HIGH WIND, STRONG WIND, ...) are deliberately left ungrouped.
"""
from __future__ import annotations

from typing import Callable, Optional, Tuple

import pandas as pd
import structlog

from stormharm import schema

log = structlog.get_logger()

THUNDERSTORM = "THUNDERSTORM"
UNKNOWN = "UNKNOWN"

Rule = Tuple[Callable[[str], bool], str]


def _contains(*keywords: str) -> Callable[[str], bool]:
    return lambda value: any(k in value for k in keywords)


THUNDERSTORM_RULE: Rule = (_contains("TSTM", THUNDERSTORM), THUNDERSTORM)

# Evaluated top to bottom against the same value; the last match wins.
KEYWORD_RULES: Tuple[Rule, ...] = (
    (_contains("FLD"), "FLOOD"),
    (_contains("FLOOD"), "FLOOD"),
    (_contains("COLD"), "COLD"),
    (_contains("DRY"), "DRY"),
    (_contains("HEAT"), "HEAT"),
    (_contains("SNOW"), "SNOW"),
    (_contains("RAIN"), "RAIN"),
    (_contains("RIP CURRENT"), "RIP CURRENT"),
    (_contains("HURRICANE"), "HURRICANE"),
)


def normalize_category(value: Optional[str]) -> str:
    """Map one raw event type label to its category key."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return UNKNOWN
    current = str(value).upper().lstrip()
    if not current:
        return UNKNOWN

    matches, replacement = THUNDERSTORM_RULE
    if matches(current):
        current = replacement

    result = current
    for matches, replacement in KEYWORD_RULES:
        if matches(current):
            result = replacement
    return result


def normalize_categories(frame: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with the category column rewritten to category keys."""
    out = frame.copy()
    raw = out[schema.CATEGORY]
    # Each distinct label only needs mapping once.
    mapping = {v: normalize_category(v) for v in raw.dropna().unique()}
    out[schema.CATEGORY] = raw.map(mapping).fillna(UNKNOWN)
    log.info(
        "categories_normalized",
        raw_labels=int(raw.nunique(dropna=False)),
        category_keys=int(out[schema.CATEGORY].nunique()),
    )
    return out


def category_mapping(raw: pd.Series, normalized: pd.Series) -> pd.DataFrame:
    """Audit table: each raw label, the key it became and its record count."""
    table = pd.DataFrame({"label": raw.fillna(""), schema.CATEGORY: normalized})
    return (
        table.groupby(["label", schema.CATEGORY], sort=False)
        .size()
        .rename("records")
        .reset_index()
        .sort_values([schema.CATEGORY, "records", "label"], ascending=[True, False, True])
        .reset_index(drop=True)
    )
