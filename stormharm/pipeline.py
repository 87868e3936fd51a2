# stormharm/pipeline.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import structlog

from stormharm import schema
from stormharm.aggregate import rankings, summarize, to_rows
from stormharm.categories import category_mapping, normalize_categories
from stormharm.damage import DamageUnitPatch, apply_patches, reconstruct_damage
from stormharm.filters import apply_filters
from stormharm.noaa_etl import write_parquet
from stormharm.settings import DEFAULT_START_DATE

log = structlog.get_logger()

TITLES = {
    "fatalities": "Top categories by fatalities",
    "injuries": "Top categories by injuries",
    "damage": "Top categories by economic damage (USD)",
}


@dataclass
class PipelineResult:
    records: pd.DataFrame
    summary: pd.DataFrame
    rankings: Dict[str, pd.DataFrame]
    category_map: pd.DataFrame
    patches: List[DamageUnitPatch] = field(default_factory=list)


def run_pipeline(
    raw: pd.DataFrame,
    dataset: str = "storm_data",
    start: date = DEFAULT_START_DATE,
    end: Optional[date] = None,
    date_format: Optional[str] = None,
    top_n: Optional[int] = 10,
) -> PipelineResult:
    """Filter, normalize, patch, reconstruct and aggregate a record table."""
    filtered = apply_filters(raw, start=start, end=end, date_format=date_format)
    normalized = normalize_categories(filtered)
    patched, applied = apply_patches(normalized, dataset)
    records = reconstruct_damage(patched)
    summary = summarize(records)
    log.info(
        "aggregated",
        records=len(records),
        categories=len(summary),
        patches_applied=[p.name for p in applied],
    )
    return PipelineResult(
        records=records,
        summary=summary,
        rankings=rankings(summary, top_n),
        category_map=category_mapping(filtered[schema.CATEGORY], normalized[schema.CATEGORY]),
        patches=applied,
    )


def write_outputs(result: PipelineResult, out_dir: Path) -> List[Path]:
    paths = [
        write_parquet(result.records, out_dir / "storm_records.parquet"),
        write_parquet(result.summary, out_dir / "category_summary.parquet"),
        write_parquet(result.category_map, out_dir / "category_map.parquet"),
    ]
    for measure, table in result.rankings.items():
        paths.append(write_parquet(table, out_dir / f"top_{measure}.parquet"))
    return paths


def format_table(table: pd.DataFrame, measure: str) -> str:
    rows = to_rows(table)
    width = max([len(r.category) for r in rows] + [len(schema.CATEGORY)])
    lines = [
        TITLES.get(measure, measure),
        f"{'#':>3}  {schema.CATEGORY:<{width}}  {'total':>20}  {'share':>9}",
    ]
    for i, row in enumerate(rows, 1):
        lines.append(f"{i:>3}  {row.category:<{width}}  {row.total:>20,.0f}  {row.share:>8.3f}%")
    return "\n".join(lines)
