# stormharm/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

STORM_DATA_URL = "https://d396qusza40orc.cloudfront.net/repdata%2Fdata%2FStormData.csv.bz2"
NCEI_BASE_URL = "https://www.ncei.noaa.gov/pub/data/swdi/stormevents/csvfiles"

SOURCES = ("storm_data", "ncei")

# Storm data is only reported for all event types from 1996 on.
DEFAULT_START_DATE = date(1996, 1, 1)


def parse_date(value: Optional[str], name: str) -> Optional[date]:
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be YYYY-MM-DD, got {value!r}") from exc


@dataclass(frozen=True)
class Settings:
    data_url: str = STORM_DATA_URL
    data_dir: Path = Path("data/raw")
    parquet_dir: Path = Path("data/parquet")
    source: str = "storm_data"
    start_date: date = DEFAULT_START_DATE
    end_date: Optional[date] = None
    top_n: int = 10
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.source not in SOURCES:
            raise ValueError(f"source must be one of {SOURCES}, got {self.source!r}")
        if self.top_n < 1:
            raise ValueError("top_n must be >= 1")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        top_n = os.getenv("STORMHARM_TOP_N", "10")
        try:
            n = int(top_n)
        except ValueError as exc:
            raise ValueError(f"STORMHARM_TOP_N must be an integer, got {top_n!r}") from exc
        return cls(
            data_url=os.getenv("STORMHARM_DATA_URL", STORM_DATA_URL),
            data_dir=Path(os.getenv("STORMHARM_DATA_DIR", "data/raw")),
            parquet_dir=Path(os.environ.get("PARQUET_DIR", "data/parquet")),
            source=os.getenv("STORMHARM_SOURCE", "storm_data"),
            start_date=parse_date(os.getenv("STORMHARM_START_DATE"), "STORMHARM_START_DATE")
            or DEFAULT_START_DATE,
            end_date=parse_date(os.getenv("STORMHARM_END_DATE"), "STORMHARM_END_DATE"),
            top_n=n,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
