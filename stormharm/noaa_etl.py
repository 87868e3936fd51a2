# stormharm/noaa_etl.py
from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
import requests
import structlog

from stormharm import schema
from stormharm.settings import NCEI_BASE_URL, Settings

log = structlog.get_logger()

STORM_DATA_DATE_FORMAT = "%m/%d/%Y %H:%M:%S"
# Built from BEGIN_YEARMONTH, BEGIN_DAY and BEGIN_TIME; BEGIN_DATE_TIME has a two-digit year.
NCEI_DATE_FORMAT = "%Y-%m-%d %H:%M"

# "25.00K", "1.5M", "0", "" as found in DAMAGE_PROPERTY / DAMAGE_CROPS
_DAMAGE_PATTERN = r"^\s*([\d.]*)\s*([A-Za-z]?)\s*$"


def latest_filename_for_year(year: int, base_url: str = NCEI_BASE_URL) -> str:
    """Fetch directory listing and return the latest details CSV.gz for the year."""
    r = requests.get(base_url, timeout=60)
    r.raise_for_status()
    # Example: StormEvents_details-ftp_v1.0_d2023_c20250110.csv.gz
    pattern = re.compile(rf"StormEvents_details-ftp_v1\.0_d{year}_c\d{{8}}\.csv\.gz")
    matches = pattern.findall(r.text)
    if not matches:
        raise FileNotFoundError(f"No NOAA details file found for {year} at {base_url}")
    # pick the max cYYYYMMDD
    return sorted(set(matches))[-1]


def dl(url: str, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    with requests.get(url, stream=True, timeout=300) as r:
        r.raise_for_status()
        with open(dest, "wb") as f:
            for chunk in r.iter_content(chunk_size=1024 * 1024):
                if chunk:
                    f.write(chunk)


def fetch_storm_data(settings: Settings) -> Path:
    """Download the consolidated StormData file unless it is already cached."""
    dest = settings.data_dir / "StormData.csv.bz2"
    if dest.exists():
        log.info("using_cached", path=str(dest))
    else:
        log.info("downloading", url=settings.data_url)
        dl(settings.data_url, dest)
    return dest


def fetch_ncei_years(years: Iterable[int], settings: Settings) -> List[Path]:
    paths: List[Path] = []
    for year in years:
        fname = latest_filename_for_year(year)
        dest = settings.data_dir / fname
        if dest.exists():
            log.info("using_cached", path=str(dest))
        else:
            url = f"{NCEI_BASE_URL}/{fname}"
            log.info("downloading", url=url)
            dl(url, dest)
        paths.append(dest)
    return paths


def _pick(df: pd.DataFrame, *cands: str) -> Optional[str]:
    for c in cands:
        if c in df.columns:
            return c
    return None


def _require(df: pd.DataFrame, **cands: Tuple[str, ...]) -> dict:
    found = {name: _pick(df, *names) for name, names in cands.items()}
    missing = [name for name, col in found.items() if col is None]
    if missing:
        raise ValueError(
            f"Missing required columns {missing} in NOAA CSV; got columns: "
            f"{', '.join(map(str, df.columns[:20]))} ..."
        )
    return found


def _text(s: pd.Series) -> pd.Series:
    return s.fillna("").astype(str)


def _number(s: pd.Series) -> pd.Series:
    return pd.to_numeric(s, errors="coerce").fillna(0.0)


def split_damage(values: pd.Series) -> Tuple[pd.Series, pd.Series]:
    """Split damage strings like '25.00K' into (25.0, 'K').

    Unparseable strings give magnitude 0 and an empty unit code.
    """
    parts = _text(values).str.extract(_DAMAGE_PATTERN)
    magnitude = pd.to_numeric(parts[0], errors="coerce").fillna(0.0)
    unit = parts[1].fillna("").str.upper()
    return magnitude, unit


def _ncei_begin(yearmonth: pd.Series, day: pd.Series, time: pd.Series) -> pd.Series:
    """Build "YYYY-MM-DD hh:mm" strings from the four-digit BEGIN_YEARMONTH (YYYYMM),
    BEGIN_DAY and BEGIN_TIME (hhmm). Blank parts give unparseable strings,
    which the date filter rejects.
    """
    ym = _text(yearmonth).str.strip().str.zfill(6)
    dd = _text(day).str.strip().str.zfill(2)
    hm = _text(time).str.strip().str.zfill(4)
    return (
        ym.str.slice(0, 4) + "-" + ym.str.slice(4, 6) + "-" + dd + " "
        + hm.str.slice(0, 2) + ":" + hm.str.slice(2, 4)
    )


def _check_ids(out: pd.DataFrame) -> pd.DataFrame:
    ids = out[schema.RECORD_ID]
    if ids.isna().any():
        raise ValueError(f"{int(ids.isna().sum())} records have no record id")
    dupes = ids[ids.duplicated()].unique()
    if len(dupes):
        raise ValueError(f"Duplicate record ids: {list(dupes[:10])}")
    out[schema.RECORD_ID] = ids.astype("int64")
    return out.reset_index(drop=True)


def normalize_storm_data(df: pd.DataFrame) -> pd.DataFrame:
    """Map the legacy StormData columns onto the record schema."""
    c = _require(
        df,
        date=("BGN_DATE", "bgn_date"),
        state=("STATE", "state"),
        category=("EVTYPE", "evtype"),
        fatalities=("FATALITIES", "fatalities"),
        injuries=("INJURIES", "injuries"),
        prop=("PROPDMG", "propdmg"),
        prop_unit=("PROPDMGEXP", "propdmgexp"),
        crop=("CROPDMG", "cropdmg"),
        crop_unit=("CROPDMGEXP", "cropdmgexp"),
        record_id=("REFNUM", "refnum"),
    )
    c_loc = _pick(df, "COUNTYNAME", "BGN_LOCATI", "countyname")
    c_remarks = _pick(df, "REMARKS", "remarks")
    empty = pd.Series([""] * len(df), index=df.index)

    out = pd.DataFrame(
        {
            schema.DATE: df[c["date"]],
            schema.STATE: _text(df[c["state"]]),
            schema.CATEGORY: _text(df[c["category"]]),
            schema.LOCATION: _text(df[c_loc]) if c_loc else empty,
            schema.FATALITIES: _number(df[c["fatalities"]]),
            schema.INJURIES: _number(df[c["injuries"]]),
            schema.PROPERTY_DAMAGE: _number(df[c["prop"]]),
            schema.PROPERTY_DAMAGE_UNIT: _text(df[c["prop_unit"]]).str.strip(),
            schema.CROP_DAMAGE: _number(df[c["crop"]]),
            schema.CROP_DAMAGE_UNIT: _text(df[c["crop_unit"]]).str.strip(),
            schema.REMARKS: _text(df[c_remarks]) if c_remarks else empty,
            schema.RECORD_ID: pd.to_numeric(df[c["record_id"]], errors="coerce"),
        }
    )
    return _check_ids(out)


def normalize_ncei(df: pd.DataFrame) -> pd.DataFrame:
    """Map NCEI StormEvents_details columns onto the record schema."""
    c = _require(
        df,
        yearmonth=("BEGIN_YEARMONTH", "begin_yearmonth"),
        day=("BEGIN_DAY", "begin_day"),
        time=("BEGIN_TIME", "begin_time"),
        state=("STATE", "state"),
        category=("EVENT_TYPE", "event_type"),
        fatalities=("DEATHS_DIRECT", "deaths_direct"),
        injuries=("INJURIES_DIRECT", "injuries_direct"),
        prop=("DAMAGE_PROPERTY", "damage_property"),
        crop=("DAMAGE_CROPS", "damage_crops"),
        record_id=("EVENT_ID", "event_id"),
    )
    c_loc = _pick(df, "CZ_NAME", "BEGIN_LOCATION", "cz_name")
    c_remarks = _pick(df, "EVENT_NARRATIVE", "event_narrative")
    empty = pd.Series([""] * len(df), index=df.index)
    prop, prop_unit = split_damage(df[c["prop"]])
    crop, crop_unit = split_damage(df[c["crop"]])
    when = _ncei_begin(df[c["yearmonth"]], df[c["day"]], df[c["time"]])

    out = pd.DataFrame(
        {
            schema.DATE: when,
            schema.STATE: _text(df[c["state"]]),
            schema.CATEGORY: _text(df[c["category"]]),
            schema.LOCATION: _text(df[c_loc]) if c_loc else empty,
            schema.FATALITIES: _number(df[c["fatalities"]]),
            schema.INJURIES: _number(df[c["injuries"]]),
            schema.PROPERTY_DAMAGE: prop,
            schema.PROPERTY_DAMAGE_UNIT: prop_unit,
            schema.CROP_DAMAGE: crop,
            schema.CROP_DAMAGE_UNIT: crop_unit,
            schema.REMARKS: _text(df[c_remarks]) if c_remarks else empty,
            schema.RECORD_ID: pd.to_numeric(df[c["record_id"]], errors="coerce"),
        }
    )
    return _check_ids(out)


def read_records(paths: Iterable[Path], source: str) -> Tuple[pd.DataFrame, str]:
    """Read raw CSV(s) and return (records, date format of the source).

    Compression (.bz2/.gz) is inferred from the file extension.
    """
    paths = list(paths)
    if not paths:
        raise FileNotFoundError("No input files given")
    frames = []
    for p in paths:
        df = pd.read_csv(p, dtype=str, low_memory=False)
        log.info("read_csv", path=str(p), rows=len(df))
        frames.append(df)
    raw = pd.concat(frames, ignore_index=True)

    if source == "storm_data":
        return normalize_storm_data(raw), STORM_DATA_DATE_FORMAT
    if source == "ncei":
        return normalize_ncei(raw), NCEI_DATE_FORMAT
    raise ValueError(f"Unknown source: {source!r}")


def write_parquet(df: pd.DataFrame, out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    table = pa.Table.from_pandas(df, preserve_index=False)
    pq.write_table(table, out_path)
    log.info("wrote_parquet", path=str(out_path), rows=len(df))
    return out_path
