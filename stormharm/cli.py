# stormharm/cli.py
from __future__ import annotations

import argparse
import dataclasses
import uuid
from pathlib import Path
from typing import List, Optional

import requests
import structlog

from stormharm.logs import configure_logging
from stormharm.noaa_etl import fetch_ncei_years, fetch_storm_data, read_records
from stormharm.pipeline import format_table, run_pipeline, write_outputs
from stormharm.settings import SOURCES, Settings, parse_date

log = structlog.get_logger()


def _date_arg(value: str):
    try:
        return parse_date(value, "date")
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="stormharm",
        description="Rank storm event categories by fatalities, injuries and damage.",
    )
    ap.add_argument("--csv", type=Path, action="append", help="Local input CSV (repeatable); downloads when omitted")
    ap.add_argument("--source", choices=SOURCES, help="Layout of the input files")
    ap.add_argument("--years", type=int, nargs="+", help="NCEI years to download (source=ncei)")
    ap.add_argument("--start", type=_date_arg, help="First day of the window, YYYY-MM-DD")
    ap.add_argument("--end", type=_date_arg, help="Last day of the window, YYYY-MM-DD (default: open)")
    ap.add_argument("--top", type=int, help="Rows per ranked table")
    ap.add_argument("--out", type=Path, help="Directory for parquet outputs")
    ap.add_argument("--no-parquet", action="store_true", help="Only print the tables")
    return ap


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    overrides = {
        "source": args.source,
        "start_date": args.start,
        "end_date": args.end,
        "top_n": args.top,
        "parquet_dir": args.out,
    }
    return dataclasses.replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def _inputs(args: argparse.Namespace, settings: Settings) -> List[Path]:
    if args.csv:
        return args.csv
    if settings.source == "ncei":
        if not args.years:
            raise ValueError("--years is required to download NCEI files")
        return fetch_ncei_years(args.years, settings)
    return [fetch_storm_data(settings)]


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = _settings(args)
    except ValueError as exc:
        configure_logging()
        log.error("bad_settings", error=str(exc))
        return 2
    configure_logging(settings.log_level)
    structlog.contextvars.bind_contextvars(run_id=uuid.uuid4().hex)
    try:
        raw, date_format = read_records(_inputs(args, settings), settings.source)
        result = run_pipeline(
            raw,
            dataset=settings.source,
            start=settings.start_date,
            end=settings.end_date,
            date_format=date_format,
            top_n=settings.top_n,
        )
        if not args.no_parquet:
            write_outputs(result, settings.parquet_dir)
        for measure, table in result.rankings.items():
            print(format_table(table, measure))
            print()
    except (OSError, KeyError, ValueError, requests.RequestException) as exc:
        log.error("pipeline_failed", error=str(exc), error_type=type(exc).__name__)
        return 1
    finally:
        structlog.contextvars.clear_contextvars()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
