from datetime import date

import pytest

from stormharm import cli, schema
from stormharm.damage import NAPA_FLOOD_2006
from stormharm.noaa_etl import read_records
from stormharm.pipeline import format_table, run_pipeline, write_outputs


@pytest.fixture
def result(storm_data_csv):
    raw, date_format = read_records([storm_data_csv], "storm_data")
    return run_pipeline(raw, dataset="storm_data", date_format=date_format)


def test_pipeline_end_to_end(result):
    summary = result.summary.set_index(schema.CATEGORY)

    # 1950 tornado is outside the window, the zero-harm HIGH WIND row is dropped
    assert sorted(summary.index) == ["FLOOD", "HEAT", "HURRICANE", "THUNDERSTORM"]
    assert summary.loc["THUNDERSTORM", "events"] == 3
    assert summary.loc["THUNDERSTORM", "fatalities"] == 1
    assert summary.loc["THUNDERSTORM", "injuries"] == 5
    assert summary.loc["THUNDERSTORM", "damage"] == 7000
    # Napa record patched to millions; the 'm' coded record adds nothing
    assert summary.loc["FLOOD", "damage"] == pytest.approx(1.15e8 + 32.5e6)
    assert summary.loc["HURRICANE", "damage"] == pytest.approx(1.51e9)
    assert result.patches == [NAPA_FLOOD_2006]


def test_pipeline_rankings(result):
    fatalities = result.rankings["fatalities"]
    assert list(fatalities[schema.CATEGORY]) == ["HEAT", "THUNDERSTORM", "FLOOD", "HURRICANE"]
    assert list(fatalities["share"]) == [97.561, 2.439, 0.0, 0.0]

    injuries = result.rankings["injuries"]
    assert list(injuries["share"]) == [62.5, 31.25, 6.25, 0.0]

    damage = result.rankings["damage"]
    assert list(damage[schema.CATEGORY]) == ["HURRICANE", "FLOOD", "THUNDERSTORM", "HEAT"]


def test_pipeline_sum_invariant(result):
    for measure, column in schema.MEASURES.items():
        assert result.summary[measure].sum() == pytest.approx(result.records[column].sum())


def test_pipeline_window_end(storm_data_csv):
    raw, date_format = read_records([storm_data_csv], "storm_data")
    out = run_pipeline(raw, date_format=date_format, end=date(1998, 12, 31), top_n=2)

    # the 1999 heat wave and the 2006 Napa flood fall after the window
    assert set(out.summary[schema.CATEGORY]) == {"FLOOD", "HURRICANE", "THUNDERSTORM"}
    assert 605943 not in set(out.records[schema.RECORD_ID])
    assert out.patches == []
    assert all(len(t) == 2 for t in out.rankings.values())


def test_category_map(result):
    thunder = result.category_map[result.category_map[schema.CATEGORY] == "THUNDERSTORM"]
    assert set(thunder["label"]) == {"TSTM WIND", "Tstm Wind", " THUNDERSTORM WIND"}


def test_write_outputs(result, tmp_path):
    paths = write_outputs(result, tmp_path)
    names = sorted(p.name for p in paths)
    assert names == [
        "category_map.parquet",
        "category_summary.parquet",
        "storm_records.parquet",
        "top_damage.parquet",
        "top_fatalities.parquet",
        "top_injuries.parquet",
    ]
    assert all(p.exists() for p in paths)


def test_format_table(result):
    text = format_table(result.rankings["injuries"], "injuries")
    assert text.splitlines()[0] == "Top categories by injuries"
    assert "62.500%" in text
    lines = text.splitlines()
    assert len(lines) == 2 + len(result.rankings["injuries"])
    assert lines[2].split()[:2] == ["1", "HEAT"]
    assert lines[2].split()[2] == "10"


def test_cli_prints_rankings(storm_data_csv, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: None)
    code = cli.main(["--csv", str(storm_data_csv), "--top", "3", "--out", str(tmp_path / "out")])

    assert code == 0
    out = capsys.readouterr().out
    assert "Top categories by fatalities" in out
    assert "THUNDERSTORM" in out
    assert (tmp_path / "out" / "category_summary.parquet").exists()


def test_cli_reports_malformed_dates(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: None)
    path = tmp_path / "bad.csv"
    path.write_text(
        "BGN_DATE,STATE,EVTYPE,FATALITIES,INJURIES,PROPDMG,PROPDMGEXP,CROPDMG,CROPDMGEXP,REFNUM\n"
        "yesterday,AL,TORNADO,1,0,0,,0,,1\n"
    )
    assert cli.main(["--csv", str(path), "--no-parquet"]) == 1
    assert "Top categories" not in capsys.readouterr().out


def test_cli_ncei_needs_years(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: None)
    assert cli.main(["--source", "ncei", "--no-parquet"]) == 1
