import pandas as pd
import pytest

from stormharm import schema


ENV_VARS = [
    "STORMHARM_DATA_URL", "STORMHARM_DATA_DIR", "PARQUET_DIR", "STORMHARM_SOURCE",
    "STORMHARM_START_DATE", "STORMHARM_END_DATE", "STORMHARM_TOP_N", "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def make_record(record_id, category="TORNADO", date="1996-06-01", fatalities=0, injuries=0,
                prop=0.0, prop_unit="", crop=0.0, crop_unit="", remarks="", state="AL",
                location="MOBILE"):
    return {
        schema.DATE: date,
        schema.STATE: state,
        schema.CATEGORY: category,
        schema.LOCATION: location,
        schema.FATALITIES: fatalities,
        schema.INJURIES: injuries,
        schema.PROPERTY_DAMAGE: prop,
        schema.PROPERTY_DAMAGE_UNIT: prop_unit,
        schema.CROP_DAMAGE: crop,
        schema.CROP_DAMAGE_UNIT: crop_unit,
        schema.REMARKS: remarks,
        schema.RECORD_ID: record_id,
    }


def make_frame(*records):
    return pd.DataFrame(list(records), columns=schema.RECORD_COLUMNS)


@pytest.fixture
def record():
    return make_record


@pytest.fixture
def frame():
    return make_frame


STORM_DATA_HEADER = [
    "STATE__", "BGN_DATE", "BGN_TIME", "COUNTYNAME", "STATE", "EVTYPE", "FATALITIES",
    "INJURIES", "PROPDMG", "PROPDMGEXP", "CROPDMG", "CROPDMGEXP", "REMARKS", "REFNUM",
]

STORM_DATA_ROWS = [
    ["1", "4/18/1950 0:00:00", "0130", "MOBILE", "AL", "TORNADO", "0", "15", "25", "K", "0", "", "", "1"],
    ["6", "1/1/2006 0:00:00", "12:00:00 AM", "NAPA", "CA", "FLOOD", "0", "0", "115", "B", "32.5", "M",
     "Major flooding continued into the early hours of January 1st ... damage in the tens of millions.", "605943"],
    ["48", "6/5/1996 0:00:00", "1600", "HARRIS", "TX", "TSTM WIND", "1", "2", "5", "K", "0", "", "", "248000"],
    ["48", "6/6/1996 0:00:00", "1700", "HARRIS", "TX", "Tstm Wind", "0", "0", "2", "K", "0", "", "", "248001"],
    ["48", "6/7/1996 0:00:00", "1800", "HARRIS", "TX", " THUNDERSTORM WIND", "0", "3", "0", "", "0", "", "", "248002"],
    ["17", "7/13/1999 0:00:00", "0000", "COOK", "IL", "EXCESSIVE HEAT", "40", "10", "0", "", "0", "", "", "350000"],
    ["12", "8/24/1998 0:00:00", "0000", "DADE", "FL", "HURRICANE/TYPHOON", "0", "0", "1.5", "B", "10", "M", "", "360000"],
    ["12", "8/25/1998 0:00:00", "0000", "DADE", "FL", "High Wind", "0", "0", "0", "", "0", "", "big wind, no harm", "360001"],
    ["12", "8/26/1998 0:00:00", "0000", "DADE", "FL", "URBAN/SML STREAM FLD", "0", "1", "3", "m", "0", "", "", "360002"],
]


@pytest.fixture
def storm_data_csv(tmp_path):
    path = tmp_path / "StormData.csv.bz2"
    pd.DataFrame(STORM_DATA_ROWS, columns=STORM_DATA_HEADER).to_csv(path, index=False)
    return path
