# stormharm/schema.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List

# Canonical record columns, in the order the Filter projects them.
DATE = "date"
STATE = "state"
CATEGORY = "category"
LOCATION = "location"
FATALITIES = "fatalities"
INJURIES = "injuries"
PROPERTY_DAMAGE = "property_damage"
PROPERTY_DAMAGE_UNIT = "property_damage_unit"
CROP_DAMAGE = "crop_damage"
CROP_DAMAGE_UNIT = "crop_damage_unit"
REMARKS = "remarks"
RECORD_ID = "record_id"

RECORD_COLUMNS: List[str] = [
    DATE,
    STATE,
    CATEGORY,
    LOCATION,
    FATALITIES,
    INJURIES,
    PROPERTY_DAMAGE,
    PROPERTY_DAMAGE_UNIT,
    CROP_DAMAGE,
    CROP_DAMAGE_UNIT,
    REMARKS,
    RECORD_ID,
]

HARM_COLUMNS: List[str] = [FATALITIES, INJURIES, PROPERTY_DAMAGE, CROP_DAMAGE]

# Added by the damage reconstructor
PROPERTY_DAMAGE_TOTAL = "property_damage_total"
CROP_DAMAGE_TOTAL = "crop_damage_total"
DAMAGE_TOTAL = "damage_total"

# Aggregated measures: summary column -> record column it sums
MEASURES = {
    "fatalities": FATALITIES,
    "injuries": INJURIES,
    "damage": DAMAGE_TOTAL,
}


def share_column(measure: str) -> str:
    return f"{measure}_pct"


@dataclass(frozen=True)
class AggregateRow:
    """One ranked row of a per-category table for a single measure."""

    category: str
    total: float
    share: float
