# stormharm/damage.py
"""Damage amounts from (magnitude, unit code) pairs, plus known data fixes.

Only K, M and B are understood. Every other code, including lower case
letters, digits, '+', '?' and blanks, is unmapped and contributes no amount.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import structlog

from stormharm import schema

log = structlog.get_logger()

UNIT_MULTIPLIERS = {
    "B": 1e9,
    "M": 1e6,
    "K": 1e3,
}


@dataclass(frozen=True)
class DamageUnitPatch:
    """Correction of a single record's damage unit code, keyed by record id."""

    name: str
    dataset: str
    record_id: int
    column: str
    expected: str
    corrected: str
    reason: str


# Napa River flood, Dec 2005 / Jan 2006. The remarks put damage in the tens of
# millions of dollars; PROPDMG=115 with PROPDMGEXP=B would mean ~115 billion.
NAPA_FLOOD_2006 = DamageUnitPatch(
    name="napa-flood-2006-property-unit",
    dataset="storm_data",
    record_id=605943,
    column=schema.PROPERTY_DAMAGE_UNIT,
    expected="B",
    corrected="M",
    reason="unit code B contradicts remarks describing tens of millions in damage",
)

KNOWN_PATCHES: Tuple[DamageUnitPatch, ...] = (NAPA_FLOOD_2006,)


def unit_multiplier(code: Optional[str]) -> float:
    """Multiplier for a unit code, NaN when the code is unmapped."""
    if not isinstance(code, str):
        return np.nan
    return UNIT_MULTIPLIERS.get(code.strip(), np.nan)


def apply_patches(
    frame: pd.DataFrame,
    dataset: str,
    patches: Sequence[DamageUnitPatch] = KNOWN_PATCHES,
) -> Tuple[pd.DataFrame, List[DamageUnitPatch]]:
    """Apply the patches for `dataset` and return (patched copy, applied patches).

    A patch is applied only when its record still carries the expected code,
    so re-running is a no-op.
    """
    out = frame.copy()
    applied: List[DamageUnitPatch] = []
    for patch in patches:
        if patch.dataset != dataset:
            continue
        hit = out[schema.RECORD_ID] == patch.record_id
        if not hit.any():
            log.info("patch_skipped", patch=patch.name, reason="record not present")
            continue
        current = out.loc[hit, patch.column].iloc[0]
        if not isinstance(current, str) or current.strip() != patch.expected:
            log.info("patch_skipped", patch=patch.name, reason="unit code differs", unit=current)
            continue
        out.loc[hit, patch.column] = patch.corrected
        applied.append(patch)
        log.warning(
            "patch_applied",
            patch=patch.name,
            record_id=patch.record_id,
            column=patch.column,
            old=patch.expected,
            new=patch.corrected,
            reason=patch.reason,
        )
    return out, applied


def _amount(magnitude: pd.Series, unit: pd.Series) -> pd.Series:
    return magnitude * unit.map(unit_multiplier).astype(float)


def reconstruct_damage(frame: pd.DataFrame) -> pd.DataFrame:
    """Add property, crop and combined damage totals in dollars.

    The combined total counts an unmapped side as zero and is NaN only when
    both sides are unmapped.
    """
    out = frame.copy()
    prop = _amount(out[schema.PROPERTY_DAMAGE], out[schema.PROPERTY_DAMAGE_UNIT])
    crop = _amount(out[schema.CROP_DAMAGE], out[schema.CROP_DAMAGE_UNIT])
    out[schema.PROPERTY_DAMAGE_TOTAL] = prop
    out[schema.CROP_DAMAGE_TOTAL] = crop
    out[schema.DAMAGE_TOTAL] = pd.concat([prop, crop], axis=1).sum(axis=1, min_count=1)
    log.info(
        "damage_reconstructed",
        rows=len(out),
        unmapped_property=int(prop.isna().sum()),
        unmapped_crop=int(crop.isna().sum()),
    )
    return out
