"""
Damage normalization (exponent code -> US$)
===========================================

The storm data stores each damage figure as two columns: a magnitude
(e.g. 25.0) and an exponent code (e.g. "K"). This module turns the pair
into a dollar amount.

Decoding table (letters are case-insensitive):

    "+"          -> 1
    "0" .. "8"   -> 10
    "h"          -> 100
    "k"          -> 1,000
    "m"          -> 1,000,000
    "b"          -> 1,000,000,000
    anything else ("", "?", "-", "9", typos) -> 0

Known limitations, kept on purpose because changing them changes the
reported totals:
- A zero factor means either "no damage reported" or "damage reported with a
  missing/invalid code". The two cases cannot be told apart after decoding.
- "9" is not in the table and decodes to 0 while "0".."8" decode to 10.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Union

from .models import NormalizedRecord, RawRecord

Number = Union[int, float]

EXPONENT_FACTORS: Dict[str, Number] = {
    "+": 1,
    **{str(d): 10 for d in range(0, 9)},
    "h": 100,
    "k": 1_000,
    "m": 1_000_000,
    "b": 1_000_000_000,
}


def decode(code: object) -> Number:
    """Return the multiplicative factor for an exponent code (0 if unknown)."""
    if not isinstance(code, str):
        return 0
    return EXPONENT_FACTORS.get(code.lower(), 0)


def _dollars(magnitude: Optional[float], code: str) -> Optional[float]:
    if magnitude is None:
        return None
    return magnitude * decode(code)


def normalize(r: RawRecord) -> NormalizedRecord:
    """Convert one raw record into US$ damage figures."""
    return NormalizedRecord(
        event_type=r.event_type,
        fatalities=r.fatalities,
        injuries=r.injuries,
        property_damage_usd=_dollars(r.property_damage_magnitude, r.property_damage_exponent_code),
        crop_damage_usd=_dollars(r.crop_damage_magnitude, r.crop_damage_exponent_code),
    )


def normalize_all(records: Iterable[RawRecord]) -> List[NormalizedRecord]:
    return [normalize(r) for r in records]
