"""
Data model (RawRecord -> NormalizedRecord -> AggregateRow)
==========================================================

Each row of the storm data CSV is converted into a `RawRecord` object.
All records are immutable (`frozen=True`) so that:
- records cannot be accidentally modified after loading, and
- every pipeline stage produces new values instead of editing old ones.

Metric values may be None when the source cell was blank; downstream sums
treat None as 0.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

# Metric names understood by the Ranker and the Report Builder
FATALITIES = "fatalities"
INJURIES = "injuries"
PROPERTY_DAMAGE = "property_damage_usd"
CROP_DAMAGE = "crop_damage_usd"

HEALTH_METRICS: Tuple[str, ...] = (FATALITIES, INJURIES)
ECONOMIC_METRICS: Tuple[str, ...] = (PROPERTY_DAMAGE, CROP_DAMAGE)
METRICS: Tuple[str, ...] = HEALTH_METRICS + ECONOMIC_METRICS


@dataclass(frozen=True)
class RawRecord:
    """One storm-event observation, as loaded.

    `event_type` is the free-text EVTYPE label, kept exactly as received.
    """
    event_type: str
    fatalities: Optional[float]
    injuries: Optional[float]
    property_damage_magnitude: Optional[float]
    property_damage_exponent_code: str
    crop_damage_magnitude: Optional[float]
    crop_damage_exponent_code: str


@dataclass(frozen=True)
class NormalizedRecord:
    """Record with damage expressed in US$."""
    event_type: str
    fatalities: Optional[float]
    injuries: Optional[float]
    property_damage_usd: Optional[float]
    crop_damage_usd: Optional[float]


@dataclass(frozen=True)
class AggregateRow:
    """Summed totals for one event type."""
    event_type: str
    total_fatalities: float = 0.0
    total_injuries: float = 0.0
    total_property_damage_usd: float = 0.0
    total_crop_damage_usd: float = 0.0

    def value(self, metric: str) -> float:
        """Return the total for a metric name (see METRICS)."""
        if metric == FATALITIES:
            return self.total_fatalities
        if metric == INJURIES:
            return self.total_injuries
        if metric == PROPERTY_DAMAGE:
            return self.total_property_damage_usd
        if metric == CROP_DAMAGE:
            return self.total_crop_damage_usd
        raise ValueError(f"metric must be one of: {', '.join(METRICS)}")

    def __add__(self, other: "AggregateRow") -> "AggregateRow":
        if not isinstance(other, AggregateRow):
            return NotImplemented
        if other.event_type != self.event_type:
            raise ValueError(f"Cannot add rows for {self.event_type!r} and {other.event_type!r}")
        return AggregateRow(
            event_type=self.event_type,
            total_fatalities=self.total_fatalities + other.total_fatalities,
            total_injuries=self.total_injuries + other.total_injuries,
            total_property_damage_usd=self.total_property_damage_usd + other.total_property_damage_usd,
            total_crop_damage_usd=self.total_crop_damage_usd + other.total_crop_damage_usd,
        )
