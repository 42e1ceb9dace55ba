"""
Core engine (aggregate + rank)
==============================

The analysis is a straight pipeline:

1) Load dataset -> list of RawRecord (immutable)
2) Normalize -> NormalizedRecord with damage in US$
3) Aggregate -> {event_type: AggregateRow}, summed per exact event type
4) Rank -> top-N AggregateRows for one metric, descending

Every function here is pure: inputs are never modified and each call builds
new values. Aggregate tables are plain dicts whose key order is the order in
which event types were first seen; the Ranker relies on that order to break
ties.

Event types are grouped exactly as received. "TSTM WIND" and
"THUNDERSTORM WIND" stay separate groups.
"""

from __future__ import annotations
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, Union

from .dsa import merge_sort
from .models import (
    AggregateRow, NormalizedRecord, RawRecord,
    FATALITIES, INJURIES, PROPERTY_DAMAGE, CROP_DAMAGE,
)

Record = Union[NormalizedRecord, RawRecord]
AggregateTable = Dict[str, AggregateRow]

_METRIC_ALIASES: Dict[str, str] = {
    "fatalities": FATALITIES, "deaths": FATALITIES, "total_fatalities": FATALITIES,
    "injuries": INJURIES, "total_injuries": INJURIES,
    "property_damage_usd": PROPERTY_DAMAGE, "property": PROPERTY_DAMAGE, "propdmg": PROPERTY_DAMAGE,
    "total_property_damage_usd": PROPERTY_DAMAGE,
    "crop_damage_usd": CROP_DAMAGE, "crop": CROP_DAMAGE, "cropdmg": CROP_DAMAGE,
    "total_crop_damage_usd": CROP_DAMAGE,
}


def _num(v) -> float:
    # None (blank cell) or a missing attribute contributes nothing
    return float(v) if v is not None else 0.0


def aggregate(records: Iterable[Record]) -> AggregateTable:
    """Group records by exact event type and sum the four metrics.

    RawRecords carry no US$ figures, so their damage totals stay 0; pass
    NormalizedRecords when the economic metrics are needed.
    """
    sums: Dict[str, List[float]] = {}
    for r in records:
        acc = sums.get(r.event_type)
        if acc is None:
            acc = sums[r.event_type] = [0.0, 0.0, 0.0, 0.0]
        acc[0] += _num(r.fatalities)
        acc[1] += _num(r.injuries)
        acc[2] += _num(getattr(r, "property_damage_usd", None))
        acc[3] += _num(getattr(r, "crop_damage_usd", None))

    return {
        k: AggregateRow(
            event_type=k,
            total_fatalities=v[0],
            total_injuries=v[1],
            total_property_damage_usd=v[2],
            total_crop_damage_usd=v[3],
        )
        for k, v in sums.items()
    }


def merge_tables(*tables: Mapping[str, AggregateRow]) -> AggregateTable:
    """Merge partial aggregate tables by adding rows with the same key.

    Key order is first-seen across the tables in argument order.
    """
    out: AggregateTable = {}
    for t in tables:
        for k, row in t.items():
            out[k] = out[k] + row if k in out else row
    return out


def aggregate_chunks(chunks: Iterable[Iterable[Record]]) -> AggregateTable:
    """Aggregate record chunks one at a time and merge the partial sums.

    Used with `loader.iter_storm_chunks` so the raw dataset never has to be
    held in memory as a whole.
    """
    out: AggregateTable = {}
    for chunk in chunks:
        out = merge_tables(out, aggregate(chunk))
    return out


def metric_key(metric: str) -> str:
    """Resolve a metric name or alias to its canonical name."""
    m = str(metric).lower().strip()
    if m not in _METRIC_ALIASES:
        raise ValueError("metric must be: fatalities, injuries, property_damage_usd, crop_damage_usd")
    return _METRIC_ALIASES[m]


def total(table: Mapping[str, AggregateRow], metric: str) -> float:
    """Sum one metric over every row of a table."""
    m = metric_key(metric)
    return sum(row.value(m) for row in table.values())


def rank(table: Union[Mapping[str, AggregateRow], Sequence[AggregateRow]], metric: str, top_n: int) -> List[AggregateRow]:
    """Return the top-N rows by `metric`, descending.

    Ties keep the table's order (stable merge sort). Asking for more rows
    than exist returns all of them; `top_n <= 0` returns an empty list.
    """
    m = metric_key(metric)
    if top_n <= 0:
        return []
    rows = list(table.values()) if isinstance(table, Mapping) else list(table)
    key: Callable[[AggregateRow], float] = lambda row: row.value(m)
    return merge_sort(rows, key=key, reverse=True)[:top_n]
