"""
Dataset loader (storm data CSV -> RawRecord list)
=================================================

This module fetches the storm data file (if it is not already on disk) and
converts each row into a `RawRecord` object.

Key ideas:
- Only the seven columns the analysis needs are read (column projection).
- Column names are matched tolerantly because exports vary in case/punctuation.
- Compression (.bz2, .gz, .zip) is inferred from the file extension by pandas.
- Blank numeric cells become None; non-numeric text stops the run with a
  ValueError (the totals would be wrong otherwise).
- Event types are kept exactly as they appear in the file.
"""

from __future__ import annotations
from collections import Counter
from typing import Dict, Iterator, List, Optional
import logging
import math
import os
import re
import urllib.request

import pandas as pd

from .models import RawRecord
from .normalize import EXPONENT_FACTORS

logger = logging.getLogger(__name__)

DATA_URL = "https://d396qusza40orc.cloudfront.net/repdata%2Fdata%2FStormData.csv.bz2"
DEFAULT_PATH = os.path.join("data", "StormData.csv.bz2")

# RawRecord field -> accepted column names (first is the canonical one)
COLUMNS: Dict[str, tuple] = {
    "event_type": ("EVTYPE", "Event Type", "EVENT_TYPE"),
    "fatalities": ("FATALITIES", "Deaths"),
    "injuries": ("INJURIES",),
    "property_damage_magnitude": ("PROPDMG", "Property Damage"),
    "property_damage_exponent_code": ("PROPDMGEXP", "Property Damage Exp"),
    "crop_damage_magnitude": ("CROPDMG", "Crop Damage"),
    "crop_damage_exponent_code": ("CROPDMGEXP", "Crop Damage Exp"),
}


def _to_float(x, line: int, col: str) -> Optional[float]:
    """Convert a cell to float; None if blank, ValueError if not a finite number."""
    if pd.isna(x): return None
    if isinstance(x, str) and not x.strip(): return None
    try: v = float(x)
    except (TypeError, ValueError): v = math.nan
    # float() also accepts "nan" and "inf" text
    if not math.isfinite(v):
        raise ValueError(f"Line {line}: column {col} is not a finite number: {x!r}")
    return v


def _to_str(x) -> str:
    if pd.isna(x): return ""
    return str(x)


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def resolve_columns(columns: List[str]) -> Dict[str, str]:
    """Map each RawRecord field to the matching column in `columns`.

    Exact names from COLUMNS win; otherwise names are compared with case and
    punctuation removed ("Prop Dmg Exp" matches "PROPDMGEXP").
    """
    columns = list(columns)
    by_norm = {_norm(c): c for c in columns}
    mapping: Dict[str, str] = {}
    for field, names in COLUMNS.items():
        exact = [n for n in names if n in columns]
        loose = [by_norm[_norm(n)] for n in names if _norm(n) in by_norm]
        if not exact and not loose:
            raise KeyError(f"Missing column for {field}. Tried={names}. Available={columns}")
        mapping[field] = (exact or loose)[0]
    return mapping


def download_if_absent(path: str = DEFAULT_PATH, url: str = DATA_URL, timeout: int = 120) -> str:
    """Download the dataset to `path` unless it already exists.

    The file is written to `<path>.part` first and moved into place once
    complete, so an interrupted download never looks like a finished one.
    """
    if os.path.exists(path):
        logger.info("Using existing dataset %s", path)
        return path

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp = path + ".part"
    logger.info("Downloading %s -> %s", url, path)
    req = urllib.request.Request(url, headers={"User-Agent": "Mozilla/5.0"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response, open(tmp, "wb") as f:
            while True:
                block = response.read(1 << 20)
                if not block:
                    break
                f.write(block)
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)
    logger.info("Downloaded %d bytes", os.path.getsize(path))
    return path


def _read_kwargs(path: str) -> dict:
    header = pd.read_csv(path, nrows=0)
    mapping = resolve_columns([str(c) for c in header.columns])
    return {
        "mapping": mapping,
        "usecols": list(mapping.values()),
        # keep text cells like "NA" literal; only empty cells are missing
        "keep_default_na": False,
        "na_values": [""],
        # every cell arrives as text; _to_float decides what counts as a number
        "dtype": {c: str for c in mapping.values()},
    }


def _records_from_frame(df: pd.DataFrame, mapping: Dict[str, str], first_row: int = 0) -> List[RawRecord]:
    cols = [mapping[f] for f in COLUMNS]
    records: List[RawRecord] = []
    unknown_codes: Counter = Counter()
    for offset, (evtype, fat, inj, pmag, pexp, cmag, cexp) in enumerate(df[cols].itertuples(index=False, name=None)):
        # CSV line number: header is line 1
        line = first_row + offset + 2
        pexp = _to_str(pexp).strip()
        cexp = _to_str(cexp).strip()
        for code in (pexp, cexp):
            if code and code.lower() not in EXPONENT_FACTORS:
                unknown_codes[code] += 1
        records.append(RawRecord(
            event_type=_to_str(evtype),
            fatalities=_to_float(fat, line, mapping["fatalities"]),
            injuries=_to_float(inj, line, mapping["injuries"]),
            property_damage_magnitude=_to_float(pmag, line, mapping["property_damage_magnitude"]),
            property_damage_exponent_code=pexp,
            crop_damage_magnitude=_to_float(cmag, line, mapping["crop_damage_magnitude"]),
            crop_damage_exponent_code=cexp,
        ))
    if unknown_codes:
        logger.debug("Unrecognised exponent codes (decoded as 0): %s", dict(unknown_codes))
    return records


def load_storm_csv(path: str) -> List[RawRecord]:
    """Read the whole storm data file into a list of RawRecords."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Dataset not found: {path}")
    kw = _read_kwargs(path)
    mapping = kw.pop("mapping")
    df = pd.read_csv(path, low_memory=False, **kw)
    records = _records_from_frame(df, mapping)
    logger.info("Loaded %d records from %s", len(records), path)
    return records


def iter_storm_chunks(path: str, chunksize: int = 100_000) -> Iterator[List[RawRecord]]:
    """Yield RawRecords in chunks of at most `chunksize` rows."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Dataset not found: {path}")
    if chunksize <= 0:
        raise ValueError("chunksize must be positive")
    kw = _read_kwargs(path)
    mapping = kw.pop("mapping")
    first_row = 0
    with pd.read_csv(path, chunksize=chunksize, **kw) as reader:
        for df in reader:
            records = _records_from_frame(df, mapping, first_row=first_row)
            first_row += len(df)
            logger.debug("Read chunk of %d records (total %d)", len(records), first_row)
            yield records
