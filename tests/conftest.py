"""Shared fixtures: a handful of hand-written storm records.

TORNADO/FLOOD/HAIL mirror the worked examples used throughout the tests:
- TORNADO: 20 K property damage -> 20,000 US$
- FLOOD: 3 M property damage, 1 B crop damage
- HAIL twice, fatalities 1 and 3
"""

import pytest

from stormrank.models import RawRecord


def raw(event_type, fatalities=0.0, injuries=0.0, prop=0.0, prop_exp="", crop=0.0, crop_exp=""):
    return RawRecord(
        event_type=event_type,
        fatalities=fatalities,
        injuries=injuries,
        property_damage_magnitude=prop,
        property_damage_exponent_code=prop_exp,
        crop_damage_magnitude=crop,
        crop_damage_exponent_code=crop_exp,
    )


@pytest.fixture
def tornado_flood():
    return [
        raw("TORNADO", fatalities=5, injuries=10, prop=20, prop_exp="K", crop=0, crop_exp=""),
        raw("FLOOD", fatalities=2, injuries=1, prop=3, prop_exp="M", crop=1, crop_exp="B"),
    ]


@pytest.fixture
def mixed_records():
    return [
        raw("TORNADO", fatalities=5, injuries=10, prop=20, prop_exp="K"),
        raw("HAIL", fatalities=1, injuries=2, prop=5, prop_exp="k", crop=2, crop_exp="K"),
        raw("FLOOD", fatalities=2, injuries=1, prop=3, prop_exp="M", crop=1, crop_exp="B"),
        raw("HAIL", fatalities=3, injuries=0, prop=50, prop_exp="?"),
        raw("TSTM WIND", fatalities=0, injuries=4, prop=1.5, prop_exp="m"),
        raw("THUNDERSTORM WIND", fatalities=1, injuries=4, prop=7, prop_exp="5"),
        raw("tornado", fatalities=1, injuries=1, prop=2, prop_exp="h"),
        raw("FLOOD", fatalities=None, injuries=3, prop=None, prop_exp="K", crop=4, crop_exp="+"),
    ]


STORM_CSV_HEADER = "STATE__,BGN_DATE,EVTYPE,FATALITIES,INJURIES,PROPDMG,PROPDMGEXP,CROPDMG,CROPDMGEXP,REFNUM\n"


@pytest.fixture
def storm_csv(tmp_path):
    """Small storm data file in the original column layout (plus ignored columns)."""
    path = tmp_path / "storms.csv"
    path.write_text(
        STORM_CSV_HEADER
        + '1,4/18/1950 0:00:00,TORNADO,5,10,20,K,0,,1\n'
        + '1,4/18/1950 0:00:00,FLOOD,2,1,3,M,1,B,2\n'
        + '1,4/18/1950 0:00:00,HAIL,1,0,50,?,0,,3\n'
        + '1,4/18/1950 0:00:00,HAIL,3,0,0,,0,,4\n'
        + '1,4/18/1950 0:00:00,TSTM WIND ,0,2,1.5,m,,,5\n'
        + '1,4/18/1950 0:00:00,NA,0,0,0,-,0,k,6\n'
    )
    return str(path)


@pytest.fixture
def make_raw():
    return raw
