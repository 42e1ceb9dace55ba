import bz2
import io
import os
import urllib.error
import urllib.request

import pytest

from stormrank import loader
from stormrank.engine import aggregate, aggregate_chunks, rank
from stormrank.loader import download_if_absent, iter_storm_chunks, load_storm_csv, resolve_columns
from stormrank.normalize import normalize_all

from conftest import STORM_CSV_HEADER


class TestLoadStormCsv:
    def test_projects_required_columns(self, storm_csv):
        records = load_storm_csv(storm_csv)
        assert len(records) == 6
        first = records[0]
        assert first.event_type == "TORNADO"
        assert first.fatalities == 5
        assert first.injuries == 10
        assert first.property_damage_magnitude == 20
        assert first.property_damage_exponent_code == "K"
        assert first.crop_damage_exponent_code == ""

    def test_event_types_kept_literal(self, storm_csv):
        types = [r.event_type for r in load_storm_csv(storm_csv)]
        assert "TSTM WIND " in types
        assert "NA" in types

    def test_blank_numeric_cell_is_none(self, storm_csv):
        tstm = load_storm_csv(storm_csv)[4]
        assert tstm.crop_damage_magnitude is None
        assert tstm.property_damage_exponent_code == "m"

    def test_end_to_end_totals(self, storm_csv):
        table = aggregate(normalize_all(load_storm_csv(storm_csv)))
        assert table["HAIL"].total_fatalities == 4
        assert table["HAIL"].total_property_damage_usd == 0
        assert table["FLOOD"].total_crop_damage_usd == 1_000_000_000
        assert [r.event_type for r in rank(table, "property_damage_usd", 2)] == ["FLOOD", "TSTM WIND "]

    def test_bz2_compressed(self, tmp_path, storm_csv):
        path = tmp_path / "StormData.csv.bz2"
        with open(storm_csv, "rb") as src:
            path.write_bytes(bz2.compress(src.read()))
        assert len(load_storm_csv(str(path))) == 6

    def test_tolerant_column_names(self, tmp_path):
        path = tmp_path / "lower.csv"
        path.write_text(
            "evtype,fatalities,injuries,propdmg,propdmgexp,cropdmg,cropdmgexp\n"
            "HAIL,1,2,3,K,4,M\n"
        )
        (r,) = load_storm_csv(str(path))
        assert r.event_type == "HAIL"
        assert r.crop_damage_exponent_code == "M"

    def test_missing_column(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("EVTYPE,FATALITIES\nHAIL,1\n")
        with pytest.raises(KeyError):
            load_storm_csv(str(path))

    def test_non_numeric_value_fails_fast(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text(STORM_CSV_HEADER + "1,x,HAIL,lots,0,0,,0,,1\n")
        with pytest.raises(ValueError, match="FATALITIES"):
            load_storm_csv(str(path))

    @pytest.mark.parametrize("cell", ["nan", "inf", "-Infinity"])
    def test_non_finite_text_fails_fast(self, tmp_path, cell):
        path = tmp_path / "bad.csv"
        path.write_text(STORM_CSV_HEADER + "1,x,FLOOD,2,0,0,,0,,1\n" + f"1,x,HAIL,{cell},0,0,,0,,2\n")
        with pytest.raises(ValueError, match="Line 3: column FATALITIES"):
            load_storm_csv(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_storm_csv(str(tmp_path / "nope.csv"))

    def test_empty_file_gives_no_records(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text(STORM_CSV_HEADER)
        assert load_storm_csv(str(path)) == []


class TestIterStormChunks:
    def test_chunks_cover_all_rows(self, storm_csv):
        chunks = list(iter_storm_chunks(storm_csv, chunksize=4))
        assert [len(c) for c in chunks] == [4, 2]
        assert [r for c in chunks for r in c] == load_storm_csv(storm_csv)

    def test_streamed_aggregate_matches(self, storm_csv):
        streamed = aggregate_chunks(normalize_all(c) for c in iter_storm_chunks(storm_csv, chunksize=2))
        assert streamed == aggregate(normalize_all(load_storm_csv(storm_csv)))

    def test_error_line_number_counts_across_chunks(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text(STORM_CSV_HEADER + "1,x,HAIL,1,0,0,,0,,1\n" * 3 + "1,x,HAIL,1,oops,0,,0,,1\n")
        with pytest.raises(ValueError, match="Line 5"):
            list(iter_storm_chunks(str(path), chunksize=2))

    def test_bad_chunksize(self, storm_csv):
        with pytest.raises(ValueError):
            list(iter_storm_chunks(storm_csv, chunksize=0))


class TestResolveColumns:
    def test_exact_names(self):
        cols = ["EVTYPE", "FATALITIES", "INJURIES", "PROPDMG", "PROPDMGEXP", "CROPDMG", "CROPDMGEXP"]
        mapping = resolve_columns(cols)
        assert mapping["event_type"] == "EVTYPE"
        assert mapping["crop_damage_exponent_code"] == "CROPDMGEXP"

    def test_loose_names(self):
        cols = ["evtype", "Fatalities", "injuries", "Prop Dmg", "prop_dmg_exp", "CropDmg", "crop-dmg-exp"]
        mapping = resolve_columns(cols)
        assert mapping["property_damage_magnitude"] == "Prop Dmg"
        assert mapping["crop_damage_exponent_code"] == "crop-dmg-exp"

    def test_missing_column_names_field(self):
        with pytest.raises(KeyError, match="crop_damage_magnitude"):
            resolve_columns(["EVTYPE", "FATALITIES", "INJURIES", "PROPDMG", "PROPDMGEXP", "CROPDMGEXP"])


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class TestDownloadIfAbsent:
    def test_existing_file_is_not_downloaded(self, tmp_path, monkeypatch):
        path = tmp_path / "StormData.csv.bz2"
        path.write_bytes(b"already here")

        def _fail(*a, **kw):
            raise AssertionError("network should not be used")

        monkeypatch.setattr(loader.urllib.request, "urlopen", _fail)
        assert download_if_absent(str(path)) == str(path)
        assert path.read_bytes() == b"already here"

    def test_downloads_into_place(self, tmp_path, monkeypatch):
        path = tmp_path / "data" / "StormData.csv.bz2"
        seen = {}

        def _urlopen(req, timeout=None):
            seen["url"] = req.full_url
            return _FakeResponse(b"payload")

        monkeypatch.setattr(loader.urllib.request, "urlopen", _urlopen)
        assert download_if_absent(str(path), url="https://example.org/StormData.csv.bz2") == str(path)
        assert path.read_bytes() == b"payload"
        assert seen["url"] == "https://example.org/StormData.csv.bz2"
        assert not os.path.exists(str(path) + ".part")

    def test_failed_download_leaves_nothing(self, tmp_path, monkeypatch):
        path = tmp_path / "StormData.csv.bz2"

        def _urlopen(req, timeout=None):
            raise urllib.error.URLError("offline")

        monkeypatch.setattr(loader.urllib.request, "urlopen", _urlopen)
        with pytest.raises(urllib.error.URLError):
            download_if_absent(str(path))
        assert not path.exists()
        assert not os.path.exists(str(path) + ".part")
