"""Unit tests for geo_counts.metadata: characteristic parsing and labels."""

from types import SimpleNamespace

import pandas as pd
import pytest

from geo_counts.metadata import (
    build_sample_metadata,
    make_label,
    metadata_from_geo,
    parse_characteristic,
    parse_characteristics,
    parse_duration,
)


# ---------------------------------------------------------------------------
# Single fields
# ---------------------------------------------------------------------------

class TestParseCharacteristic:

    def test_key_value(self):
        assert parse_characteristic("Disease: Schizophrenia") == ("disease", "Schizophrenia")

    def test_splits_on_first_colon_only(self):
        assert parse_characteristic("pmi: 72:15:30") == ("pmi", "72:15:30")

    def test_collapses_key_whitespace(self):
        assert parse_characteristic("  Age   at death : 54 ") == ("age at death", "54")

    @pytest.mark.parametrize("entry", ["no colon here", ": value only", "", None])
    def test_unparseable(self, entry):
        assert parse_characteristic(entry) is None


class TestParseDuration:

    def test_keeps_hours(self):
        assert parse_duration("72:15:30") == "72"

    def test_hours_minutes(self):
        assert parse_duration("8:30") == "8"

    def test_no_colon_is_missing(self):
        assert parse_duration("72") is None

    def test_non_numeric_is_missing(self):
        assert parse_duration("unknown:00:00") is None

    def test_none_is_missing(self):
        assert parse_duration(None) is None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class TestParseCharacteristics:

    def test_flat_record(self):
        record = parse_characteristics(
            ["disease: control", "Sex: F", "pmi: 72:15:30", "rin: 7.1"],
            duration_fields=["PMI"],
        )
        assert record == {"disease": "control", "sex": "F", "pmi": "72", "rin": "7.1"}

    def test_malformed_duration_only_affects_that_field(self):
        record = parse_characteristics(
            ["disease: control", "pmi: 72", "sex: M"],
            duration_fields=["pmi"],
        )
        assert record["pmi"] is None
        assert record["disease"] == "control"
        assert record["sex"] == "M"

    def test_unparseable_entries_skipped(self):
        record = parse_characteristics(["garbage", "sex: M"])
        assert record == {"sex": "M"}

    def test_empty_value_is_missing(self):
        assert parse_characteristics(["sex: "]) == {"sex": None}


def test_make_label_missing_parts():
    assert make_label("GSM2", {"sex": "M"}) == "GSM2_NA_M"
    assert make_label("GSM3", {"disease": "bipolar disorder", "sex": "F"}) == "GSM3_bipolar-disorder_F"


class TestBuildSampleMetadata:

    def test_table_shape_and_labels(self):
        samples = {
            "GSM1": ["disease: control", "sex: F", "pmi: 20:00:00"],
            "GSM2": ["disease: case", "sex: M", "pmi: bad"],
            "GSM3": ["disease: case", "tissue: cortex"],
        }
        metadata = build_sample_metadata(samples, duration_fields=["pmi"])

        assert list(metadata.index) == ["GSM1", "GSM2", "GSM3"]
        assert metadata.columns[0] == "label"
        assert list(metadata["label"]) == ["GSM1_control_F", "GSM2_case_M", "GSM3_case_NA"]
        assert metadata.loc["GSM1", "pmi"] == "20"
        assert pd.isna(metadata.loc["GSM2", "pmi"])
        assert pd.isna(metadata.loc["GSM1", "tissue"])
        assert metadata.loc["GSM3", "tissue"] == "cortex"

    def test_custom_label_fields(self):
        samples = {"GSM1": ["diagnosis: case", "gender: F"]}
        metadata = build_sample_metadata(
            samples, disease_field="Diagnosis", sex_field="Gender"
        )
        assert metadata.loc["GSM1", "label"] == "GSM1_case_F"

    def test_empty(self):
        assert build_sample_metadata({}).empty


def test_metadata_from_geo():
    gse = SimpleNamespace(gsms={
        "GSM1": SimpleNamespace(metadata={
            "characteristics_ch1": ["disease: control", "sex: F"],
            "title": ["Control brain 1"],
        }),
        "GSM2": SimpleNamespace(metadata={"characteristics_ch1": ["sex: M"]}),
    })
    samples = metadata_from_geo(gse)
    assert list(samples) == ["GSM1", "GSM2"]
    assert samples["GSM1"] == ["disease: control", "sex: F", "title: Control brain 1"]
    assert samples["GSM2"] == ["sex: M"]
