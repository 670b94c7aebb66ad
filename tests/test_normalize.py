"""Unit tests for geo_counts.normalize: size factors and log scaling."""

import numpy as np
import pandas as pd
import pytest

from geo_counts.normalize import (
    NormalizationError,
    deseq2_size_factors,
    library_size_factors,
    normalize_counts,
)


def _make_counts():
    # GSM2 is sequenced exactly twice as deep as GSM1
    return pd.DataFrame(
        {"GSM1": [10, 30, 0, 50], "GSM2": [20, 60, 0, 100]},
        index=pd.Index(["A", "B", "C", "D"], name="gene_symbol"),
    )


class TestDeseq2:

    def test_size_factors_follow_depth(self):
        factors = deseq2_size_factors(_make_counts())
        assert list(factors.index) == ["GSM1", "GSM2"]
        assert factors["GSM2"] / factors["GSM1"] == pytest.approx(2.0)
        # Median-of-ratios factors have geometric mean 1 here
        assert factors.prod() == pytest.approx(1.0)

    def test_normalized_shape_and_values(self):
        counts = _make_counts()
        result = normalize_counts(counts, method="deseq2", offset=1.0)

        assert result.normalized.shape == counts.shape
        assert list(result.normalized.index) == list(counts.index)
        assert list(result.normalized.columns) == list(counts.columns)
        # Depth difference is removed entirely
        np.testing.assert_allclose(
            result.normalized["GSM1"].to_numpy(), result.normalized["GSM2"].to_numpy()
        )
        # Zero counts stay finite thanks to the offset
        assert result.normalized.loc["C"].tolist() == [0.0, 0.0]

    def test_offset_changes_values(self):
        low = normalize_counts(_make_counts(), offset=1.0).normalized
        high = normalize_counts(_make_counts(), offset=4.0).normalized
        assert (high.loc["C"] == 2.0).all()
        assert (high.loc["A"] > low.loc["A"]).all()

    def test_no_gene_expressed_everywhere(self):
        counts = pd.DataFrame({"GSM1": [0, 5], "GSM2": [3, 0]}, index=["A", "B"])
        with pytest.raises(NormalizationError, match="non-zero"):
            normalize_counts(counts)

    def test_empty_table(self):
        with pytest.raises(NormalizationError, match="empty"):
            deseq2_size_factors(pd.DataFrame(columns=["GSM1"], dtype=float))


class TestCpm:

    def test_values(self):
        counts = pd.DataFrame({"GSM1": [250_000, 750_000]}, index=["A", "B"])
        result = normalize_counts(counts, method="cpm", offset=1.0)
        assert result.normalized.loc["A", "GSM1"] == pytest.approx(np.log2(250_001))
        assert result.size_factors["GSM1"] == pytest.approx(1.0)

    def test_zero_library(self):
        counts = pd.DataFrame({"GSM1": [1, 2], "GSM2": [0, 0]}, index=["A", "B"])
        with pytest.raises(NormalizationError, match="GSM2"):
            library_size_factors(counts)


def test_unknown_method():
    with pytest.raises(NormalizationError, match="Unknown"):
        normalize_counts(_make_counts(), method="tmm")


def test_non_positive_offset():
    with pytest.raises(NormalizationError):
        normalize_counts(_make_counts(), offset=0)
