"""
Count normalization.

The default method uses PyDESeq2's median-of-ratios size factors
(the DESeq2 library-size estimate) and reports
``log2(count / size_factor + offset)``. The ``cpm`` method scales by
library size instead and reports ``log2(CPM + offset)``.

Both return a table with exactly the input's shape, index and columns.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from pydeseq2.preprocessing import deseq2_norm

logger = logging.getLogger(__name__)


class NormalizationError(ValueError):
    """The table cannot be normalized with the requested method."""


@dataclass
class NormalizationResult:
    """Normalized values and the per-sample scale factors used."""

    normalized: pd.DataFrame
    size_factors: pd.Series
    method: str
    offset: float


def deseq2_size_factors(table: pd.DataFrame) -> pd.Series:
    """Median-of-ratios size factors for a genes x samples count table.

    Raises:
        NormalizationError: If no gene has a non-zero count in every sample
    """
    values = table.to_numpy(dtype=float)
    if values.size == 0:
        raise NormalizationError("Cannot normalize an empty table")
    if not (values > 0).all(axis=1).any():
        raise NormalizationError(
            "Median-of-ratios needs at least one gene with non-zero counts "
            "in every sample"
        )

    # PyDESeq2 works on samples x genes
    _, size_factors = deseq2_norm(values.T)
    return pd.Series(np.asarray(size_factors, dtype=float), index=table.columns, name="size_factor")


def library_size_factors(table: pd.DataFrame) -> pd.Series:
    """Per-sample library sizes in millions of reads."""
    lib_sizes = table.sum(axis=0).astype(float)
    if (lib_sizes <= 0).any():
        empty = list(lib_sizes[lib_sizes <= 0].index)
        raise NormalizationError(f"Samples with zero total counts: {empty}")
    return (lib_sizes / 1e6).rename("size_factor")


def normalize_counts(
    table: pd.DataFrame,
    method: str = "deseq2",
    offset: float = 1.0,
) -> NormalizationResult:
    """
    Normalize an aggregated count table.

    Args:
        table: Counts, genes x samples
        method: "deseq2" (median-of-ratios) or "cpm"
        offset: Added before taking log2 so zero counts stay finite

    Returns:
        NormalizationResult with the log2-scaled table and size factors
    """
    if offset <= 0:
        raise NormalizationError(f"offset must be positive, got {offset}")

    if method == "deseq2":
        size_factors = deseq2_size_factors(table)
    elif method == "cpm":
        size_factors = library_size_factors(table)
    else:
        raise NormalizationError(f"Unknown normalization method: {method}")

    scaled = table.astype(float).div(size_factors, axis=1)
    normalized = np.log2(scaled + offset)

    logger.info(
        "Normalized %d genes x %d samples (%s, offset=%g)",
        normalized.shape[0],
        normalized.shape[1],
        method,
        offset,
    )
    return NormalizationResult(
        normalized=normalized,
        size_factors=size_factors,
        method=method,
        offset=offset,
    )
