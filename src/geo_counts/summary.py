"""Summary statistics for prepared count tables."""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import pandas as pd

from geo_counts.cleaning import CleaningReport

logger = logging.getLogger(__name__)


@dataclass
class PipelineReport:
    """Row counts at each step of a pipeline run."""

    rows_raw: int = 0
    n_rejected: int = 0
    n_unresolved: int = 0
    empty_symbol: int = 0
    negative: int = 0
    missing: int = 0
    duplicate_symbols: int = 0
    genes: int = 0
    samples: int = 0

    @classmethod
    def from_steps(
        cls,
        rows_raw: int,
        n_rejected: int,
        n_unresolved: int,
        cleaning: CleaningReport,
        duplicate_symbols: int,
        genes: int,
        samples: int,
    ) -> "PipelineReport":
        return cls(
            rows_raw=rows_raw,
            n_rejected=n_rejected,
            n_unresolved=n_unresolved,
            empty_symbol=cleaning.empty_symbol,
            negative=cleaning.negative,
            missing=cleaning.missing,
            duplicate_symbols=duplicate_symbols,
            genes=genes,
            samples=samples,
        )

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def sample_summary(
    counts: pd.DataFrame,
    normalized: Optional[pd.DataFrame] = None,
    size_factors: Optional[pd.Series] = None,
) -> pd.DataFrame:
    """
    Per-sample statistics.

    Columns: library size, number of genes with a non-zero count, and,
    when given, the size factor and the median and mean normalized value.
    """
    summary = pd.DataFrame(
        {
            "library_size": counts.sum(axis=0),
            "detected_genes": (counts > 0).sum(axis=0),
        }
    )
    if size_factors is not None:
        summary["size_factor"] = size_factors.reindex(summary.index)
    if normalized is not None:
        summary["median_normalized"] = normalized.median(axis=0)
        summary["mean_normalized"] = normalized.mean(axis=0)
    summary.index.name = "sample"
    return summary


def group_counts(metadata: pd.DataFrame, *fields: str) -> pd.DataFrame:
    """Number of samples per combination of the given metadata fields.

    Fields not present in the metadata are ignored; missing values are
    counted under ``NA``.
    """
    present = [f for f in fields if f in metadata.columns]
    if not present:
        return pd.DataFrame(columns=["n_samples"])
    grouped = metadata[present].fillna("NA").value_counts().sort_index()
    return grouped.rename("n_samples").to_frame()


def log_report(report: PipelineReport) -> None:
    """Write the run's row counts to the log."""
    logger.info("Raw rows: %d", report.rows_raw)
    logger.info("Rejected identifiers: %d", report.n_rejected)
    logger.info("Unresolved identifiers: %d", report.n_unresolved)
    logger.info(
        "Removed rows: %d empty symbol, %d negative, %d missing",
        report.empty_symbol,
        report.negative,
        report.missing,
    )
    logger.info("Symbols merged from several rows: %d", report.duplicate_symbols)
    logger.info("Final table: %d genes x %d samples", report.genes, report.samples)
