"""
Count preparation pipeline orchestrator.

Runs filter -> resolve -> clean -> aggregate -> normalize over an
in-memory raw count table, then (for a GEO accession) persists the
aggregated and normalized tables plus a per-sample summary.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
import requests

from geo_counts.aggregate import aggregate_by_symbol, duplicate_symbols
from geo_counts.cleaning import clean_rows
from geo_counts.config import PipelineConfig
from geo_counts.counts import (
    assign_sample_names,
    check_sample_count,
    read_count_table,
    to_long_form,
    write_table,
)
from geo_counts.geo import (
    DownloadError,
    download_supplementary,
    fetch_series,
    find_count_file_url,
    suppl_url,
    supplementary_urls,
)
from geo_counts.http_utils import create_session
from geo_counts.identifiers import filter_valid_rows
from geo_counts.metadata import build_sample_metadata, metadata_from_geo, normalize_key
from geo_counts.normalize import NormalizationResult, normalize_counts
from geo_counts.summary import PipelineReport, group_counts, log_report, sample_summary
from geo_counts.symbols import BiomartSymbolResolver, SymbolResolver, annotate_symbols

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Container for the tables produced by one pipeline run."""

    aggregated: pd.DataFrame
    normalization: NormalizationResult
    report: PipelineReport
    metadata: Optional[pd.DataFrame] = None
    long_form: Optional[pd.DataFrame] = None
    samples: pd.DataFrame = field(default_factory=pd.DataFrame)

    @property
    def normalized(self) -> pd.DataFrame:
        return self.normalization.normalized


def align_samples(raw: pd.DataFrame, metadata: pd.DataFrame) -> pd.DataFrame:
    """Name the raw table's columns after the metadata's samples.

    Columns that already are the metadata's sample IDs are reordered to
    match; otherwise names are assigned by position.
    """
    samples = list(metadata.index)
    if set(raw.columns) == set(samples) and len(raw.columns) == len(samples):
        return raw[samples].copy()
    return assign_sample_names(raw, samples)


def run_pipeline(
    raw: pd.DataFrame,
    resolver: SymbolResolver,
    metadata: Optional[pd.DataFrame] = None,
    expected_samples: Optional[int] = None,
    normalization_method: str = "deseq2",
    log_offset: float = 1.0,
) -> PipelineResult:
    """
    Prepare a raw transcript count table.

    Args:
        raw: Counts indexed by transcript ID, one column per sample
        resolver: Maps transcript IDs to gene symbols
        metadata: Parsed sample metadata indexed by sample ID (optional)
        expected_samples: Required number of sample columns (optional)
        normalization_method: "deseq2" or "cpm"
        log_offset: Additive offset before log2

    Returns:
        PipelineResult with aggregated and normalized tables

    Raises:
        SampleCountMismatchError: If sample counts disagree
    """
    if expected_samples is not None:
        check_sample_count(raw, expected_samples)
    if metadata is not None:
        raw = align_samples(raw, metadata)

    rows_raw = len(raw)
    valid, validation = filter_valid_rows(raw)
    annotated, n_unresolved = annotate_symbols(valid, resolver)
    cleaned, cleaning = clean_rows(annotated)
    duplicates = duplicate_symbols(cleaned)
    aggregated = aggregate_by_symbol(cleaned)

    normalization = normalize_counts(
        aggregated, method=normalization_method, offset=log_offset
    )

    report = PipelineReport.from_steps(
        rows_raw=rows_raw,
        n_rejected=validation.n_rejected,
        n_unresolved=n_unresolved,
        cleaning=cleaning,
        duplicate_symbols=len(duplicates),
        genes=aggregated.shape[0],
        samples=aggregated.shape[1],
    )
    log_report(report)

    return PipelineResult(
        aggregated=aggregated,
        normalization=normalization,
        report=report,
        metadata=metadata,
        long_form=to_long_form(aggregated, metadata) if metadata is not None else None,
        samples=sample_summary(
            aggregated, normalization.normalized, normalization.size_factors
        ),
    )


def write_outputs(result: PipelineResult, config: PipelineConfig) -> Dict[str, Path]:
    """Persist the aggregated, normalized and per-sample summary tables."""
    paths = {
        "aggregated": write_table(result.aggregated, config.output_path("aggregated_counts")),
        "normalized": write_table(result.normalized, config.output_path("normalized_counts")),
        "samples": write_table(result.samples, config.output_path("sample_summary")),
    }
    if result.metadata is not None:
        paths["metadata"] = write_table(result.metadata, config.output_path("sample_metadata"))
    return paths


def run_geo_pipeline(
    config: PipelineConfig,
    resolver: Optional[SymbolResolver] = None,
    session: Optional[requests.Session] = None,
) -> Dict[str, Path]:
    """
    Main entry point: download a GEO series and prepare its counts.

    Args:
        config: Pipeline configuration
        resolver: Symbol resolver (BioMart with a local cache by default)
        session: requests session shared by downloads and lookups

    Returns:
        Dict of artifact name -> written path
    """
    session = session or create_session()

    gse = fetch_series(config.accession, config.series_dir)
    metadata = build_sample_metadata(
        metadata_from_geo(gse),
        duration_fields=config.duration_fields,
        disease_field=config.disease_field,
        sex_field=config.sex_field,
    )
    logger.info("Parsed metadata for %d samples", len(metadata))

    if config.count_file:
        url = suppl_url(config.accession, config.count_file)
    else:
        url = find_count_file_url(supplementary_urls(gse))
    if url is None:
        raise DownloadError(f"No supplementary count table listed for {config.accession}")

    counts_path = download_supplementary(url, config.series_dir, session=session)
    raw = read_count_table(counts_path)

    if resolver is None:
        resolver = BiomartSymbolResolver(
            session=session,
            url=config.biomart_url,
            dataset=config.biomart_dataset,
            batch_size=config.biomart_batch_size,
            cache_path=config.symbol_cache_path,
        )

    result = run_pipeline(
        raw,
        resolver,
        metadata=metadata,
        expected_samples=config.expected_samples,
        normalization_method=config.normalization_method,
        log_offset=config.log_offset,
    )

    for fields in ((config.disease_field,), (config.disease_field, config.sex_field)):
        groups = group_counts(metadata, *(normalize_key(f) for f in fields))
        if not groups.empty:
            logger.info("Samples by %s:\n%s", " / ".join(fields), groups.to_string())

    return write_outputs(result, config)
