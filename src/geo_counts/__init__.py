"""Preparation of GEO RNA-seq count tables.

Validates transcript identifiers, resolves them to gene symbols,
removes unusable rows, sums rows per gene and normalizes the result.

Usage::

    from geo_counts import run_pipeline
    from geo_counts.counts import write_table

    result = run_pipeline(raw_counts, resolver, metadata=metadata)
    write_table(result.normalized, "normalized_counts.tsv")
"""

from geo_counts.aggregate import aggregate_by_symbol
from geo_counts.cleaning import CleaningReport, clean_rows
from geo_counts.config import PipelineConfig
from geo_counts.identifiers import IdentifierValidation, is_valid_identifier, validate_identifiers
from geo_counts.metadata import build_sample_metadata, parse_characteristics, parse_duration
from geo_counts.normalize import NormalizationResult, normalize_counts
from geo_counts.pipeline import PipelineResult, run_geo_pipeline, run_pipeline
from geo_counts.symbols import BiomartSymbolResolver, annotate_symbols

__version__ = "0.1.0"

__all__ = [
    "PipelineConfig",
    "IdentifierValidation",
    "is_valid_identifier",
    "validate_identifiers",
    "BiomartSymbolResolver",
    "annotate_symbols",
    "CleaningReport",
    "clean_rows",
    "aggregate_by_symbol",
    "build_sample_metadata",
    "parse_characteristics",
    "parse_duration",
    "NormalizationResult",
    "normalize_counts",
    "PipelineResult",
    "run_pipeline",
    "run_geo_pipeline",
]
