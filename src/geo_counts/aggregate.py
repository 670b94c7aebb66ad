"""Collapse transcript-level rows into one row per gene symbol."""

import logging

import pandas as pd

from geo_counts.symbols import SYMBOL_COLUMN

logger = logging.getLogger(__name__)


def duplicate_symbols(table: pd.DataFrame, symbol_column: str = SYMBOL_COLUMN) -> pd.Series:
    """Number of source rows per symbol, for symbols seen more than once."""
    counts = table[symbol_column].value_counts()
    return counts[counts > 1].sort_index()


def aggregate_by_symbol(table: pd.DataFrame, symbol_column: str = SYMBOL_COLUMN) -> pd.DataFrame:
    """Sum all rows sharing a gene symbol.

    Missing values count as zero. The result is indexed by symbol in
    sorted order, so it does not depend on the order of the input rows.
    """
    aggregated = table.groupby(symbol_column, sort=True).sum(min_count=0)
    aggregated.index.name = symbol_column

    logger.info(
        "Aggregated %d rows into %d gene symbols",
        len(table),
        len(aggregated),
    )
    return aggregated
