"""Row cleaning for annotated count tables.

Three filters run in a fixed order: rows with an empty gene symbol,
rows with any negative count, then rows with any missing count. Each
step logs how many rows it is about to remove.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

import pandas as pd

from geo_counts.symbols import SYMBOL_COLUMN

logger = logging.getLogger(__name__)


@dataclass
class CleaningReport:
    """Rows removed by each cleaning step."""

    rows_in: int = 0
    empty_symbol: int = 0
    negative: int = 0
    missing: int = 0

    @property
    def rows_out(self) -> int:
        return self.rows_in - self.empty_symbol - self.negative - self.missing


def sample_columns(table: pd.DataFrame, symbol_column: str = SYMBOL_COLUMN) -> List[str]:
    """Columns holding per-sample values (everything except the symbol)."""
    return [c for c in table.columns if c != symbol_column]


def drop_empty_symbols(
    table: pd.DataFrame, symbol_column: str = SYMBOL_COLUMN
) -> Tuple[pd.DataFrame, int]:
    symbols = table[symbol_column]
    empty = symbols.isna() | (symbols.astype(str).str.strip() == "")
    n = int(empty.sum())
    logger.info("Rows with empty gene symbol: %d", n)
    return table.loc[~empty], n


def drop_negative_rows(
    table: pd.DataFrame, symbol_column: str = SYMBOL_COLUMN
) -> Tuple[pd.DataFrame, int]:
    values = table[sample_columns(table, symbol_column)]
    negative = (values < 0).any(axis=1)
    n = int(negative.sum())
    logger.info("Rows with negative values: %d", n)
    return table.loc[~negative], n


def drop_missing_rows(
    table: pd.DataFrame, symbol_column: str = SYMBOL_COLUMN
) -> Tuple[pd.DataFrame, int]:
    values = table[sample_columns(table, symbol_column)]
    missing = values.isna().any(axis=1)
    n = int(missing.sum())
    logger.info("Rows with missing values: %d", n)
    return table.loc[~missing], n


def clean_rows(
    table: pd.DataFrame, symbol_column: str = SYMBOL_COLUMN
) -> Tuple[pd.DataFrame, CleaningReport]:
    """Apply all cleaning filters.

    Returns:
        Tuple of (cleaned copy of the table, per-step report)
    """
    report = CleaningReport(rows_in=len(table))
    cleaned, report.empty_symbol = drop_empty_symbols(table, symbol_column)
    cleaned, report.negative = drop_negative_rows(cleaned, symbol_column)
    cleaned, report.missing = drop_missing_rows(cleaned, symbol_column)
    return cleaned.copy(), report
