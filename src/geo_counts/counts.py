"""
Reading, writing and reshaping count tables.

Tables are delimited text with the row identifier in the first column.
The delimiter follows the file suffix (``.csv`` is comma-separated,
``.tsv``/``.txt`` tab-separated), with an optional ``.gz`` on top.
"""

import logging
from pathlib import Path
from typing import Sequence, Union

import pandas as pd

logger = logging.getLogger(__name__)

ROW_ID_NAME = "transcript_id"


class SampleCountMismatchError(ValueError):
    """The number of sample names does not match the table's data columns."""


def delimiter_for(path: Union[str, Path]) -> str:
    """Pick the delimiter from a file name.

    >>> delimiter_for("counts.csv.gz")
    ','
    >>> delimiter_for("counts.tsv")
    '\\t'
    """
    suffixes = [s.lower() for s in Path(path).suffixes if s.lower() != ".gz"]
    if suffixes and suffixes[-1] == ".csv":
        return ","
    return "\t"


def read_count_table(path: Union[str, Path]) -> pd.DataFrame:
    """Read a raw count table with identifiers in the first column.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Count table not found: {path}")

    table = pd.read_csv(path, sep=delimiter_for(path), index_col=0)
    table.index = table.index.astype(str)
    table.index.name = ROW_ID_NAME
    logger.info("Read %d rows x %d columns from %s", table.shape[0], table.shape[1], path)
    return table


def assign_sample_names(table: pd.DataFrame, sample_names: Sequence[str]) -> pd.DataFrame:
    """Return a copy of the table with its data columns renamed to sample names.

    Raises:
        SampleCountMismatchError: If the number of names differs from the
            number of data columns
    """
    if len(sample_names) != table.shape[1]:
        raise SampleCountMismatchError(
            f"Table has {table.shape[1]} sample columns but "
            f"{len(sample_names)} sample names were given"
        )
    renamed = table.copy()
    renamed.columns = list(sample_names)
    return renamed


def check_sample_count(table: pd.DataFrame, expected: int) -> None:
    """Fail when a table does not carry exactly ``expected`` sample columns."""
    if table.shape[1] != expected:
        raise SampleCountMismatchError(
            f"Expected {expected} samples, table has {table.shape[1]} columns"
        )


def write_table(table: pd.DataFrame, path: Union[str, Path]) -> Path:
    """Write a table with its index as the first column."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(path, sep=delimiter_for(path), index=True)
    logger.info("Wrote %d rows to %s", len(table), path)
    return path


def read_table(path: Union[str, Path]) -> pd.DataFrame:
    """Read a table written by :func:`write_table`."""
    path = Path(path)
    table = pd.read_csv(path, sep=delimiter_for(path), index_col=0)
    table.index = table.index.astype(str)
    return table


def to_long_form(table: pd.DataFrame, metadata: pd.DataFrame) -> pd.DataFrame:
    """
    Reshape a genes x samples table to one row per (gene, sample) and
    join the sample metadata onto it.

    Args:
        table: Expression table indexed by gene, one column per sample
        metadata: Sample metadata indexed by sample ID

    Returns:
        DataFrame with ``gene_symbol``, ``sample``, ``count`` and the
        metadata columns
    """
    wide = table.copy()
    wide.index.name = "gene_symbol"
    long = wide.reset_index().melt(
        id_vars="gene_symbol", var_name="sample", value_name="count"
    )
    meta = metadata.copy()
    meta.index.name = "sample"
    return long.merge(meta.reset_index(), on="sample", how="left")
