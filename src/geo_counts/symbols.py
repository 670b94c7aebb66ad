"""Transcript ID to gene symbol resolution via Ensembl BioMart.

Transcript IDs are sent to BioMart in batches; each returns the
``external_gene_name`` of the parent gene. Results can be cached in a
local TSV so repeated runs only query identifiers not seen before.
A failed request is fatal: there is no retry or fallback.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

import pandas as pd
import requests

from geo_counts.config import BIOMART_BATCH_SIZE, BIOMART_DATASET, BIOMART_URL
from geo_counts.http_utils import DEFAULT_TIMEOUT, create_session
from geo_counts.identifiers import strip_version

logger = logging.getLogger(__name__)

SYMBOL_COLUMN = "gene_symbol"

_QUERY_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE Query>
<Query virtualSchemaName="default" formatter="TSV" header="0" uniqueRows="1" count="" datasetConfigVersion="0.6">
    <Dataset name="{dataset}" interface="default">
        <Filter name="ensembl_transcript_id" value="{ids}"/>
        <Attribute name="ensembl_transcript_id"/>
        <Attribute name="external_gene_name"/>
    </Dataset>
</Query>"""


class SymbolLookupError(RuntimeError):
    """The external symbol lookup service failed or returned an error."""


class SymbolResolver(Protocol):
    """Anything that maps identifiers to gene symbols (``None`` if unknown)."""

    def resolve(self, identifiers: Iterable[str]) -> Dict[str, Optional[str]]:
        ...


def build_biomart_query(transcript_ids: List[str], dataset: str = BIOMART_DATASET) -> str:
    """Build the BioMart XML query for a batch of unversioned transcript IDs."""
    return _QUERY_TEMPLATE.format(dataset=dataset, ids=",".join(transcript_ids))


def parse_biomart_response(text: str) -> Dict[str, str]:
    """Parse a headerless two-column BioMart TSV into {transcript_id: symbol}.

    Transcripts whose gene has no name come back with an empty second
    column and are left out.
    """
    mapping: Dict[str, str] = {}
    for line in text.splitlines():
        parts = line.rstrip("\n").split("\t")
        if len(parts) < 2:
            continue
        transcript_id, symbol = parts[0].strip(), parts[1].strip()
        if transcript_id and symbol:
            mapping.setdefault(transcript_id, symbol)
    return mapping


class BiomartSymbolResolver:
    """Resolves Ensembl transcript IDs to gene symbols with BioMart.

    Args:
        session: requests session (created with defaults if omitted)
        url: BioMart martservice endpoint
        dataset: BioMart dataset name
        batch_size: Number of IDs per query
        cache_path: Optional TSV cache of previous lookups
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        url: str = BIOMART_URL,
        dataset: str = BIOMART_DATASET,
        batch_size: int = BIOMART_BATCH_SIZE,
        cache_path: Optional[Path] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.session = session or create_session()
        self.url = url
        self.dataset = dataset
        self.batch_size = batch_size
        self.timeout = timeout
        self._cache_path = Path(cache_path) if cache_path is not None else None

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def resolve(self, identifiers: Iterable[str]) -> Dict[str, Optional[str]]:
        """Resolve identifiers (versioned or not) to gene symbols.

        Returns:
            Dict mapping each input identifier to its symbol, or ``None``
        """
        identifiers = list(identifiers)
        keys = sorted({strip_version(i) for i in identifiers})

        cached = self._read_cache()
        pending = [k for k in keys if k not in cached]
        logger.info(
            "Resolving %d transcript IDs (%d cached, %d to query)",
            len(keys),
            len(keys) - len(pending),
            len(pending),
        )

        fetched: Dict[str, str] = {}
        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            fetched.update(self._query(batch))

        if pending:
            self._append_cache({k: fetched.get(k, "") for k in pending})

        lookup = {k: v for k, v in cached.items() if v}
        lookup.update(fetched)
        return {i: lookup.get(strip_version(i)) for i in identifiers}

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _query(self, batch: List[str]) -> Dict[str, str]:
        logger.debug("Querying BioMart for %d IDs", len(batch))
        try:
            response = self.session.get(
                self.url,
                params={"query": build_biomart_query(batch, self.dataset)},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SymbolLookupError(f"BioMart request failed: {exc}") from exc

        if response.text.startswith("Query ERROR"):
            raise SymbolLookupError(f"BioMart error: {response.text[:500]}")
        return parse_biomart_response(response.text)

    def _read_cache(self) -> Dict[str, str]:
        """Read cached lookups; an empty symbol marks a known miss."""
        if self._cache_path is None or not self._cache_path.exists():
            return {}
        mapping: Dict[str, str] = {}
        with self._cache_path.open("r", encoding="utf-8", newline="") as fh:
            reader = csv.reader(fh, delimiter="\t")
            next(reader, None)  # header
            for row in reader:
                if row:
                    mapping[row[0]] = row[1] if len(row) > 1 else ""
        return mapping

    def _append_cache(self, mapping: Dict[str, str]) -> None:
        if self._cache_path is None:
            return
        self._cache_path.parent.mkdir(parents=True, exist_ok=True)
        is_new = not self._cache_path.exists()
        with self._cache_path.open("a", encoding="utf-8", newline="") as fh:
            writer = csv.writer(fh, delimiter="\t")
            if is_new:
                writer.writerow(["transcript_id", SYMBOL_COLUMN])
            for transcript_id, symbol in sorted(mapping.items()):
                writer.writerow([transcript_id, symbol])


def annotate_symbols(
    table: pd.DataFrame,
    resolver: SymbolResolver,
    symbol_column: str = SYMBOL_COLUMN,
) -> Tuple[pd.DataFrame, int]:
    """Add a gene symbol column and drop rows the resolver could not map.

    Returns:
        Tuple of (annotated copy of the table, number of unresolved rows)
    """
    mapping = resolver.resolve(list(table.index))
    annotated = table.copy()
    annotated.insert(0, symbol_column, [mapping.get(i) for i in table.index])

    unresolved = annotated[symbol_column].isna()
    n_unresolved = int(unresolved.sum())
    logger.info("Symbol resolution: %d unresolved identifiers dropped", n_unresolved)
    return annotated.loc[~unresolved], n_unresolved
