"""
Per-sample metadata parsing.

GEO stores sample characteristics as free text, one ``"key: value"``
string per characteristic (``characteristics_ch1``). This module turns
those lists into flat records, one per sample, and derives a composite
label ``{sample}_{disease}_{sex}`` used to name expression columns.

Duration characteristics are recorded as ``hours:minutes:seconds``;
only the hours component is kept. A malformed duration becomes a
missing value for that field alone.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from geo_counts.config import (
    DEFAULT_DISEASE_FIELD,
    DEFAULT_DURATION_FIELDS,
    DEFAULT_SEX_FIELD,
)

logger = logging.getLogger(__name__)

LABEL_COLUMN = "label"
MISSING_LABEL_PART = "NA"


def normalize_key(key: str) -> str:
    """Lowercase a characteristic name and collapse internal whitespace."""
    return " ".join(key.strip().lower().split())


def parse_characteristic(entry: str) -> Optional[Tuple[str, str]]:
    """Split a ``"key: value"`` string on its first colon.

    Returns:
        (normalized key, stripped value), or None when the entry has no
        colon or an empty key
    """
    if not isinstance(entry, str) or ":" not in entry:
        return None
    key, value = entry.split(":", 1)
    key = normalize_key(key)
    if not key:
        return None
    return key, value.strip()


def parse_duration(value: Optional[str]) -> Optional[str]:
    """Keep the leading component of an ``hours:minutes:seconds`` duration.

    >>> parse_duration("72:15:30")
    '72'
    >>> parse_duration("72") is None
    True
    """
    if not isinstance(value, str) or ":" not in value:
        return None
    first = value.split(":", 1)[0].strip()
    if not first.replace(".", "", 1).isdigit():
        return None
    return first


def parse_characteristics(
    entries: Iterable[str],
    duration_fields: Sequence[str] = DEFAULT_DURATION_FIELDS,
) -> Dict[str, Optional[str]]:
    """Build a flat record from a sample's characteristic strings.

    Entries that cannot be split into key and value are skipped; they
    never invalidate the rest of the record.
    """
    durations = {normalize_key(f) for f in duration_fields}
    record: Dict[str, Optional[str]] = {}

    for entry in entries:
        parsed = parse_characteristic(entry)
        if parsed is None:
            logger.debug("Skipping unparseable characteristic: %r", entry)
            continue
        key, value = parsed
        if key in durations:
            record[key] = parse_duration(value)
        else:
            record[key] = value if value else None

    return record


def make_label(
    sample: str,
    record: Mapping[str, Optional[str]],
    disease_field: str = DEFAULT_DISEASE_FIELD,
    sex_field: str = DEFAULT_SEX_FIELD,
) -> str:
    """Composite label encoding sample, disease status and sex.

    >>> make_label("GSM1", {"disease": "control", "sex": "F"})
    'GSM1_control_F'
    """
    parts = [sample]
    for name in (disease_field, sex_field):
        value = record.get(normalize_key(name))
        parts.append(value.replace(" ", "-") if value else MISSING_LABEL_PART)
    return "_".join(parts)


def build_sample_metadata(
    samples: Mapping[str, Iterable[str]],
    duration_fields: Sequence[str] = DEFAULT_DURATION_FIELDS,
    disease_field: str = DEFAULT_DISEASE_FIELD,
    sex_field: str = DEFAULT_SEX_FIELD,
) -> pd.DataFrame:
    """
    Parse every sample's characteristics into one table.

    Args:
        samples: Mapping of sample ID to its characteristic strings,
            in the order the samples appear in the count table
        duration_fields: Keys whose values are hours:minutes:seconds
        disease_field: Key holding disease status
        sex_field: Key holding sex

    Returns:
        DataFrame indexed by sample ID with one column per characteristic
        (missing where a sample lacks it) and a ``label`` column
    """
    rows: List[Dict[str, Any]] = []
    for sample, entries in samples.items():
        record = parse_characteristics(entries, duration_fields)
        row: Dict[str, Any] = dict(record)
        row[LABEL_COLUMN] = make_label(sample, record, disease_field, sex_field)
        rows.append(row)

    metadata = pd.DataFrame(rows, index=pd.Index(list(samples), name="sample"))
    if metadata.empty:
        return metadata

    # Label first, then characteristics in first-seen order
    columns = [LABEL_COLUMN] + [c for c in metadata.columns if c != LABEL_COLUMN]
    return metadata[columns]


def metadata_from_geo(gse) -> Dict[str, List[str]]:
    """Collect characteristic strings for every sample of a GEOparse series.

    The sample title is added as a ``title: ...`` characteristic so it is
    available alongside the parsed fields.

    Args:
        gse: ``GEOparse.GSE`` object

    Returns:
        Dict mapping GSM accession to characteristic strings, in the
        series' sample order
    """
    samples: Dict[str, List[str]] = {}
    for name, gsm in gse.gsms.items():
        entries = list(gsm.metadata.get("characteristics_ch1", []))
        title = gsm.metadata.get("title", [""])[0]
        if title:
            entries.append(f"title: {title}")
        samples[name] = entries
    return samples
