"""Transcript identifier validation.

Row identifiers in the raw count table are expected to be Ensembl human
transcript IDs: the ``ENST`` prefix, exactly eleven digits and an
optional ``.version`` suffix. Anything else (gene IDs, spike-ins,
summary rows such as ``__no_feature``) is rejected.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^ENST\d{11}(\.\d+)?$")


@dataclass
class IdentifierValidation:
    """Outcome of validating a sequence of identifiers."""

    valid: List[str] = field(default_factory=list)
    n_rejected: int = 0

    @property
    def n_valid(self) -> int:
        return len(self.valid)


def is_valid_identifier(identifier: str) -> bool:
    """Check whether a string is a (possibly versioned) Ensembl transcript ID.

    >>> is_valid_identifier("ENST00000456328")
    True
    >>> is_valid_identifier("ENST00000456328.2")
    True
    >>> is_valid_identifier("ENSG00000456328")
    False
    """
    if not isinstance(identifier, str):
        return False
    return IDENTIFIER_PATTERN.match(identifier) is not None


def strip_version(identifier: str) -> str:
    """Remove a trailing ``.version`` from an identifier.

    >>> strip_version("ENST00000456328.2")
    'ENST00000456328'
    """
    return identifier.split(".")[0]


def validate_identifiers(identifiers: Iterable[str]) -> IdentifierValidation:
    """Split identifiers into the ordered valid subsequence and a rejected count."""
    result = IdentifierValidation()
    for identifier in identifiers:
        if is_valid_identifier(identifier):
            result.valid.append(identifier)
        else:
            result.n_rejected += 1

    logger.info(
        "Identifier validation: %d valid, %d rejected",
        result.n_valid,
        result.n_rejected,
    )
    return result


def filter_valid_rows(table: pd.DataFrame) -> Tuple[pd.DataFrame, IdentifierValidation]:
    """Keep only rows whose index is a valid transcript identifier.

    Returns:
        Tuple of (filtered copy of the table, validation result)
    """
    validation = validate_identifiers(table.index)
    mask = [is_valid_identifier(i) for i in table.index]
    return table.loc[mask].copy(), validation
