"""Pipeline configuration.

Collects the constants that drive a single run (dataset accession,
expected sample count, file locations, metadata field names and
normalization options) in one dataclass.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from geo_counts.geo import validate_accession

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_DATA_DIR = Path("data")
DEFAULT_OUTPUT_DIR = Path("output")

BIOMART_URL = "https://www.ensembl.org/biomart/martservice"
BIOMART_DATASET = "hsapiens_gene_ensembl"
BIOMART_BATCH_SIZE = 500

# Characteristic keys used to build the composite sample label
DEFAULT_DISEASE_FIELD = "disease"
DEFAULT_SEX_FIELD = "sex"

# Characteristics recorded as hours:minutes:seconds; only hours are kept
DEFAULT_DURATION_FIELDS: Tuple[str, ...] = ("pmi", "post-mortem interval")

NORMALIZATION_METHODS = ("deseq2", "cpm")


@dataclass
class PipelineConfig:
    """Configuration for one run of the count preparation pipeline."""

    accession: str
    expected_samples: Optional[int] = None
    data_dir: Path = DEFAULT_DATA_DIR
    output_dir: Path = DEFAULT_OUTPUT_DIR

    # Supplementary file name of the count table; picked automatically if None
    count_file: Optional[str] = None

    # Normalization
    normalization_method: str = "deseq2"
    log_offset: float = 1.0

    # Metadata parsing
    disease_field: str = DEFAULT_DISEASE_FIELD
    sex_field: str = DEFAULT_SEX_FIELD
    duration_fields: Tuple[str, ...] = field(
        default_factory=lambda: DEFAULT_DURATION_FIELDS
    )

    # Symbol lookup
    biomart_url: str = BIOMART_URL
    biomart_dataset: str = BIOMART_DATASET
    biomart_batch_size: int = BIOMART_BATCH_SIZE

    def __post_init__(self):
        self.accession = validate_accession(self.accession)
        self.data_dir = Path(self.data_dir)
        self.output_dir = Path(self.output_dir)
        self.duration_fields = tuple(f.lower() for f in self.duration_fields)

        if self.normalization_method not in NORMALIZATION_METHODS:
            raise ValueError(
                f"Unknown normalization method '{self.normalization_method}'. "
                f"Expected one of: {', '.join(NORMALIZATION_METHODS)}"
            )
        if self.log_offset <= 0:
            raise ValueError(f"log_offset must be positive, got {self.log_offset}")
        if self.expected_samples is not None and self.expected_samples < 1:
            raise ValueError(
                f"expected_samples must be at least 1, got {self.expected_samples}"
            )

    @property
    def series_dir(self) -> Path:
        """Download directory for this accession."""
        return self.data_dir / self.accession

    @property
    def symbol_cache_path(self) -> Path:
        return self.data_dir / "transcript_symbols.tsv"

    def output_path(self, artifact: str) -> Path:
        """Path of a persisted artifact, e.g. ``GSE000_normalized_counts.tsv``."""
        return self.output_dir / f"{self.accession}_{artifact}.tsv"

    @classmethod
    def from_env(cls, accession: str, **overrides) -> "PipelineConfig":
        """Build a config, taking directory and endpoint defaults from the environment.

        Recognized variables: ``GEO_COUNTS_DATA_DIR``, ``GEO_COUNTS_OUTPUT_DIR``
        and ``BIOMART_URL``. Explicit keyword overrides win.
        """
        env_defaults = {}
        if os.environ.get("GEO_COUNTS_DATA_DIR"):
            env_defaults["data_dir"] = Path(os.environ["GEO_COUNTS_DATA_DIR"])
        if os.environ.get("GEO_COUNTS_OUTPUT_DIR"):
            env_defaults["output_dir"] = Path(os.environ["GEO_COUNTS_OUTPUT_DIR"])
        if os.environ.get("BIOMART_URL"):
            env_defaults["biomart_url"] = os.environ["BIOMART_URL"]

        env_defaults.update({k: v for k, v in overrides.items() if v is not None})
        return cls(accession=accession, **env_defaults)
