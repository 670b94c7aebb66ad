"""
GEO retrieval.

Series metadata comes from the SOFT file through GEOparse, which reuses
a previously downloaded SOFT file in the destination directory.
Supplementary files (the raw count table) are fetched over HTTPS and
skipped when a local copy already exists. There is no freshness check.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional
from urllib.parse import unquote, urlparse

import GEOparse
import requests

from geo_counts.http_utils import DEFAULT_TIMEOUT, create_session

logger = logging.getLogger(__name__)

GEO_FTP_PREFIX = "ftp://ftp.ncbi.nlm.nih.gov/"
GEO_HTTPS_PREFIX = "https://ftp.ncbi.nlm.nih.gov/"

_ACCESSION_PATTERN = re.compile(r"^GSE\d+$")

# Supplementary files that look like count matrices
_COUNT_FILE_PATTERN = re.compile(r"count", re.IGNORECASE)
_TABLE_SUFFIXES = (".tsv", ".txt", ".csv", ".tsv.gz", ".txt.gz", ".csv.gz")


class DownloadError(RuntimeError):
    """A file expected after download is not on disk."""


def validate_accession(accession: str) -> str:
    """Return the accession if it looks like a GEO series ID."""
    accession = accession.strip().upper()
    if not _ACCESSION_PATTERN.match(accession):
        raise ValueError(f"Not a GEO series accession: '{accession}'")
    return accession


def https_url(url: str) -> str:
    """Rewrite GEO's ``ftp://`` supplementary URLs to HTTPS."""
    if url.startswith(GEO_FTP_PREFIX):
        return GEO_HTTPS_PREFIX + url[len(GEO_FTP_PREFIX):]
    return url


def suppl_url(accession: str, filename: str) -> str:
    """Series-level supplementary file URL, e.g. ``.../GSE12nnn/GSE12345/suppl/x``."""
    head = accession[:-3] + "nnn"
    return f"{GEO_HTTPS_PREFIX}geo/series/{head}/{accession}/suppl/{filename}"


def fetch_series(accession: str, destdir: Path):
    """Load a GEO series, downloading its SOFT file if not already cached."""
    accession = validate_accession(accession)
    destdir = Path(destdir)
    destdir.mkdir(parents=True, exist_ok=True)
    logger.info("Loading GEO series %s into %s", accession, destdir)
    return GEOparse.get_GEO(geo=accession, destdir=str(destdir), silent=True, annotate_gpl=False)


def supplementary_urls(gse) -> List[str]:
    """Series-level supplementary file URLs, rewritten to HTTPS."""
    urls = gse.metadata.get("supplementary_file", [])
    return [https_url(u) for u in urls if u and u.upper() != "NONE"]


def find_count_file_url(urls: List[str]) -> Optional[str]:
    """Pick the supplementary file that holds raw counts."""
    tables = [u for u in urls if u.lower().endswith(_TABLE_SUFFIXES)]
    for url in tables:
        if _COUNT_FILE_PATTERN.search(Path(urlparse(url).path).name):
            return url
    return tables[0] if tables else None


def download_supplementary(
    url: str,
    destdir: Path,
    session: Optional[requests.Session] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> Path:
    """
    Download a file into ``destdir`` unless it is already there.

    Raises:
        requests.RequestException: If the request or the stream fails; the
            partial file is removed
        DownloadError: If the file is missing after the download
    """
    destdir = Path(destdir)
    filename = unquote(Path(urlparse(url).path).name)
    local_path = destdir / filename

    if local_path.exists():
        logger.info("Using existing file: %s", local_path)
        return local_path

    destdir.mkdir(parents=True, exist_ok=True)
    session = session or create_session()
    logger.info("Downloading %s", url)

    # Only a completed stream is renamed to local_path
    part_path = local_path.with_suffix(local_path.suffix + ".part")
    try:
        response = session.get(url, stream=True, timeout=timeout)
        response.raise_for_status()
        with open(part_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                if chunk:
                    f.write(chunk)
    except (requests.RequestException, OSError):
        logger.error("Download of %s interrupted, removing %s", url, part_path)
        part_path.unlink(missing_ok=True)
        raise
    part_path.replace(local_path)

    if not local_path.is_file():
        raise DownloadError(f"Expected {local_path} after downloading {url}")
    logger.info("Saved %s (%d bytes)", local_path, local_path.stat().st_size)
    return local_path
