"""Shared HTTP session for GEO downloads and BioMart lookups."""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

USER_AGENT = "geo-counts/0.1"
DEFAULT_TIMEOUT = 120


def create_session(user_agent: str = USER_AGENT) -> requests.Session:
    """
    Create a requests Session that never retries.

    A failed request aborts the run, so the adapters are mounted with a
    zero-retry policy and HTTP error statuses are left for
    ``raise_for_status`` at the call site.
    """
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": user_agent})
    return session
