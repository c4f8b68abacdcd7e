"""
HTTP session construction for talking to the release host.
"""

import importlib.metadata
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from releasefetch.constants import APP_NAME, RETRY_BACKOFF_SECONDS

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE: Optional[str] = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `releasefetch/{version}`, where `{version}` is the installed
        package version or `unknown` if it cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def create_session(transport_retries: int = 0) -> requests.Session:
    """
    Create a requests.Session carrying the releasefetch User-Agent.

    Parameters:
        transport_retries (int): Connection-level retries applied by urllib3 for
            idempotent requests. Zero (the default) disables them; retrying is an
            explicit caller choice.

    Returns:
        requests.Session: A session ready for API and asset requests.
    """
    session = requests.Session()
    session.headers["User-Agent"] = get_user_agent()
    if transport_retries > 0:
        retry_strategy: Retry = Retry(
            total=transport_retries,
            connect=transport_retries,
            read=transport_retries,
            status=transport_retries,
            backoff_factor=RETRY_BACKOFF_SECONDS,
            status_forcelist=[408, 429, 500, 502, 503, 504],
            allowed_methods=frozenset({"GET", "HEAD"}),
            raise_on_status=False,
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
    return session
