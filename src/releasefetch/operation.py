"""
The combined resolve-then-fetch operation.

FetchOperation walks Start -> Resolving -> Resolved -> Fetching -> Verifying
-> Done, moving to Failed from any state. Each attempt starts again from
Start; nothing is re-entered within an attempt.
"""

import time
from enum import Enum
from pathlib import Path
from typing import List, Optional

import requests

from releasefetch.checksums import calculate_sha256, normalize_sha256
from releasefetch.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRIES,
    GITHUB_API_TIMEOUT,
    RETRY_BACKOFF_SECONDS,
)
from releasefetch.credentials import require_credential
from releasefetch.exceptions import ReleaseFetchError
from releasefetch.fetcher import AssetFetcher
from releasefetch.log_utils import logger
from releasefetch.models import (
    AssetDescriptor,
    Credential,
    FetchResult,
    Pathish,
    ReleaseReference,
)
from releasefetch.reference import require_reference
from releasefetch.resolver import ReleaseResolver
from releasefetch.session import create_session


class FetchState(Enum):
    """States of a single resolve-and-fetch attempt."""

    START = "start"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FETCHING = "fetching"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    FetchState.START: {FetchState.RESOLVING, FetchState.DONE},
    FetchState.RESOLVING: {FetchState.RESOLVED},
    FetchState.RESOLVED: {FetchState.FETCHING},
    FetchState.FETCHING: {FetchState.VERIFYING},
    FetchState.VERIFYING: {FetchState.DONE},
    FetchState.DONE: set(),
    FetchState.FAILED: set(),
}


class FetchOperation:
    """
    Resolve a release URL and fetch the asset it names, with optional retries.

    Retrying is opt-in: with `retries` > 0, errors marked `is_retryable`
    restart the operation from Start after a linear backoff. Other errors
    fail immediately.
    """

    def __init__(
        self,
        release_url: str,
        credential: Credential,
        destination: Pathish,
        expected_sha256: Optional[str] = None,
        retries: int = DEFAULT_RETRIES,
        skip_if_verified: bool = True,
        session: Optional[requests.Session] = None,
        api_timeout: float = GITHUB_API_TIMEOUT,
        download_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.release_url = release_url
        self.credential = credential
        self.destination = Path(destination)
        self.expected_sha256 = expected_sha256
        self.retries = max(0, retries)
        self.skip_if_verified = skip_if_verified
        self._session = session
        self.api_timeout = api_timeout
        self.download_timeout = download_timeout

        self.state = FetchState.START
        self.history: List[FetchState] = [FetchState.START]
        self.failure: Optional[ReleaseFetchError] = None
        self.reference: Optional[ReleaseReference] = None
        self.descriptor: Optional[AssetDescriptor] = None
        self.attempts = 0

    def _transition(self, new_state: FetchState) -> None:
        if new_state is not FetchState.FAILED and new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid state transition {self.state.value} -> {new_state.value}"
            )
        logger.debug(f"{self.release_url}: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def _reset(self) -> None:
        self.state = FetchState.START
        self.history.append(FetchState.START)
        self.failure = None
        self.descriptor = None

    def run(self) -> FetchResult:
        """
        Execute the operation.

        Input is validated before the first request: a malformed URL, a missing
        credential or an invalid expected digest fail without touching the network.

        Returns:
            FetchResult: Details of the file now at the destination.

        Raises:
            ReleaseFetchError: The error of the final failed attempt.
        """
        try:
            self.reference = require_reference(self.release_url)
            self.expected_sha256 = normalize_sha256(self.expected_sha256)
            require_credential(self.credential)
        except ReleaseFetchError as e:
            self._fail(e)
            raise

        if self._already_verified():
            logger.info(
                f"Skipped: {self.destination.name} (already present & verified)"
            )
            self._transition(FetchState.DONE)
            return FetchResult(
                path=self.destination,
                size=self.destination.stat().st_size,
                sha256=self.expected_sha256,
                verified=True,
                skipped=True,
            )

        session = self._session or create_session()
        try:
            while True:
                self.attempts += 1
                try:
                    return self._attempt(session)
                except ReleaseFetchError as e:
                    self._fail(e)
                    if not e.is_retryable or self.attempts > self.retries:
                        raise
                    delay = RETRY_BACKOFF_SECONDS * self.attempts
                    logger.warning(
                        f"Attempt {self.attempts} failed ({e}); retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    self._reset()
                except BaseException as e:
                    self._fail(e)
                    raise
        finally:
            if self._session is None:
                session.close()

    def _attempt(self, session: requests.Session) -> FetchResult:
        assert self.reference is not None
        resolver = ReleaseResolver(session=session, timeout=self.api_timeout)
        fetcher = AssetFetcher(session=session, timeout=self.download_timeout)

        self._transition(FetchState.RESOLVING)
        logger.info(
            f"Downloading {self.reference.filename} from private repository {self.reference.slug}..."
        )
        self.descriptor = resolver.resolve_reference(self.reference, self.credential)
        self._transition(FetchState.RESOLVED)

        self._transition(FetchState.FETCHING)
        result = fetcher.fetch(
            self.descriptor,
            self.credential,
            self.destination,
            self.expected_sha256,
            on_verifying=lambda: self._transition(FetchState.VERIFYING),
        )
        self._transition(FetchState.DONE)
        return result

    def _already_verified(self) -> bool:
        if not (self.skip_if_verified and self.expected_sha256):
            return False
        if not self.destination.is_file():
            return False
        return calculate_sha256(self.destination) == self.expected_sha256

    def _fail(self, error: BaseException) -> None:
        if isinstance(error, ReleaseFetchError):
            self.failure = error
        self.state = FetchState.FAILED
        self.history.append(FetchState.FAILED)


def download_release_asset(
    release_url: str,
    credential: Credential,
    destination: Pathish,
    expected_sha256: Optional[str] = None,
    retries: int = DEFAULT_RETRIES,
    skip_if_verified: bool = True,
    session: Optional[requests.Session] = None,
    api_timeout: float = GITHUB_API_TIMEOUT,
    download_timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> FetchResult:
    """Resolve `release_url` and fetch its asset to `destination`; see FetchOperation."""
    return FetchOperation(
        release_url,
        credential,
        destination,
        expected_sha256=expected_sha256,
        retries=retries,
        skip_if_verified=skip_if_verified,
        session=session,
        api_timeout=api_timeout,
        download_timeout=download_timeout,
    ).run()


def download_public_asset(
    url: str,
    destination: Pathish,
    expected_sha256: Optional[str] = None,
    retries: int = DEFAULT_RETRIES,
    skip_if_verified: bool = True,
    credential: Optional[Credential] = None,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> FetchResult:
    """
    Fetch a publicly downloadable URL to `destination` without API resolution.

    Follows the same skip, verification, cleanup and retry rules as
    FetchOperation; a credential is attached only when one is given.
    """
    dest_path = Path(destination)
    expected = normalize_sha256(expected_sha256)
    if (
        skip_if_verified
        and expected
        and dest_path.is_file()
        and calculate_sha256(dest_path) == expected
    ):
        logger.info(f"Skipped: {dest_path.name} (already present & verified)")
        return FetchResult(
            path=dest_path,
            size=dest_path.stat().st_size,
            sha256=expected,
            verified=True,
            skipped=True,
        )

    own_session = session is None
    active_session = session or create_session()
    fetcher = AssetFetcher(session=active_session, timeout=timeout)
    attempts = 0
    try:
        while True:
            attempts += 1
            try:
                return fetcher.fetch_url(url, dest_path, expected, credential)
            except ReleaseFetchError as e:
                if not e.is_retryable or attempts > retries:
                    raise
                delay = RETRY_BACKOFF_SECONDS * attempts
                logger.warning(
                    f"Attempt {attempts} failed ({e}); retrying in {delay:.1f}s"
                )
                time.sleep(delay)
    finally:
        if own_session:
            active_session.close()
