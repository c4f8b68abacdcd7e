"""
Authenticated, verified asset download.

The fetcher streams an asset to a temporary file next to the destination,
checks its digest, and only then moves it into place. Any failure, including
an interrupt, leaves nothing at the destination path.
"""

import os
import time
from pathlib import Path
from typing import Callable, Optional

import requests

from releasefetch.checksums import calculate_sha256, normalize_sha256
from releasefetch.constants import (
    ASSET_ACCEPT,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
)
from releasefetch.credentials import require_credential
from releasefetch.exceptions import (
    AuthenticationError,
    DestinationError,
    IntegrityCheckError,
    TransferError,
)
from releasefetch.log_utils import logger
from releasefetch.models import AssetDescriptor, Credential, FetchResult, Pathish
from releasefetch.session import create_session


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Error removing {path}: {e}")


def _format_size(num_bytes: int) -> str:
    size_mb = num_bytes / (1024 * 1024)
    if size_mb >= 1.0:
        return f"{size_mb:.1f} MB"
    return f"{num_bytes} bytes"


class AssetFetcher:
    """Downloads assets with a bearer credential and verifies their digest."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.session = session or create_session()
        self.timeout = timeout
        self.chunk_size = chunk_size

    def fetch(
        self,
        descriptor: AssetDescriptor,
        credential: Optional[Credential],
        destination: Pathish,
        expected_sha256: Optional[str] = None,
        on_verifying: Optional[Callable[[], None]] = None,
    ) -> FetchResult:
        """
        Download `descriptor` to `destination` and verify it.

        Parameters:
            descriptor (AssetDescriptor): Asset to download.
            credential (Optional[Credential]): Bearer credential. Required for
                private assets; pass None only via fetch_url() for public ones.
            destination (Pathish): Final path of the downloaded file.
            expected_sha256 (Optional[str]): Expected SHA-256 hex digest.
            on_verifying (Optional[Callable[[], None]]): Called once the bytes are
                on disk, before the digest is computed.

        Returns:
            FetchResult: Details of the written file.

        Raises:
            InvalidChecksumError: If `expected_sha256` is not a valid digest.
            MissingCredentialError: If `credential` is absent or blank.
            AuthenticationError: If the host answers 401 or 403.
            TransferError: If the transfer fails or is cut short.
            IntegrityCheckError: If the written file does not match `expected_sha256`.
            DestinationError: If the destination cannot be written.
        """
        expected = normalize_sha256(expected_sha256)
        credential = require_credential(credential)
        headers = {
            "Accept": ASSET_ACCEPT,
            "Authorization": credential.authorization_header,
        }
        return self._download(
            descriptor.download_url, headers, destination, expected, on_verifying
        )

    def fetch_url(
        self,
        url: str,
        destination: Pathish,
        expected_sha256: Optional[str] = None,
        credential: Optional[Credential] = None,
    ) -> FetchResult:
        """
        Download a public URL to `destination` and verify it.

        A credential is attached when given but is not required.
        """
        expected = normalize_sha256(expected_sha256)
        headers = {"Accept": ASSET_ACCEPT}
        if credential:
            headers["Authorization"] = credential.authorization_header
        return self._download(url, headers, destination, expected)

    def _download(
        self,
        url: str,
        headers: dict,
        destination: Pathish,
        expected: Optional[str],
        on_verifying: Optional[Callable[[], None]] = None,
    ) -> FetchResult:
        dest_path = Path(destination)
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DestinationError(
                f"Cannot create directory for {dest_path}",
                url=url,
                path=str(dest_path),
                details=str(e),
            ) from e
        if dest_path.is_dir():
            raise DestinationError(
                f"Destination {dest_path} is a directory",
                url=url,
                path=str(dest_path),
            )

        temp_path = dest_path.with_name(
            f"{dest_path.name}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
        )
        completed = False
        try:
            downloaded_bytes = self._stream_to(url, headers, temp_path, dest_path)
            if on_verifying is not None:
                on_verifying()
            actual = calculate_sha256(temp_path)
            if expected is not None:
                logger.debug(f"Verifying {dest_path.name} against expected digest")
                if actual != expected:
                    raise IntegrityCheckError(
                        str(dest_path), expected=expected, actual=actual, url=url
                    )
            try:
                os.replace(temp_path, dest_path)
            except OSError as e:
                raise DestinationError(
                    f"Cannot move download into place at {dest_path}",
                    url=url,
                    path=str(dest_path),
                    details=str(e),
                ) from e
            completed = True
        finally:
            if not completed:
                _remove_quietly(temp_path)
                if dest_path.exists():
                    logger.warning(f"Removing stale file at {dest_path}")
                    _remove_quietly(dest_path)

        logger.info(f"Downloaded: {dest_path.name} ({_format_size(downloaded_bytes)})")
        return FetchResult(
            path=dest_path,
            size=downloaded_bytes,
            sha256=actual,
            verified=expected is not None,
            download_url=url,
        )

    def _stream_to(
        self, url: str, headers: dict, temp_path: Path, dest_path: Path
    ) -> int:
        logger.debug(f"Attempting to download file from URL: {url} to temp path: {temp_path}")
        start_time = time.time()
        try:
            response = self.session.get(
                url,
                headers=headers,
                stream=True,
                allow_redirects=True,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransferError(
                f"Failed to download {dest_path.name}", url=url, details=str(e)
            ) from e

        try:
            logger.debug(
                f"Received HTTP response status code: {response.status_code} for URL: {url}"
            )
            status = response.status_code
            if status in (401, 403):
                raise AuthenticationError(
                    f"Download of {dest_path.name} was refused (HTTP {status})",
                    endpoint=url,
                    status_code=status,
                    details="Check that the token is valid and has access to the repository",
                )
            if status >= 400:
                raise TransferError(
                    f"Download of {dest_path.name} failed with HTTP {status}",
                    url=url,
                    status_code=status,
                    is_retryable=status >= 500 or status == 429,
                )

            downloaded_bytes = 0
            try:
                with open(temp_path, "wb") as file:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            file.write(chunk)
                            downloaded_bytes += len(chunk)
            except requests.RequestException as e:
                raise TransferError(
                    f"Transfer of {dest_path.name} was interrupted",
                    url=url,
                    path=str(dest_path),
                    details=str(e),
                ) from e
            except OSError as e:
                raise DestinationError(
                    f"Cannot write {dest_path}",
                    url=url,
                    path=str(dest_path),
                    details=str(e),
                ) from e
        finally:
            response.close()

        expected_length = _content_length(response)
        if expected_length is not None and expected_length != downloaded_bytes:
            raise TransferError(
                f"Transfer of {dest_path.name} was truncated",
                url=url,
                path=str(dest_path),
                details=f"received {downloaded_bytes} of {expected_length} bytes",
            )

        logger.debug(
            "Download elapsed time: %.2fs for %s", time.time() - start_time, url
        )
        return downloaded_bytes


def _content_length(response: requests.Response) -> Optional[int]:
    # Compressed bodies are decoded by iter_content, so their length differs.
    if response.headers.get("Content-Encoding"):
        return None
    try:
        return int(response.headers["Content-Length"])
    except (KeyError, TypeError, ValueError):
        return None


def fetch(
    descriptor: AssetDescriptor,
    credential: Credential,
    destination: Pathish,
    expected_sha256: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> FetchResult:
    """Fetch `descriptor` with a one-off AssetFetcher."""
    return AssetFetcher(session=session).fetch(
        descriptor, credential, destination, expected_sha256
    )
