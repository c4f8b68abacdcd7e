"""
Artifact resolution against the release host's REST API.

Given a release-download URL, the resolver asks the API for the release that
URL names and picks out the asset with the requested filename. The descriptor
it returns points at the API asset endpoint, which serves private assets when
called with a bearer credential.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from releasefetch.constants import (
    GITHUB_API_ACCEPT,
    GITHUB_API_TIMEOUT,
    GITHUB_API_VERSION,
)
from releasefetch.credentials import require_credential
from releasefetch.exceptions import (
    AssetNotFoundError,
    AuthenticationError,
    ResolutionError,
)
from releasefetch.log_utils import logger
from releasefetch.models import AssetDescriptor, Credential, ReleaseReference
from releasefetch.reference import release_api_url, require_reference
from releasefetch.session import create_session


def _parse_rate_limit_header(header_value: Any) -> Optional[int]:
    try:
        return int(str(header_value).strip())
    except (TypeError, ValueError):
        return None


def _format_reset_time(reset_header: Any) -> str:
    try:
        reset = datetime.fromtimestamp(int(reset_header), timezone.utc)
    except (TypeError, ValueError, OSError):
        return "unknown"
    return reset.strftime("%Y-%m-%d %H:%M:%S UTC")


def _rate_limit_error(response: requests.Response, api_url: str) -> ResolutionError:
    reset_time = _format_reset_time(response.headers.get("X-RateLimit-Reset"))
    details = f"Resets at {reset_time}"
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        details += f"; retry after {retry_after}s"
    return ResolutionError(
        "GitHub API rate limit exceeded",
        endpoint=api_url,
        status_code=response.status_code,
        details=details,
        is_retryable=True,
    )


class ReleaseResolver:
    """
    Resolves a release-download URL to the API descriptor of one asset.

    Usage:
        resolver = ReleaseResolver()
        descriptor = resolver.resolve(
            "https://github.com/acme/tool/releases/download/v1.2.0/tool.tar.gz",
            credential,
        )
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = GITHUB_API_TIMEOUT,
    ):
        """
        Parameters:
            session (Optional[requests.Session]): Session used for API calls; a new one is created when omitted.
            timeout (float): Seconds to wait for the API before giving up.
        """
        self.session = session or create_session()
        self.timeout = timeout

    def resolve(self, release_url: str, credential: Credential) -> AssetDescriptor:
        """
        Resolve `release_url` to the descriptor of the asset it names.

        The URL is validated and the credential checked before any request is made.

        Raises:
            MalformedReferenceError: If `release_url` is not a release-download URL.
            MissingCredentialError: If `credential` is absent or blank.
            ResolutionError: If the release information cannot be retrieved or parsed.
            AuthenticationError: If the API rejects the credential.
            AssetNotFoundError: If the release has no asset with the requested name.
        """
        reference = require_reference(release_url)
        return self.resolve_reference(reference, credential)

    def resolve_reference(
        self, reference: ReleaseReference, credential: Credential
    ) -> AssetDescriptor:
        """Resolve an already-parsed reference; see resolve()."""
        credential = require_credential(credential)
        release = self.fetch_release(reference, credential)
        return self.select_asset(release, reference)

    def fetch_release(
        self, reference: ReleaseReference, credential: Credential
    ) -> Dict[str, Any]:
        """
        Fetch the release document for `reference` from the API.

        Returns:
            Dict[str, Any]: The decoded JSON release object.
        """
        api_url = release_api_url(reference)
        headers = {
            "Accept": GITHUB_API_ACCEPT,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "Authorization": credential.authorization_header,
        }

        logger.debug(f"Making GitHub API request: {api_url}")
        try:
            response = self.session.get(api_url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ResolutionError(
                f"Failed to fetch release information for {reference.slug}",
                endpoint=api_url,
                details=str(e),
                is_retryable=True,
            ) from e

        try:
            self._check_status(response, api_url, reference)

            try:
                release = response.json()
            except ValueError as e:
                raise ResolutionError(
                    "Release API returned invalid JSON",
                    endpoint=api_url,
                    status_code=response.status_code,
                    details=str(e),
                ) from e
        finally:
            response.close()

        if not isinstance(release, dict):
            raise ResolutionError(
                "Release API returned an unexpected document",
                endpoint=api_url,
                details=f"expected an object, got {type(release).__name__}",
            )
        return release

    def _check_status(
        self,
        response: requests.Response,
        api_url: str,
        reference: ReleaseReference,
    ) -> None:
        status = response.status_code
        if status < 400:
            return

        if status == 401:
            raise AuthenticationError(
                "GitHub rejected the credential",
                endpoint=api_url,
                status_code=status,
                details="Check that the token is valid and has not expired",
            )
        if status == 429:
            raise _rate_limit_error(response, api_url)
        if status == 403:
            remaining = _parse_rate_limit_header(
                response.headers.get("X-RateLimit-Remaining")
            )
            if remaining == 0:
                raise _rate_limit_error(response, api_url)
            raise AuthenticationError(
                f"GitHub API access forbidden for {reference.slug}",
                endpoint=api_url,
                status_code=status,
                details="The token needs 'repo' scope to read private releases",
            )
        if status == 404:
            raise ResolutionError(
                f"Release '{reference.tag}' not found in {reference.slug}",
                endpoint=api_url,
                status_code=status,
                details="The release may not exist or the token cannot see the repository",
            )
        raise ResolutionError(
            f"Release API request failed with HTTP {status}",
            endpoint=api_url,
            status_code=status,
            is_retryable=status >= 500,
        )

    def select_asset(
        self, release: Dict[str, Any], reference: ReleaseReference
    ) -> AssetDescriptor:
        """
        Pick the asset named `reference.filename` out of a release document.

        Raises:
            ResolutionError: If the document has no usable `assets` array.
            AssetNotFoundError: If no asset carries the requested name.
        """
        assets = release.get("assets")
        if not isinstance(assets, list):
            raise ResolutionError(
                "Release API response has no asset list",
                endpoint=release_api_url(reference),
            )

        names: List[str] = []
        for entry in assets:
            if not isinstance(entry, dict):
                logger.warning(
                    "Skipping malformed asset entry: expected dict, got %s",
                    type(entry).__name__,
                )
                continue
            name = entry.get("name")
            if isinstance(name, str):
                names.append(name)
            if name != reference.filename:
                continue
            try:
                descriptor = AssetDescriptor.from_api(entry)
            except KeyError as e:
                raise ResolutionError(
                    f"Asset '{reference.filename}' has no download URL",
                    endpoint=release_api_url(reference),
                    details=f"missing field {e}",
                ) from e
            logger.debug(
                f"Resolved {reference} to {descriptor.download_url}"
            )
            return descriptor

        raise AssetNotFoundError(
            reference.filename,
            reference.tag,
            available=names,
            endpoint=release_api_url(reference),
        )


def resolve(
    release_url: str,
    credential: Credential,
    session: Optional[requests.Session] = None,
) -> AssetDescriptor:
    """Resolve `release_url` with a one-off ReleaseResolver."""
    return ReleaseResolver(session=session).resolve(release_url, credential)
