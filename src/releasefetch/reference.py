"""
Parsing of release-download URLs.

`parse_release_url` decomposes
``https://<host>/<owner>/<repo>/releases/download/<tag>/<filename>`` into a
ReleaseReference. Expected malformations come back as a MalformedReference
value rather than an exception; `require_reference` converts that value into
a MalformedReferenceError for callers that want to stop.
"""

from urllib.parse import quote, unquote, urlsplit

from releasefetch.constants import API_HOST_PREFIX, RELEASE_BY_TAG_PATH
from releasefetch.exceptions import MalformedReferenceError
from releasefetch.models import MalformedReference, ParseResult, ReleaseReference

EXPECTED_FORMAT = "https://<host>/<owner>/<repo>/releases/download/<tag>/<filename>"


def parse_release_url(url: str) -> ParseResult:
    """
    Decompose a release-download URL into its owner, repository, tag and filename.

    The filename is everything after the tag segment, so it may itself contain
    slashes. Percent-escapes in each segment are decoded.

    Returns:
        ReleaseReference on success, MalformedReference describing the problem otherwise.
    """
    if not isinstance(url, str) or not url.strip():
        return MalformedReference(url=str(url), reason="URL is empty")

    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
    except ValueError as e:
        return MalformedReference(url=url, reason=str(e))
    if parts.scheme != "https":
        return MalformedReference(
            url=url, reason=f"expected an https URL, got scheme '{parts.scheme}'"
        )
    if not hostname:
        return MalformedReference(url=url, reason="URL has no host")
    if parts.query or parts.fragment:
        return MalformedReference(
            url=url, reason="URL must not carry a query string or fragment"
        )

    segments = parts.path.split("/")[1:]
    if len(segments) < 6 or segments[2:4] != ["releases", "download"]:
        return MalformedReference(
            url=url, reason=f"path does not match {EXPECTED_FORMAT}"
        )

    owner, repository, _, _, tag = (unquote(s) for s in segments[:5])
    filename = unquote("/".join(segments[5:]))
    for label, value in (
        ("owner", owner),
        ("repository", repository),
        ("tag", tag),
        ("filename", filename),
    ):
        if not value:
            return MalformedReference(url=url, reason=f"{label} segment is empty")
    if filename.endswith("/"):
        return MalformedReference(url=url, reason="filename segment is empty")

    return ReleaseReference(
        owner=owner,
        repository=repository,
        tag=tag,
        filename=filename,
        host=hostname,
    )


def require_reference(url: str) -> ReleaseReference:
    """
    Parse `url`, raising MalformedReferenceError when it is not a release URL.
    """
    result = parse_release_url(url)
    if isinstance(result, MalformedReference):
        raise MalformedReferenceError(
            "Invalid release URL format",
            value=result.url,
            details=f"{result.reason}. Expected: {EXPECTED_FORMAT}",
        )
    return result


def api_base_url(host: str) -> str:
    """Return the REST API root for a release host (``https://api.<host>``)."""
    if host.startswith(API_HOST_PREFIX):
        return f"https://{host}"
    return f"https://{API_HOST_PREFIX}{host}"


def release_api_url(reference: ReleaseReference) -> str:
    """Return the API URL that describes the release `reference` belongs to."""
    path = RELEASE_BY_TAG_PATH.format(
        owner=quote(reference.owner, safe=""),
        repo=quote(reference.repository, safe=""),
        tag=quote(reference.tag, safe=""),
    )
    return f"{api_base_url(reference.host)}{path}"
