"""
Core data structures for releasefetch.

These are the values that flow between the resolver, the fetcher and the
operation that combines them.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from releasefetch.constants import DEFAULT_RELEASE_HOST

Pathish = Union[str, Path]


@dataclass(frozen=True)
class ReleaseReference:
    """Identifies one asset of one tagged release on a release host."""

    owner: str
    """Repository owner (user or organization)"""

    repository: str
    """Repository name"""

    tag: str
    """Release tag (e.g., 'v1.2.0')"""

    filename: str
    """Asset filename within the release"""

    host: str = DEFAULT_RELEASE_HOST
    """Host the reference was parsed from"""

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repository}"

    def __str__(self) -> str:
        return f"{self.slug}@{self.tag}/{self.filename}"


@dataclass(frozen=True)
class MalformedReference:
    """A release URL that could not be decomposed, and why."""

    url: str
    reason: str


ParseResult = Union[ReleaseReference, MalformedReference]


@dataclass(frozen=True)
class Credential:
    """An opaque bearer token. Its value never appears in repr() or logs."""

    token: str = field(repr=False)

    source: str = "explicit"
    """Where the token came from (an environment variable name or 'explicit')"""

    def __bool__(self) -> bool:
        return bool(self.token and self.token.strip())

    @property
    def authorization_header(self) -> str:
        return f"token {self.token.strip()}"


@dataclass(frozen=True)
class AssetDescriptor:
    """Represents a downloadable asset returned by the release API."""

    name: str
    """The filename of the asset"""

    download_url: str
    """API URL that serves the raw asset bytes"""

    size: Optional[int] = None
    """File size in bytes, when the API reports it"""

    content_type: Optional[str] = None
    """MIME type of the asset"""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "AssetDescriptor":
        """
        Build a descriptor from one element of the API's `assets` array.

        Raises:
            KeyError: If the element lacks `name` or `url`.
        """
        size = data.get("size")
        return cls(
            name=data["name"],
            download_url=data["url"],
            size=size if isinstance(size, int) else None,
            content_type=data.get("content_type"),
        )


@dataclass
class FetchResult:
    """Result of a fetch: the file that now exists at the destination."""

    path: Path
    """Destination path of the written file"""

    size: int
    """Number of bytes written"""

    sha256: Optional[str] = None
    """SHA-256 hex digest of the written file"""

    verified: bool = False
    """Whether the digest was checked against an expected value"""

    skipped: bool = False
    """Whether an existing verified file was reused instead of downloading"""

    download_url: Optional[str] = None
    """URL the bytes were fetched from"""
