"""Verified downloads of release assets, including from private repositories."""

from releasefetch.exceptions import (
    AssetNotFoundError,
    AuthenticationError,
    IntegrityCheckError,
    MalformedReferenceError,
    MissingCredentialError,
    ReleaseFetchError,
    ResolutionError,
    TransferError,
)
from releasefetch.fetcher import AssetFetcher, fetch
from releasefetch.models import (
    AssetDescriptor,
    Credential,
    FetchResult,
    MalformedReference,
    ReleaseReference,
)
from releasefetch.operation import FetchOperation, FetchState, download_release_asset
from releasefetch.reference import parse_release_url
from releasefetch.resolver import ReleaseResolver, resolve

__all__ = [
    "AssetDescriptor",
    "AssetFetcher",
    "AssetNotFoundError",
    "AuthenticationError",
    "Credential",
    "FetchOperation",
    "FetchResult",
    "FetchState",
    "IntegrityCheckError",
    "MalformedReference",
    "MalformedReferenceError",
    "MissingCredentialError",
    "ReleaseFetchError",
    "ReleaseReference",
    "ResolutionError",
    "TransferError",
    "download_release_asset",
    "fetch",
    "parse_release_url",
    "resolve",
]
