"""
Release manifests.

A manifest is a static YAML table mapping each tool and platform to the
release URL and SHA-256 digest of its prebuilt binary:

    tools:
      yq:
        version: "4.44.2"
        private: false
        artifacts:
          linux-amd64:
            url: https://github.com/mikefarah/yq/releases/download/v4.44.2/yq_linux_amd64.tar.gz
            sha256: 0123...

Tools marked `private: true` are resolved through the release API and fetched
with a bearer credential; the rest are fetched from their URL directly.
"""

import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from releasefetch.checksums import is_valid_sha256
from releasefetch.constants import ARCH_ALIASES, OS_ALIASES
from releasefetch.exceptions import ManifestError, UnsupportedPlatformError
from releasefetch.log_utils import logger
from releasefetch.models import MalformedReference, Pathish
from releasefetch.reference import parse_release_url


@dataclass(frozen=True)
class Artifact:
    """One downloadable binary for one platform."""

    platform: str
    url: str
    sha256: Optional[str] = None

    @property
    def filename(self) -> str:
        return self.url.rstrip("/").rsplit("/", 1)[-1]


@dataclass
class ToolEntry:
    """A tool and its per-platform artifacts."""

    name: str
    version: Optional[str] = None
    private: bool = False
    description: Optional[str] = None
    artifacts: Dict[str, Artifact] = field(default_factory=dict)

    @property
    def platforms(self) -> List[str]:
        return sorted(self.artifacts)

    def artifact_for(self, platform_key: str) -> Artifact:
        """
        Return the artifact for `platform_key`.

        Raises:
            UnsupportedPlatformError: If the tool ships nothing for that platform.
        """
        key = normalize_platform_key(platform_key)
        try:
            return self.artifacts[key]
        except KeyError:
            raise UnsupportedPlatformError(self.name, key, self.platforms) from None


@dataclass
class Manifest:
    """All tools described by one manifest file."""

    tools: Dict[str, ToolEntry] = field(default_factory=dict)
    source: Optional[str] = None

    def get_tool(self, name: str) -> ToolEntry:
        try:
            return self.tools[name]
        except KeyError:
            known = ", ".join(sorted(self.tools)) or "none"
            raise ManifestError(
                f"Tool '{name}' is not in the manifest",
                path=self.source,
                details=f"Known tools: {known}",
            ) from None


def normalize_platform_key(platform_key: str) -> str:
    """
    Normalize an ``<os>-<arch>`` key, e.g. ``Darwin-x86_64`` -> ``darwin-amd64``.

    Unknown operating systems and architectures are passed through lowercased.
    """
    os_name, sep, arch = platform_key.strip().lower().partition("-")
    if not sep:
        return os_name
    return f"{OS_ALIASES.get(os_name, os_name)}-{ARCH_ALIASES.get(arch, arch)}"


def current_platform_key() -> str:
    """Return the platform key of the running interpreter's host."""
    return normalize_platform_key(f"{platform.system()}-{platform.machine()}")


def _require_mapping(value: Any, what: str, path: Optional[str]) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ManifestError(
            f"{what} must be a mapping",
            path=path,
            details=f"got {type(value).__name__}",
        )
    return value


def _parse_artifact(
    tool: str, platform_key: str, raw: Any, private: bool, path: Optional[str]
) -> Artifact:
    data = _require_mapping(raw, f"Artifact {tool}/{platform_key}", path)
    url = data.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ManifestError(f"Artifact {tool}/{platform_key} has no url", path=path)
    url = url.strip()

    sha256 = data.get("sha256")
    if sha256 is not None:
        sha256 = str(sha256).strip()
        if not is_valid_sha256(sha256):
            raise ManifestError(
                f"Artifact {tool}/{platform_key} has an invalid sha256",
                path=path,
                details="expected a 64-character hex digest",
            )
        sha256 = sha256.lower()
    else:
        logger.warning(f"Artifact {tool}/{platform_key} has no sha256; it will not be verified")

    if private:
        reference = parse_release_url(url)
        if isinstance(reference, MalformedReference):
            raise ManifestError(
                f"Artifact {tool}/{platform_key} is private but its url is not a release URL",
                path=path,
                details=reference.reason,
            )

    return Artifact(platform=platform_key, url=url, sha256=sha256)


def parse_manifest(data: Any, source: Optional[str] = None) -> Manifest:
    """
    Build a Manifest from decoded YAML data.

    Raises:
        ManifestError: If the document does not have the expected structure.
    """
    document = _require_mapping(data, "Manifest", source)
    tools_raw = _require_mapping(document.get("tools"), "'tools'", source)

    manifest = Manifest(source=source)
    for name, raw_tool in tools_raw.items():
        tool_data = _require_mapping(raw_tool, f"Tool '{name}'", source)
        private = tool_data.get("private", False)
        if not isinstance(private, bool):
            raise ManifestError(
                f"Tool '{name}' has a non-boolean 'private' value",
                path=source,
                details=f"got {private!r}; use true or false",
            )
        artifacts_raw = _require_mapping(
            tool_data.get("artifacts"), f"Artifacts of '{name}'", source
        )
        artifacts: Dict[str, Artifact] = {}
        for raw_key, raw_artifact in artifacts_raw.items():
            key = normalize_platform_key(str(raw_key))
            if key in artifacts:
                raise ManifestError(
                    f"Tool '{name}' lists platform '{key}' more than once", path=source
                )
            artifacts[key] = _parse_artifact(name, key, raw_artifact, private, source)

        version = tool_data.get("version")
        manifest.tools[str(name)] = ToolEntry(
            name=str(name),
            version=str(version) if version is not None else None,
            private=private,
            description=tool_data.get("description"),
            artifacts=artifacts,
        )

    return manifest


def load_manifest(path: Pathish) -> Manifest:
    """
    Read and parse the YAML manifest at `path`.

    Raises:
        ManifestError: If the file cannot be read, is not valid YAML, or is malformed.
    """
    manifest_path = Path(path)
    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ManifestError(
            f"Cannot read manifest {manifest_path}", path=str(manifest_path), details=str(e)
        ) from e
    except yaml.YAMLError as e:
        raise ManifestError(
            f"Manifest {manifest_path} is not valid YAML",
            path=str(manifest_path),
            details=str(e),
        ) from e

    manifest = parse_manifest(data, source=str(manifest_path))
    logger.debug(f"Loaded {len(manifest.tools)} tools from {manifest_path}")
    return manifest
