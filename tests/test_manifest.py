import textwrap

import pytest

from releasefetch.exceptions import ManifestError, UnsupportedPlatformError
from releasefetch.manifest import (
    current_platform_key,
    load_manifest,
    normalize_platform_key,
    parse_manifest,
)

pytestmark = pytest.mark.unit

DIGEST = "ab" * 32

MANIFEST_YAML = textwrap.dedent(
    f"""\
    tools:
      yq:
        version: "4.44.2"
        description: Portable YAML processor
        artifacts:
          darwin-arm64:
            url: https://github.com/mikefarah/yq/releases/download/v4.44.2/yq_darwin_arm64.tar.gz
            sha256: "{DIGEST}"
          Linux-x86_64:
            url: https://github.com/mikefarah/yq/releases/download/v4.44.2/yq_linux_amd64.tar.gz
            sha256: "{DIGEST.upper()}"
      stella:
        version: 0.9.1
        private: true
        artifacts:
          linux-amd64:
            url: https://github.com/acme/stella/releases/download/v0.9.1/stella_linux_amd64.tar.gz
            sha256: "{DIGEST}"
    """
)


@pytest.fixture
def manifest_file(tmp_path):
    path = tmp_path / "manifest.yaml"
    path.write_text(MANIFEST_YAML, encoding="utf-8")
    return path


class TestPlatformKeys:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("linux-amd64", "linux-amd64"),
            ("Linux-x86_64", "linux-amd64"),
            ("Darwin-aarch64", "darwin-arm64"),
            ("macos-arm64", "darwin-arm64"),
            ("windows-i686", "windows-386"),
            ("freebsd-riscv64", "freebsd-riscv64"),
            ("universal", "universal"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_platform_key(raw) == expected

    def test_current_platform_key(self, mocker):
        mocker.patch("releasefetch.manifest.platform.system", return_value="Linux")
        mocker.patch("releasefetch.manifest.platform.machine", return_value="aarch64")
        assert current_platform_key() == "linux-arm64"


class TestLoadManifest:
    def test_load(self, manifest_file):
        manifest = load_manifest(manifest_file)

        assert set(manifest.tools) == {"yq", "stella"}
        yq = manifest.get_tool("yq")
        assert yq.version == "4.44.2"
        assert yq.private is False
        assert yq.platforms == ["darwin-arm64", "linux-amd64"]

        artifact = yq.artifact_for("linux-x86_64")
        assert artifact.filename == "yq_linux_amd64.tar.gz"
        assert artifact.sha256 == DIGEST

        stella = manifest.get_tool("stella")
        assert stella.private is True
        assert stella.version == "0.9.1"

    def test_unknown_tool(self, manifest_file):
        manifest = load_manifest(manifest_file)
        with pytest.raises(ManifestError) as exc_info:
            manifest.get_tool("jq")
        assert "Known tools: stella, yq" in str(exc_info.value)

    def test_unsupported_platform(self, manifest_file):
        yq = load_manifest(manifest_file).get_tool("yq")
        with pytest.raises(UnsupportedPlatformError) as exc_info:
            yq.artifact_for("windows-amd64")
        assert exc_info.value.supported == ["darwin-arm64", "linux-amd64"]
        assert "windows-amd64" in str(exc_info.value)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError) as exc_info:
            load_manifest(tmp_path / "absent.yaml")
        assert exc_info.value.path.endswith("absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("tools: [unterminated", encoding="utf-8")
        with pytest.raises(ManifestError, match="not valid YAML"):
            load_manifest(path)


class TestParseManifest:
    def _tool(self, **artifact):
        return {"tools": {"t": {"artifacts": {"linux-amd64": artifact}}}}

    def test_document_must_be_mapping(self):
        with pytest.raises(ManifestError):
            parse_manifest(["not", "a", "mapping"])

    def test_tools_required(self):
        with pytest.raises(ManifestError, match="'tools'"):
            parse_manifest({})

    def test_url_required(self):
        with pytest.raises(ManifestError, match="has no url"):
            parse_manifest(self._tool(sha256=DIGEST))

    def test_invalid_sha256(self):
        with pytest.raises(ManifestError, match="invalid sha256"):
            parse_manifest(self._tool(url="https://example.com/t.tgz", sha256="abc"))

    def test_missing_sha256_warns(self, mocker):
        warning = mocker.patch("releasefetch.manifest.logger.warning")
        manifest = parse_manifest(self._tool(url="https://example.com/t.tgz"))
        assert manifest.get_tool("t").artifact_for("linux-amd64").sha256 is None
        warning.assert_called_once()

    def test_duplicate_platform_after_normalization(self):
        data = {
            "tools": {
                "t": {
                    "artifacts": {
                        "linux-amd64": {"url": "https://example.com/a"},
                        "Linux-x86_64": {"url": "https://example.com/b"},
                    }
                }
            }
        }
        with pytest.raises(ManifestError, match="more than once"):
            parse_manifest(data)

    def test_private_tool_needs_release_url(self):
        data = {
            "tools": {
                "t": {
                    "private": True,
                    "artifacts": {"linux-amd64": {"url": "https://example.com/t.tgz"}},
                }
            }
        }
        with pytest.raises(ManifestError, match="not a release URL"):
            parse_manifest(data)

    @pytest.mark.parametrize("value", ["false", "yes", 1, None])
    def test_private_must_be_boolean(self, value):
        data = {
            "tools": {
                "t": {
                    "private": value,
                    "artifacts": {"linux-amd64": {"url": "https://example.com/t.tgz"}},
                }
            }
        }
        with pytest.raises(ManifestError, match="non-boolean 'private'"):
            parse_manifest(data)
