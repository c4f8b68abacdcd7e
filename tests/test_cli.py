import textwrap
from pathlib import Path

import pytest

from releasefetch import cli, log_utils
from releasefetch.config import get_config_file, get_default_download_dir
from releasefetch.models import Credential, FetchResult

RELEASE_URL = (
    "https://github.com/acme/tool/releases/download/v1.2.0/tool_linux_amd64.tar.gz"
)
DIGEST = "cd" * 32


@pytest.fixture
def mock_logger(mocker):
    return mocker.patch.object(log_utils, "logger")


@pytest.fixture
def mock_download(mocker, tmp_path):
    return mocker.patch(
        "releasefetch.cli.download_release_asset",
        return_value=FetchResult(path=tmp_path / "tool.tar.gz", size=3),
    )


@pytest.fixture
def mock_public_download(mocker, tmp_path):
    return mocker.patch(
        "releasefetch.cli.download_public_asset",
        return_value=FetchResult(path=tmp_path / "yq.tar.gz", size=3),
    )


@pytest.fixture
def manifest_file(tmp_path):
    path = tmp_path / "tools.yaml"
    path.write_text(
        textwrap.dedent(
            f"""\
            tools:
              yq:
                version: "4.44.2"
                artifacts:
                  linux-amd64:
                    url: https://github.com/mikefarah/yq/releases/download/v4.44.2/yq_linux_amd64.tar.gz
                    sha256: "{DIGEST}"
                  darwin-arm64:
                    url: https://github.com/mikefarah/yq/releases/download/v4.44.2/yq_darwin_arm64.tar.gz
              stella:
                private: true
                artifacts:
                  linux-amd64:
                    url: {RELEASE_URL}
                    sha256: "{DIGEST}"
            """
        ),
        encoding="utf-8",
    )
    return path


def test_version(capsys, mocker):
    mocker.patch("releasefetch.cli.get_version", return_value="0.1.0")
    assert cli.run(["version"]) == 0
    assert capsys.readouterr().out == "releasefetch 0.1.0\n"


def test_no_command_prints_help(capsys):
    assert cli.run([]) == 2
    assert "usage:" in capsys.readouterr().out


def test_main_exits_with_status(mocker):
    mocker.patch("releasefetch.cli.run", return_value=130)
    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    assert exc_info.value.code == 130


class TestResolveCommand:
    def test_prints_download_url(
        self, mocker, monkeypatch, capsys, response_factory, release_factory
    ):
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        session = mocker.MagicMock()
        session.__enter__.return_value = session
        session.get.return_value = response_factory(
            json_data=release_factory("tool_linux_amd64.tar.gz")
        )
        mocker.patch("releasefetch.cli.create_session", return_value=session)

        assert cli.run(["resolve", RELEASE_URL]) == 0

        assert capsys.readouterr().out == "https://api.example/asset/42\n"
        headers = session.get.call_args.kwargs["headers"]
        assert headers["Authorization"] == "token secret"

    def test_missing_token(self, mocker, mock_logger):
        create_session = mocker.patch("releasefetch.cli.create_session")
        assert cli.run(["resolve", RELEASE_URL]) == 1
        create_session.assert_not_called()
        message = mock_logger.error.call_args.args[0]
        assert message.startswith("Download Failed: GITHUB_TOKEN environment variable")

    def test_malformed_url(self, monkeypatch, mock_logger):
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        assert cli.run(["resolve", "https://github.com/acme/tool"]) == 1
        mock_logger.error.assert_called_once()

    def test_unbalanced_brackets_in_host(self, monkeypatch, mock_logger):
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        url = "https://[github.com/acme/tool/releases/download/v1/tool.tgz"
        assert cli.run(["resolve", url]) == 1
        assert "Invalid release URL format" in mock_logger.error.call_args.args[0]


class TestFetchCommand:
    def test_defaults(self, monkeypatch, capsys, mock_download, tmp_path):
        monkeypatch.setenv("GITHUB_TOKEN", "secret")

        assert cli.run(["fetch", RELEASE_URL]) == 0

        args, kwargs = mock_download.call_args
        assert args[0] == RELEASE_URL
        assert args[1] == Credential("secret", source="GITHUB_TOKEN")
        assert args[2] == get_default_download_dir() / "tool_linux_amd64.tar.gz"
        assert kwargs == {
            "expected_sha256": None,
            "retries": 0,
            "skip_if_verified": True,
            "api_timeout": 10,
            "download_timeout": 30,
        }
        assert capsys.readouterr().out == f"{tmp_path / 'tool.tar.gz'}\n"

    def test_options(self, monkeypatch, mock_download, tmp_path):
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        output = tmp_path / "bin" / "tool.tgz"

        exit_code = cli.run(
            [
                "fetch",
                RELEASE_URL,
                "-o",
                str(output),
                "--sha256",
                DIGEST,
                "--retries",
                "2",
                "--force",
            ]
        )

        assert exit_code == 0
        args, kwargs = mock_download.call_args
        assert args[2] == output
        assert kwargs == {
            "expected_sha256": DIGEST,
            "retries": 2,
            "skip_if_verified": False,
            "api_timeout": 10,
            "download_timeout": 30,
        }

    def test_bad_digest_reported_before_missing_token(self, mock_download, mock_logger):
        assert cli.run(["fetch", RELEASE_URL, "--sha256", "xyz"]) == 1
        mock_download.assert_not_called()
        message = mock_logger.error.call_args.args[0]
        assert "64-character hexadecimal" in message
        assert "GITHUB_TOKEN" not in message

    def test_negative_retries(self, monkeypatch, mock_download, mock_logger):
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        assert cli.run(["fetch", RELEASE_URL, "--retries", "-1"]) == 1
        mock_download.assert_not_called()

    def test_token_env_var_from_config(self, monkeypatch, mock_download):
        config_file = get_config_file()
        config_file.write_text("TOKEN_ENV_VAR: ACME_TOKEN\nRETRIES: 4\nDOWNLOAD_TIMEOUT: 90\n")
        monkeypatch.setenv("ACME_TOKEN", "acme-secret")

        assert cli.run(["fetch", RELEASE_URL]) == 0

        args, kwargs = mock_download.call_args
        assert args[1].token == "acme-secret"
        assert kwargs["retries"] == 4
        assert kwargs["download_timeout"] == 90

    def test_explicit_config_file(self, monkeypatch, mock_download, tmp_path):
        config_file = tmp_path / "alt.yaml"
        config_file.write_text(f"DOWNLOAD_DIR: {tmp_path / 'dl'}\n")
        monkeypatch.setenv("GITHUB_TOKEN", "secret")

        assert cli.run(["--config", str(config_file), "fetch", RELEASE_URL]) == 0

        assert mock_download.call_args.args[2] == (
            tmp_path / "dl" / "tool_linux_amd64.tar.gz"
        )

    def test_interrupt(self, monkeypatch, mock_download, mock_logger):
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        mock_download.side_effect = KeyboardInterrupt
        assert cli.run(["fetch", RELEASE_URL]) == 130
        mock_logger.error.assert_called_once()


class TestInstallCommand:
    def test_public_tool(self, manifest_file, mock_public_download, mock_download):
        exit_code = cli.run(
            ["install", "yq", "--manifest", str(manifest_file), "--platform", "Linux-x86_64"]
        )

        assert exit_code == 0
        mock_download.assert_not_called()
        args, kwargs = mock_public_download.call_args
        assert args[0].endswith("/yq_linux_amd64.tar.gz")
        assert args[1] == get_default_download_dir() / "yq_linux_amd64.tar.gz"
        assert kwargs["expected_sha256"] == DIGEST

    def test_private_tool(
        self, monkeypatch, manifest_file, mock_public_download, mock_download
    ):
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        exit_code = cli.run(
            ["install", "stella", "--manifest", str(manifest_file), "--platform", "linux-amd64"]
        )

        assert exit_code == 0
        mock_public_download.assert_not_called()
        args, kwargs = mock_download.call_args
        assert args[0] == RELEASE_URL
        assert args[1].token == "secret"
        assert kwargs["expected_sha256"] == DIGEST

    def test_private_tool_without_token(
        self, manifest_file, mock_download, mock_logger
    ):
        exit_code = cli.run(
            ["install", "stella", "--manifest", str(manifest_file), "--platform", "linux-amd64"]
        )
        assert exit_code == 1
        mock_download.assert_not_called()

    def test_current_platform_is_default(
        self, mocker, manifest_file, mock_public_download
    ):
        mocker.patch("releasefetch.cli.current_platform_key", return_value="darwin-arm64")
        assert cli.run(["install", "yq", "--manifest", str(manifest_file)]) == 0
        assert mock_public_download.call_args.args[0].endswith("yq_darwin_arm64.tar.gz")

    def test_unsupported_platform(self, manifest_file, mock_public_download, mock_logger):
        exit_code = cli.run(
            ["install", "yq", "--manifest", str(manifest_file), "--platform", "windows-amd64"]
        )
        assert exit_code == 1
        assert "Supported platforms" in mock_logger.error.call_args.args[0]


def test_platforms_command(capsys, manifest_file):
    assert cli.run(["platforms", "yq", "--manifest", str(manifest_file)]) == 0
    assert capsys.readouterr().out.splitlines() == ["darwin-arm64", "linux-amd64"]


def test_log_options(mocker, monkeypatch, mock_download, tmp_path):
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    set_level = mocker.patch("releasefetch.cli.log_utils.set_log_level")
    add_file = mocker.patch("releasefetch.cli.log_utils.add_file_logging")

    exit_code = cli.run(
        [
            "--log-level",
            "DEBUG",
            "--log-file-dir",
            str(tmp_path / "logs"),
            "fetch",
            RELEASE_URL,
        ]
    )

    assert exit_code == 0
    set_level.assert_called_once_with("DEBUG")
    add_file.assert_called_once_with(Path(tmp_path / "logs"), "DEBUG")
