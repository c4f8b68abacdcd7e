import time
from unittest.mock import MagicMock

import platformdirs
import pytest
import requests

from releasefetch.models import Credential

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used to group tests."""
    config.addinivalue_line("markers", "unit: fast, isolated unit test")
    config.addinivalue_line(
        "markers", "integration: test that exercises several modules together"
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.head = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs at a temporary directory tree and clear the credential
    and log-level environment variables so tests never see the developer's.
    """
    base = tmp_path_factory.mktemp("releasefetch")
    cache_dir = base / "cache"
    config_dir = base / "config"
    log_dir = base / "log"
    for path in (cache_dir, config_dir, log_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_log_dir", lambda *_args, **_kwargs: str(log_dir)
    )
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("RELEASEFETCH_LOG_LEVEL", raising=False)


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """Make time.sleep instant so retry backoff does not slow the suite."""
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


@pytest.fixture
def credential():
    return Credential(token="test-token")  # noqa: S106


def make_response(
    status_code=200,
    json_data=None,
    chunks=None,
    headers=None,
    json_error=None,
):
    """
    Build a MagicMock standing in for a requests.Response.

    Parameters:
        status_code: HTTP status to report.
        json_data: Value returned by response.json().
        chunks: Either a list of byte chunks or a callable returning an
            iterator, used for response.iter_content().
        headers: Response headers.
        json_error: Exception raised by response.json() instead of returning.
    """
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    if callable(chunks):
        response.iter_content.side_effect = lambda *args, **kwargs: chunks()
    else:
        response.iter_content.return_value = list(chunks or [])
    return response


def release_document(*names, url_prefix="https://api.example/asset/"):
    """Return a release API document whose assets carry the given names."""
    return {
        "tag_name": "v1.2.0",
        "assets": [
            {"name": name, "url": f"{url_prefix}{index}", "size": 10}
            for index, name in enumerate(names, start=42)
        ],
    }


@pytest.fixture
def mock_session():
    """A MagicMock standing in for requests.Session."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def response_factory():
    """Expose make_response() to tests."""
    return make_response


@pytest.fixture
def release_factory():
    """Expose release_document() to tests."""
    return release_document
