import time
from pathlib import Path

import platformdirs
import pytest
import requests

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)

MANIFEST_YAML = """\
platform_version: {version}
git_commit: abc1234
release_date: "2026-01-01T00:00:00Z"
services: []
native_binaries: []
interfaces: []
infrastructure: []
"""


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used across the suite."""
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "configuration: option loading and validation")
    config.addinivalue_line(
        "markers", "integration: tests spanning the fetcher, cache and a source"
    )


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs and the XDG variables at a per-test temporary tree.

    Also clears the MANIFETCH_* environment overrides so a developer's shell
    cannot leak into option loading.
    """
    base = tmp_path_factory.mktemp("manifetch")
    cache_dir = base / "cache"
    config_dir = base / "config"
    for path in (cache_dir, config_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    for var in ("MANIFETCH_REPOSITORY", "MANIFETCH_CACHE_DIR", "MANIFETCH_OFFLINE"):
        monkeypatch.delenv(var, raising=False)

    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )


def pytest_runtest_setup():
    """Replace the synchronous requests entry points with a blocking callable."""
    requests.get = _block_network
    requests.post = _block_network
    requests.head = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """
    Make time.sleep instant for all tests to prevent delays.

    Retry tests that need to observe the backoff patch sleep again with a
    recorder.
    """
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


@pytest.fixture
def manifest_yaml():
    """Factory producing a minimal manifest document for a platform version."""

    def _build(version: str = "v1.2.3") -> str:
        return MANIFEST_YAML.format(version=version)

    return _build


@pytest.fixture
def local_repo(tmp_path, manifest_yaml):
    """
    Create an on-disk release repository with `channels/` and `releases/`.

    Returns a helper object whose `add_release` and `set_channel` methods
    populate it.
    """
    root = tmp_path / "repo"
    (root / "channels").mkdir(parents=True)
    (root / "releases").mkdir(parents=True)

    class _Repo:
        path = root

        def add_release(self, version: str, body: str | None = None) -> Path:
            target = root / "releases" / f"{version}.yaml"
            target.write_text(body if body is not None else manifest_yaml(version))
            return target

        def set_channel(self, channel: str, body: str) -> Path:
            target = root / "channels" / f"{channel}.yaml"
            target.write_text(body)
            return target

    return _Repo()


@pytest.fixture
def sample_manifest_data():
    """A manifest mapping touching every collection."""
    return {
        "platform_version": "v1.4.0",
        "git_commit": "0f3c2d1",
        "release_date": "2026-03-01T12:00:00Z",
        "services": [
            {
                "name": "commodore",
                "service_version": "1.4.0",
                "image": "ghcr.io/frameworks/commodore",
                "digest": "sha256:aaa",
            },
            {
                "name": "helmsman",
                "service_version": "1.4.1",
                "image": "ghcr.io/frameworks/helmsman",
                "digest": "sha256:bbb",
            },
        ],
        "native_binaries": [
            {
                "name": "helmsman",
                "artifacts": [
                    {
                        "arch": "linux-amd64",
                        "file": "helmsman-linux-amd64.tar.gz",
                        "url": "https://example.com/helmsman-linux-amd64.tar.gz",
                    },
                    {"arch": "darwin-arm64", "file": "helmsman-darwin-arm64.tar.gz"},
                ],
            },
            {
                "name": "privateer",
                "artifacts": [
                    {"arch": "linux-amd64", "file": "privateer-linux-amd64.tar.gz"}
                ],
            },
        ],
        "interfaces": [
            {
                "name": "chartroom",
                "image": "ghcr.io/frameworks/chartroom",
                "digest": "sha256:ccc",
                "static_bundle": "chartroom-1.4.0.tar.gz",
            }
        ],
        "infrastructure": [
            {
                "name": "postgres",
                "version": "16.2",
                "image": "postgres:16.2",
                "notes": "minimum 15",
            }
        ],
        "external_dependencies": [
            {"name": "mistserver", "version": "3.4", "channel": "stable", "ports": [4242]}
        ],
    }
