"""
Tests for the Manifetch exception hierarchy.

Covers:
- Base ManifetchError message formatting
- Configuration, cache and offline errors
- Source errors and their retry metadata
- Parse errors sitting outside the source hierarchy
- Lookup errors raised against a resolved manifest
"""

import pytest

from manifetch.exceptions import (
    BinaryNotFoundError,
    CacheError,
    CacheMissError,
    CacheWriteError,
    ChannelPointerError,
    ConfigFileError,
    ConfigurationError,
    ConfigValidationError,
    HTTPError,
    LookupFailure,
    ManifestFetchError,
    ManifestParseError,
    ManifetchError,
    NetworkError,
    OfflineError,
    ServiceNotFoundError,
    SourceError,
    SourceNotFoundError,
)

pytestmark = [pytest.mark.unit]


class TestManifetchError:
    """Test base ManifetchError exception."""

    def test_basic_message(self):
        error = ManifetchError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.details is None

    def test_message_with_details(self):
        error = ManifetchError("Operation failed", details="Connection timeout")
        assert str(error) == "Operation failed - Connection timeout"


class TestConfigurationErrors:
    def test_hierarchy(self):
        assert issubclass(ConfigFileError, ConfigurationError)
        assert issubclass(ConfigValidationError, ConfigurationError)
        assert issubclass(ConfigurationError, ManifetchError)

    def test_validation_error_keeps_field_and_value(self):
        error = ConfigValidationError("retry_count must be at least 1", field="retry_count", value=0)
        assert error.field == "retry_count"
        assert error.value == 0


class TestCacheErrors:
    def test_cache_errors_carry_path(self):
        error = CacheWriteError("failed to cache manifest", path="/tmp/x.yaml", details="disk full")
        assert isinstance(error, CacheError)
        assert error.path == "/tmp/x.yaml"
        assert str(error) == "failed to cache manifest - disk full"

    def test_cache_miss_is_not_a_source_error(self):
        assert not issubclass(CacheMissError, SourceError)


def test_offline_error_message():
    error = OfflineError("rc", "v2.0.0")
    assert str(error) == "offline and no usable cache for rc/v2.0.0"
    assert (error.channel, error.version) == ("rc", "v2.0.0")


class TestSourceErrors:
    def test_network_error_is_always_retryable(self):
        error = NetworkError("failed to download", location="https://x", retry_count=3)
        assert error.is_retryable is True
        assert error.retry_count == 3
        assert error.location == "https://x"

    def test_http_error(self):
        error = HTTPError("fetch failed (HTTP 404)", status_code=404, location="https://x")
        assert isinstance(error, SourceError)
        assert error.status_code == 404
        assert error.is_retryable is False

    @pytest.mark.parametrize(
        "error_cls", [NetworkError, HTTPError, SourceNotFoundError, ChannelPointerError]
    )
    def test_all_retrieval_failures_are_source_errors(self, error_cls):
        assert issubclass(error_cls, SourceError)


def test_parse_error_is_not_a_source_error():
    error = ManifestParseError("failed to parse manifest", source="https://x")
    assert not isinstance(error, SourceError)
    assert error.source == "https://x"


def test_fetch_error_carries_key():
    error = ManifestFetchError("failed to fetch manifest", "stable", "latest", details="HTTP 503")
    assert (error.channel, error.version) == ("stable", "latest")
    assert str(error) == "failed to fetch manifest - HTTP 503"


class TestLookupErrors:
    def test_service_not_found(self):
        error = ServiceNotFoundError("quartermaster")
        assert isinstance(error, LookupFailure)
        assert str(error) == "service quartermaster not found in manifest"

    def test_binary_not_found(self):
        error = BinaryNotFoundError("windows-arm64")
        assert isinstance(error, LookupFailure)
        assert str(error) == "binary not available for windows-arm64"
