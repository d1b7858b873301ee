"""
Custom exceptions for Manifetch.

This module defines domain-specific exceptions that separate the failure
classes the fetcher reasons about: cache misses, offline unavailability,
transient and permanent source failures, unusable manifest content and
failed lookups against a resolved manifest.
"""


class ManifetchError(Exception):
    """
    Base exception for all Manifetch errors.

    All custom exceptions in Manifetch inherit from this class so callers
    can catch every package-specific error in one place.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ManifetchError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Configuration file parsing errors
    - Invalid option values (negative durations, zero retries)
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when a configuration file cannot be read or parsed."""

    pass


class ConfigValidationError(ConfigurationError):
    """
    Exception raised when configuration validation fails.

    Attributes:
        field: The option that failed validation.
        value: The rejected value.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: object = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


# =============================================================================
# Cache Errors
# =============================================================================


class CacheError(ManifetchError):
    """
    Base exception for manifest cache errors.

    Attributes:
        path: The cache file involved in the failure.
    """

    def __init__(
        self, message: str, path: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.path = path


class CacheMissError(CacheError):
    """Raised when no readable cached manifest exists for a key."""

    pass


class CacheWriteError(CacheError):
    """Raised when a fetched manifest could not be written to the cache."""

    pass


class OfflineError(ManifetchError):
    """
    Raised when offline mode is active and no usable cache entry exists.

    Offline mode never consults a source, so this error cannot be retried.
    """

    def __init__(self, channel: str, version: str) -> None:
        super().__init__(f"offline and no usable cache for {channel}/{version}")
        self.channel = channel
        self.version = version


# =============================================================================
# Source Errors
# =============================================================================


class SourceError(ManifetchError):
    """
    Base exception for failures retrieving data from a release repository.

    Source errors are eligible for stale-cache fallback in the fetcher.

    Attributes:
        location: The URL or filesystem path that was being read.
        retry_count: Number of attempts made before giving up.
        is_retryable: Whether the failure class is considered transient.
    """

    def __init__(
        self,
        message: str,
        location: str | None = None,
        retry_count: int = 0,
        is_retryable: bool = False,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.location = location
        self.retry_count = retry_count
        self.is_retryable = is_retryable


class NetworkError(SourceError):
    """
    Exception raised for network-level retrieval failures.

    This includes:
    - Connection failures and DNS errors
    - Request timeouts
    """

    def __init__(
        self,
        message: str,
        location: str | None = None,
        retry_count: int = 0,
        details: str | None = None,
    ) -> None:
        super().__init__(message, location, retry_count, True, details)


class HTTPError(SourceError):
    """
    Exception raised for non-success HTTP responses.

    Attributes:
        status_code: The HTTP status code returned by the server.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        location: str | None = None,
        retry_count: int = 0,
        is_retryable: bool = False,
        details: str | None = None,
    ) -> None:
        super().__init__(message, location, retry_count, is_retryable, details)
        self.status_code = status_code


class SourceNotFoundError(SourceError):
    """Raised when a release file or directory is missing from a local mirror."""

    pass


class ChannelPointerError(SourceError):
    """Raised when a channel pointer is malformed or names no manifest."""

    pass


class ManifestParseError(ManifetchError):
    """
    Raised when retrieved manifest content cannot be used.

    The bytes were retrievable but are malformed, so retrying cannot help and
    the fetcher never substitutes a cached manifest for this error.

    Attributes:
        source: The URL or path the content came from.
    """

    def __init__(
        self, message: str, source: str | None = None, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.source = source


class ManifestFetchError(ManifetchError):
    """
    Raised by the fetcher when a source failed and no cached fallback applied.

    The underlying SourceError is chained as ``__cause__``.
    """

    def __init__(
        self, message: str, channel: str, version: str, details: str | None = None
    ) -> None:
        super().__init__(message, details)
        self.channel = channel
        self.version = version


# =============================================================================
# Lookup Errors
# =============================================================================


class LookupFailure(ManifetchError):
    """Base exception for lookups against a resolved manifest."""

    pass


class ServiceNotFoundError(LookupFailure):
    """Raised when a manifest has no entry with the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"service {name} not found in manifest")
        self.name = name


class BinaryNotFoundError(LookupFailure):
    """Raised when a service has no binary for the requested platform."""

    def __init__(self, key: str) -> None:
        super().__init__(f"binary not available for {key}")
        self.key = key
