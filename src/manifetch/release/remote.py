"""
Remote Release Source

This module reads release manifests from an HTTP repository laid out as

    {repository}/channels/{channel}.yaml   channel pointers
    {repository}/releases/{version}.yaml   release manifests

with bounded retry and linear backoff for transient failures.
"""

import time
from datetime import timedelta
from typing import Optional

import requests  # type: ignore[import-untyped]

from manifetch.constants import (
    CHANNELS_DIR_NAME,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY_SECONDS,
    LATEST_VERSION,
    MANIFEST_EXTENSION,
    RELEASES_DIR_NAME,
    RETRYABLE_STATUS_MIN,
    TOO_MANY_REQUESTS_STATUS,
)
from manifetch.exceptions import (
    HTTPError,
    ManifestParseError,
    NetworkError,
    SourceError,
)
from manifetch.log_utils import logger
from manifetch.utils import get_user_agent

from .interfaces import ManifestSource
from .manifest import Manifest, parse_channel_pointer, parse_manifest


def should_retry_status(status_code: int) -> bool:
    """Return True for 429 Too Many Requests and any 5xx status."""
    return (
        status_code == TOO_MANY_REQUESTS_STATUS or status_code >= RETRYABLE_STATUS_MIN
    )


class RemoteManifestSource(ManifestSource):
    """
    Fetch manifests over HTTP from a release repository.

    Every request goes through fetch_bytes(), which makes up to
    `retry_count` attempts, sleeping `retry_delay * attempt` between them.
    The sleep blocks the calling thread.
    """

    def __init__(
        self,
        repository: str,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay: timedelta = timedelta(seconds=DEFAULT_RETRY_DELAY_SECONDS),
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the remote source.

        Parameters:
            repository (str): Base URL of the repository; a trailing "/" is ignored.
            retry_count (int): Total attempts per request, including the first.
            retry_delay (timedelta): Base backoff between attempts.
            timeout (float): Per-request timeout in seconds.
            session (Optional[requests.Session]): Session to reuse, with its headers left as given; one with a manifetch User-Agent is created if omitted.
        """
        self.repository = repository.rstrip("/")
        self.retry_count = max(1, retry_count)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._owns_session = session is None
        self.session = session or requests.Session()
        if self._owns_session:
            self.session.headers["User-Agent"] = get_user_agent()

    def describe(self) -> str:
        return f"remote repository {self.repository}"

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def channel_url(self, channel: str) -> str:
        return f"{self.repository}/{CHANNELS_DIR_NAME}/{channel}{MANIFEST_EXTENSION}"

    def release_url(self, version: str) -> str:
        return f"{self.repository}/{RELEASES_DIR_NAME}/{version}{MANIFEST_EXTENSION}"

    def fetch_manifest(self, channel: str, version: str) -> Manifest:
        """
        Fetch the manifest for a normalized (channel, version).

        For "latest" the channel pointer is fetched first and the manifest it
        names is fetched relative to the repository root. Pinned versions are
        fetched from `releases/{version}.yaml` directly.

        Raises:
            NetworkError: If the repository stayed unreachable for every attempt.
            HTTPError: If the repository answered with a non-success status.
            ChannelPointerError: If the channel pointer is malformed or empty.
            ManifestParseError: If the manifest body is not a valid manifest.
        """
        if version == LATEST_VERSION:
            pointer_url = self.channel_url(channel)
            try:
                pointer_data = self.fetch_bytes(pointer_url)
            except SourceError as e:
                e.message = f"failed to fetch {channel} channel pointer: {e.message}"
                raise
            pointer = parse_channel_pointer(pointer_data.decode("utf-8", errors="replace"), pointer_url)
            logger.debug(
                f"Channel {channel} points at {pointer.manifest} (platform {pointer.platform_version or 'unknown'})"
            )
            manifest_url = f"{self.repository}/{pointer.manifest.lstrip('/')}"
        else:
            manifest_url = self.release_url(version)

        return self._fetch_manifest_url(manifest_url)

    def _fetch_manifest_url(self, url: str) -> Manifest:
        data = self.fetch_bytes(url)
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ManifestParseError("failed to parse manifest: body is not UTF-8", url) from e
        return parse_manifest(text, source=url)

    def fetch_bytes(self, url: str) -> bytes:
        """
        GET `url` and return the response body, retrying transient failures.

        A 2xx response returns immediately. 429 and 5xx responses and
        connection errors or timeouts are retried up to `retry_count` attempts
        in total. Any other status fails at once. After the final attempt the
        last observed error is raised.

        Raises:
            HTTPError: For a non-retryable status, or a retryable one that persisted.
            NetworkError: For a connection failure or timeout that persisted.
        """
        last_error: SourceError = SourceError(f"no attempts made for {url}", location=url)

        for attempt in range(1, self.retry_count + 1):
            logger.debug(f"GET {url} (attempt {attempt}/{self.retry_count})")
            try:
                response = self.session.get(url, timeout=self.timeout)
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = NetworkError(
                    f"failed to download {url}",
                    location=url,
                    retry_count=attempt,
                    details=str(e),
                )
                last_error.__cause__ = e
            except requests.RequestException as e:
                raise SourceError(
                    f"failed to build request for {url}", location=url, details=str(e)
                ) from e
            else:
                status = response.status_code
                if 200 <= status < 300:
                    return response.content
                retryable = should_retry_status(status)
                last_error = HTTPError(
                    f"fetch failed: {url} (HTTP {status})",
                    status_code=status,
                    location=url,
                    retry_count=attempt,
                    is_retryable=retryable,
                )
                if not retryable:
                    raise last_error

            if attempt < self.retry_count:
                delay = self.retry_delay.total_seconds() * attempt
                logger.debug(f"Retrying {url} in {delay:.2f}s after: {last_error}")
                if delay > 0:
                    time.sleep(delay)

        logger.debug(f"Giving up on {url} after {self.retry_count} attempt(s)")
        raise last_error
