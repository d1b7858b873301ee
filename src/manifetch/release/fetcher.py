"""
Manifest Fetcher

This module applies the cache freshness policy and chooses between the
cache, the configured source and a stale cached fallback.

Each fetch works through these cases in order:
1. Cached and younger than the TTL: serve it without touching the source.
2. Offline, cached and younger than max-staleness: serve it.
3. Offline otherwise: raise OfflineError.
4. Fetch from the source and cache the result. If the source fails and the
   cached entry is younger than max-staleness, serve it with a warning.
"""

import threading
from typing import Dict, Optional, Tuple

from manifetch.config import FetchOptions
from manifetch.exceptions import (
    CacheMissError,
    CacheWriteError,
    ManifestFetchError,
    OfflineError,
    SourceError,
)
from manifetch.log_utils import logger

from .cache import ManifestCache
from .files import is_local_path
from .interfaces import ManifestSource
from .local import LocalManifestSource
from .manifest import Manifest
from .remote import RemoteManifestSource
from .version import is_latest, normalize_channel, normalize_version, resolve_version


def build_source(options: FetchOptions) -> ManifestSource:
    """Pick the local or remote source for the configured repository location."""
    if is_local_path(options.repository):
        return LocalManifestSource(options.repository)
    return RemoteManifestSource(
        options.repository,
        retry_count=options.retry_count,
        retry_delay=options.retry_delay,
        timeout=options.request_timeout,
    )


class ManifestFetcher:
    """
    Resolve (channel, version) requests into release manifests.

    A fetcher is built once from FetchOptions and shared by callers. Calls
    for the same key are serialized, so concurrent callers wait for one
    fetch and then read the entry it cached. One lock is kept per key
    ever requested and locks are never pruned, which suits a short-lived
    process fetching a handful of keys.
    """

    def __init__(
        self,
        options: Optional[FetchOptions] = None,
        cache: Optional[ManifestCache] = None,
        source: Optional[ManifestSource] = None,
    ):
        """
        Initialize the fetcher.

        Parameters:
            options (Optional[FetchOptions]): Settings; defaults to FetchOptions().
            cache (Optional[ManifestCache]): Cache to use; built from `options.cache_dir` if omitted.
            source (Optional[ManifestSource]): Source to use; chosen from `options.repository` if omitted.

        Raises:
            CacheWriteError: If the cache directory cannot be created.
        """
        self.options = options or FetchOptions()
        self.cache = cache or ManifestCache(self.options.cache_dir)
        self.source = source or build_source(self.options)
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: Tuple[str, str]) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def fetch(self, channel: str = "", version: str = "") -> Manifest:
        """
        Return the manifest for a channel and version.

        Parameters:
            channel (str): Release channel; empty means "stable".
            version (str): Version tag or "latest"; empty means "latest". "1.2.3" and "v1.2.3" are the same key.

        Returns:
            Manifest: A fresh, cached, or (after a source failure) stale-but-acceptable manifest.

        Raises:
            OfflineError: If offline and no cache entry is young enough.
            ManifestFetchError: If the source failed and no cache entry is young enough.
            ManifestParseError: If the source returned a malformed manifest.
            CacheError: If the channel or version contains a path separator or is "." or "..".
        """
        channel = normalize_channel(channel)
        version = normalize_version(version)
        ttl, max_stale = self.options.policy_for(is_latest(version))

        with self._lock_for((channel, version)):
            cached: Optional[Manifest] = None
            age = None
            try:
                cached, fetched_at = self.cache.load(channel, version)
                age = self.cache.age(fetched_at)
            except CacheMissError:
                pass

            if cached is not None and age is not None:
                if age <= ttl:
                    logger.debug(f"Using cached manifest for {channel}/{version} (age {age})")
                    return cached
                if self.options.offline and age <= max_stale:
                    logger.info(
                        f"Offline: using cached manifest for {channel}/{version} (age {age})"
                    )
                    return cached

            if self.options.offline:
                raise OfflineError(channel, version)

            logger.debug(f"Fetching {channel}/{version} from {self.source.describe()}")
            try:
                manifest = self.source.fetch_manifest(channel, version)
            except SourceError as e:
                if cached is not None and age is not None and age <= max_stale:
                    logger.warning(
                        f"Using stale cached manifest for {channel}/{version} (age {age}) after fetch failure: {e}"
                    )
                    return cached
                raise ManifestFetchError(
                    f"failed to fetch manifest for {channel}/{version}",
                    channel,
                    version,
                    details=str(e),
                ) from e

            try:
                self.cache.save(channel, version, manifest)
            except CacheWriteError as e:
                logger.warning(f"Failed to cache manifest: {e}")

            return manifest

    def fetch_version(self, value: str = "") -> Manifest:
        """Resolve a free-form version string (see resolve_version) and fetch it."""
        channel, version = resolve_version(value)
        return self.fetch(channel, version)

    def close(self) -> None:
        self.source.close()

    def __enter__(self) -> "ManifestFetcher":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()
