"""
Manifest Cache

This module stores fetched release manifests on disk, one YAML file per
(channel, version) with a JSON sidecar recording when it was fetched:

    {cache_dir}/{channel}/{version}.yaml
    {cache_dir}/{channel}/{version}.meta.json   {"fetched_at": "<RFC3339>"}
"""

import json
import os
import shutil
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from manifetch.constants import MANIFEST_EXTENSION, METADATA_EXTENSION
from manifetch.exceptions import (
    CacheError,
    CacheMissError,
    CacheWriteError,
    ManifestParseError,
)
from manifetch.log_utils import logger
from manifetch.utils import format_rfc3339, parse_iso_datetime_utc, utc_now

from .files import _atomic_write_json, _atomic_write_text
from .manifest import Manifest, parse_manifest


def _is_safe_component(part: str) -> bool:
    """Return True if `part` names a single entry inside its parent directory."""
    if not part or part in (".", ".."):
        return False
    separators = {"/", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    return not any(sep in part for sep in separators)


class ManifestCache:
    """
    On-disk cache of release manifests keyed by (channel, version).

    Callers pass already-normalized keys; the cache does no version
    canonicalization of its own. Writes are atomic per file.
    """

    def __init__(self, cache_dir: str):
        """
        Initialize the cache and create its root directory.

        Parameters:
            cache_dir (str): Root directory for cached manifests; "~" is expanded.

        Raises:
            CacheWriteError: If the directory cannot be created.
        """
        self.cache_dir = os.path.expanduser(cache_dir)
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
        except OSError as e:
            raise CacheWriteError(
                "failed to create cache directory", path=self.cache_dir, details=str(e)
            ) from e

    def cache_paths(self, channel: str, version: str) -> Tuple[str, str]:
        """
        Return the (manifest, metadata) file paths for a key.

        Raises:
            CacheError: If the channel or version is not a single path component.
        """
        for part in (channel, version):
            if not _is_safe_component(part):
                raise CacheError(
                    f"invalid cache key component: {part!r}", path=self.cache_dir
                )
        channel_dir = os.path.join(self.cache_dir, channel)
        return (
            os.path.join(channel_dir, f"{version}{MANIFEST_EXTENSION}"),
            os.path.join(channel_dir, f"{version}{METADATA_EXTENSION}"),
        )

    def load(self, channel: str, version: str) -> Tuple[Manifest, datetime]:
        """
        Load a cached manifest and the time it was fetched.

        The sidecar's `fetched_at` is authoritative. When the sidecar is
        missing or unreadable, the manifest file's modification time is used
        instead.

        Returns:
            Tuple[Manifest, datetime]: The manifest and a UTC fetch timestamp.

        Raises:
            CacheMissError: If the manifest file is absent, undecodable or does not parse.
            CacheError: If the key is not a valid cache path component.
        """
        cache_path, meta_path = self.cache_paths(channel, version)

        try:
            with open(cache_path, "r", encoding="utf-8") as f:
                text = f.read()
        except FileNotFoundError:
            logger.debug(f"Manifest cache miss for {channel}/{version}")
            raise CacheMissError(f"no cached manifest for {channel}/{version}", path=cache_path) from None
        except (OSError, UnicodeDecodeError) as e:
            raise CacheMissError(
                f"could not read cached manifest for {channel}/{version}",
                path=cache_path,
                details=str(e),
            ) from e

        try:
            manifest = parse_manifest(text, source=cache_path)
        except ManifestParseError as e:
            logger.debug(f"Ignoring unparsable cached manifest {cache_path}: {e}")
            raise CacheMissError(
                f"cached manifest for {channel}/{version} is unreadable",
                path=cache_path,
                details=str(e),
            ) from e

        fetched_at = self.read_metadata(meta_path)
        if fetched_at is None:
            fetched_at = self._modified_time(cache_path)

        return manifest, fetched_at

    def save(
        self,
        channel: str,
        version: str,
        manifest: Manifest,
        fetched_at: Optional[datetime] = None,
    ) -> None:
        """
        Write a manifest and its fetch-time sidecar.

        Intermediate directories are created as needed. The manifest is
        written first, then the sidecar; both are atomic replaces.

        Raises:
            CacheWriteError: If either file cannot be written.
            CacheError: If the key is not a valid cache path component.
        """
        cache_path, meta_path = self.cache_paths(channel, version)
        try:
            os.makedirs(os.path.dirname(cache_path), exist_ok=True)
            _atomic_write_text(cache_path, manifest.to_yaml())
        except OSError as e:
            raise CacheWriteError(
                f"failed to cache manifest for {channel}/{version}",
                path=cache_path,
                details=str(e),
            ) from e

        self.write_metadata(meta_path, fetched_at or utc_now())
        logger.debug(f"Cached manifest for {channel}/{version} at {cache_path}")

    def read_metadata(self, meta_path: str) -> Optional[datetime]:
        """
        Read `fetched_at` from a sidecar file.

        Returns:
            Optional[datetime]: The UTC timestamp, or None if the sidecar is missing or malformed.
        """
        try:
            with open(meta_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.debug(f"Could not read cache metadata {meta_path}: {e}")
            return None

        if not isinstance(data, dict):
            return None
        return parse_iso_datetime_utc(data.get("fetched_at"))

    def write_metadata(self, meta_path: str, fetched_at: datetime) -> None:
        try:
            _atomic_write_json(meta_path, {"fetched_at": format_rfc3339(fetched_at)})
        except OSError as e:
            raise CacheWriteError(
                "failed to write cache metadata", path=meta_path, details=str(e)
            ) from e

    def _modified_time(self, path: str) -> datetime:
        try:
            return datetime.fromtimestamp(os.path.getmtime(path), timezone.utc)
        except OSError:
            # Unknown age: treat as infinitely old
            return datetime.min.replace(tzinfo=timezone.utc)

    @staticmethod
    def age(fetched_at: datetime, now: Optional[datetime] = None) -> timedelta:
        return (now or utc_now()) - fetched_at

    def clear(self, channel: Optional[str] = None) -> int:
        """
        Remove cached manifests for one channel, or for all channels.

        Parameters:
            channel (Optional[str]): Channel to clear; None clears everything.

        Returns:
            int: Number of cached manifests removed.

        Raises:
            CacheError: If `channel` is not a single path component.
        """
        if channel is not None:
            if not _is_safe_component(channel):
                raise CacheError(
                    f"invalid cache key component: {channel!r}", path=self.cache_dir
                )
            targets = [os.path.join(self.cache_dir, channel)]
        else:
            try:
                targets = [
                    os.path.join(self.cache_dir, entry)
                    for entry in os.listdir(self.cache_dir)
                ]
            except OSError as e:
                logger.error(f"Could not list cache directory {self.cache_dir}: {e}")
                return 0

        removed = 0
        for target in targets:
            if not os.path.isdir(target):
                continue
            removed += sum(
                1
                for name in os.listdir(target)
                if name.endswith(MANIFEST_EXTENSION)
            )
            shutil.rmtree(target, ignore_errors=True)
            logger.debug(f"Removed manifest cache directory: {target}")

        logger.info(f"Cleared {removed} cached manifest(s) from {self.cache_dir}")
        return removed
