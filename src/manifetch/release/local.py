"""
Local Release Source

This module reads release manifests from a repository mirror checked out on
disk. It mirrors the remote layout and pointer semantics; local I/O failures
are not treated as transient and are never retried.
"""

import os
from typing import Optional

from manifetch.constants import (
    CHANNELS_DIR_NAME,
    LATEST_VERSION,
    MANIFEST_EXTENSION,
    RELEASES_DIR_NAME,
)
from manifetch.exceptions import ChannelPointerError, SourceNotFoundError
from manifetch.log_utils import logger

from .interfaces import ManifestSource
from .manifest import Manifest, parse_channel_pointer, parse_manifest


class LocalManifestSource(ManifestSource):
    """
    Fetch manifests from a repository directory.

    For "latest" the channel pointer is preferred. When it is missing or
    unusable, the lexicographically greatest `releases/*.yaml` file is used.
    That ordering is plain string ordering, so `v10.0.0.yaml` sorts before
    `v2.0.0.yaml`.
    """

    def __init__(self, repository: str):
        self.repository = os.path.expanduser(repository)

    def describe(self) -> str:
        return f"local repository {self.repository}"

    def fetch_manifest(self, channel: str, version: str) -> Manifest:
        """
        Read the manifest for a normalized (channel, version).

        Raises:
            SourceNotFoundError: If the manifest file, or for "latest" any release file, cannot be found or read.
            ManifestParseError: If the manifest file is malformed.
        """
        if version == LATEST_VERSION:
            manifest_path = self._resolve_channel_pointer(channel)
            if manifest_path is None:
                manifest_path = self._latest_release_file()
        else:
            manifest_path = os.path.join(
                self.repository, RELEASES_DIR_NAME, f"{version}{MANIFEST_EXTENSION}"
            )

        text = self._read(manifest_path, "failed to read manifest")
        return parse_manifest(text, source=manifest_path)

    def _read(self, path: str, message: str) -> str:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceNotFoundError(f"{message} {path}", location=path, details=str(e)) from e

    def _resolve_channel_pointer(self, channel: str) -> Optional[str]:
        """Return the manifest path named by the channel pointer, or None if unusable."""
        pointer_path = os.path.join(
            self.repository, CHANNELS_DIR_NAME, f"{channel}{MANIFEST_EXTENSION}"
        )
        if not os.path.isfile(pointer_path):
            logger.debug(f"No channel pointer at {pointer_path}; scanning releases")
            return None
        try:
            pointer = parse_channel_pointer(
                self._read(pointer_path, "failed to read channel pointer"), pointer_path
            )
        except (ChannelPointerError, SourceNotFoundError) as e:
            logger.debug(f"Ignoring unusable channel pointer {pointer_path}: {e}")
            return None
        return os.path.join(self.repository, pointer.manifest.lstrip("/"))

    def _latest_release_file(self) -> str:
        releases_dir = os.path.join(self.repository, RELEASES_DIR_NAME)
        try:
            entries = os.listdir(releases_dir)
        except OSError as e:
            raise SourceNotFoundError(
                "failed to read releases directory", location=releases_dir, details=str(e)
            ) from e

        release_files = sorted(
            name
            for name in entries
            if name.endswith(MANIFEST_EXTENSION)
            and os.path.isfile(os.path.join(releases_dir, name))
        )
        if not release_files:
            raise SourceNotFoundError(
                f"no release manifests found in {releases_dir}", location=releases_dir
            )

        chosen = release_files[-1]
        logger.debug(f"Selected {chosen} as latest release from {releases_dir}")
        return os.path.join(releases_dir, chosen)
