"""
Core Interfaces for the Manifetch Release Subsystem

This module defines the contract shared by the places a release manifest
can be read from.
"""

from abc import ABC, abstractmethod

from .manifest import Manifest


class ManifestSource(ABC):
    """
    A source of truth for release manifests (an HTTP repository or a local mirror).

    Implementations resolve "latest" through the channel pointer at
    `channels/{channel}.yaml` and read pinned versions from
    `releases/{version}.yaml`. They never consult the cache.
    """

    @abstractmethod
    def fetch_manifest(self, channel: str, version: str) -> Manifest:
        """
        Retrieve and parse the manifest for a normalized (channel, version).

        Raises:
            SourceError: If the manifest or channel pointer cannot be retrieved.
            ManifestParseError: If retrieved manifest content is malformed.
        """

    @abstractmethod
    def describe(self) -> str:
        """Return a short human-readable description of the source for logs."""

    def close(self) -> None:
        """Release any resources held by the source."""
