"""Resolve platform release channels and versions into release manifests."""

from manifetch.config import FetchOptions, load_fetch_options
from manifetch.release import (
    Manifest,
    ManifestFetcher,
    ServiceInfo,
    resolve_version,
)

__all__ = [
    "FetchOptions",
    "Manifest",
    "ManifestFetcher",
    "ServiceInfo",
    "load_fetch_options",
    "resolve_version",
]
