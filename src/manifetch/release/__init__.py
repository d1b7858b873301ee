"""
Manifetch Release Subsystem

Resolves release channels and versions into platform release manifests,
backed by an on-disk cache and a remote or local release repository.

Core Components:
- manifest: Manifest data model, channel pointers and service lookup
- version: Channel/version resolution
- cache: On-disk manifest cache with fetch-time metadata
- remote: HTTP repository source with retry
- local: Filesystem repository source
- fetcher: Freshness policy and source selection
"""

from .cache import ManifestCache
from .fetcher import ManifestFetcher, build_source
from .interfaces import ManifestSource
from .local import LocalManifestSource
from .manifest import (
    Artifact,
    ChannelPointer,
    ExternalDependency,
    InfrastructureEntry,
    InterfaceEntry,
    Manifest,
    NativeBinary,
    ServiceEntry,
    ServiceInfo,
    parse_channel_pointer,
    parse_manifest,
)
from .remote import RemoteManifestSource
from .version import normalize_version, resolve_version

__all__ = [
    "Artifact",
    "ChannelPointer",
    "ExternalDependency",
    "InfrastructureEntry",
    "InterfaceEntry",
    "LocalManifestSource",
    "Manifest",
    "ManifestCache",
    "ManifestFetcher",
    "ManifestSource",
    "NativeBinary",
    "RemoteManifestSource",
    "ServiceEntry",
    "ServiceInfo",
    "build_source",
    "normalize_version",
    "parse_channel_pointer",
    "parse_manifest",
    "resolve_version",
]
