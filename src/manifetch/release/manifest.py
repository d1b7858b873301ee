"""
Release Manifest Data Model

This module defines the typed representation of a platform release
manifest, the channel pointer record used to resolve "latest", and the
ServiceInfo projection provisioning code uses to locate an image or binary.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml

from manifetch.exceptions import (
    BinaryNotFoundError,
    ChannelPointerError,
    ManifestParseError,
    ServiceNotFoundError,
)


def _text(value: Any) -> str:
    """Coerce a scalar YAML value to a string; None becomes ""."""
    if value is None:
        return ""
    # YAML resolves unquoted timestamps to date/datetime objects
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


@dataclass
class ServiceEntry:
    """A containerized platform service."""

    name: str
    service_version: str = ""
    image: str = ""
    digest: str = ""


@dataclass
class Artifact:
    """One per-platform build of a native binary."""

    arch: str
    """Platform tag in "{os}-{arch}" form (e.g., 'linux-amd64')"""

    url: str = ""
    """Absolute download URL, when the release publishes one"""

    file: str = ""
    """Bare filename; callers build the location from convention"""

    @property
    def location(self) -> str:
        """The URL if set, otherwise the bare filename."""
        return self.url or self.file


@dataclass
class NativeBinary:
    """A service distributed as native binaries."""

    name: str
    artifacts: List[Artifact] = field(default_factory=list)


@dataclass
class InterfaceEntry:
    """A UI/front-end service."""

    name: str
    image: str = ""
    digest: str = ""
    static_bundle: Optional[str] = None


@dataclass
class InfrastructureEntry:
    """A third-party dependency tested against this release."""

    name: str
    version: str = ""
    image: str = ""
    notes: str = ""


@dataclass
class ExternalDependency:
    """A dependency that fits no other shape; extra keys are kept verbatim."""

    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ServiceInfo:
    """Read-only view of one named service, derived from a Manifest."""

    name: str
    version: str = ""
    image: str = ""
    digest: str = ""
    full_image: str = ""
    binaries: Mapping[str, str] = field(default_factory=dict)

    def get_binary_url(self, os_name: str, arch: str) -> str:
        """
        Return the binary location for a platform.

        Parameters:
            os_name (str): Operating system (e.g., 'linux').
            arch (str): CPU architecture (e.g., 'amd64').

        Returns:
            str: An absolute URL when the artifact has one, otherwise its bare filename.

        Raises:
            BinaryNotFoundError: If the service has no artifact for "{os_name}-{arch}".
        """
        key = f"{os_name}-{arch}"
        try:
            return self.binaries[key]
        except KeyError:
            raise BinaryNotFoundError(key) from None


@dataclass
class ChannelPointer:
    """Indirection record mapping a channel to its current release manifest."""

    platform_version: str = ""
    manifest: str = ""
    """Path of the release manifest relative to the repository root"""

    updated_at: str = ""


def _require_list(data: Mapping[str, Any], key: str, source: Optional[str]) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestParseError(
            f"failed to parse manifest: '{key}' must be a list",
            source=source,
            details=f"got {type(value).__name__}",
        )
    return value


def _require_mapping(item: Any, key: str, source: Optional[str]) -> Mapping[str, Any]:
    if not isinstance(item, dict):
        raise ManifestParseError(
            f"failed to parse manifest: entries of '{key}' must be mappings",
            source=source,
            details=f"got {type(item).__name__}",
        )
    return item


def _check_unique(names: Iterable[str], key: str, source: Optional[str]) -> None:
    seen = set()
    for name in names:
        if name in seen:
            raise ManifestParseError(
                f"failed to parse manifest: duplicate name '{name}' in '{key}'",
                source=source,
            )
        seen.add(name)


@dataclass
class Manifest:
    """A platform release: images, native binaries and tested infrastructure."""

    platform_version: str = ""
    git_commit: str = ""
    release_date: str = ""
    services: List[ServiceEntry] = field(default_factory=list)
    native_binaries: List[NativeBinary] = field(default_factory=list)
    interfaces: List[InterfaceEntry] = field(default_factory=list)
    infrastructure: List[InfrastructureEntry] = field(default_factory=list)
    external_dependencies: List[ExternalDependency] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], source: Optional[str] = None) -> "Manifest":
        """
        Build a Manifest from a parsed YAML mapping.

        Unknown top-level keys are ignored. Every key of an external dependency
        other than `name` is kept in its attribute bag.

        Parameters:
            data (Mapping[str, Any]): The parsed document.
            source (Optional[str]): URL or path the document came from, for error messages.

        Raises:
            ManifestParseError: If a collection has the wrong shape, an entry has no name, or a name repeats within `services` or `native_binaries`.
        """
        if not isinstance(data, dict):
            raise ManifestParseError(
                "failed to parse manifest: document must be a mapping",
                source=source,
                details=f"got {type(data).__name__}",
            )

        def named(item: Mapping[str, Any], key: str) -> str:
            name = _text(item.get("name"))
            if not name:
                raise ManifestParseError(
                    f"failed to parse manifest: entry in '{key}' has no name",
                    source=source,
                )
            return name

        services = []
        for item in _require_list(data, "services", source):
            item = _require_mapping(item, "services", source)
            services.append(
                ServiceEntry(
                    name=named(item, "services"),
                    service_version=_text(item.get("service_version")),
                    image=_text(item.get("image")),
                    digest=_text(item.get("digest")),
                )
            )

        native_binaries = []
        for item in _require_list(data, "native_binaries", source):
            item = _require_mapping(item, "native_binaries", source)
            artifacts = []
            for raw in _require_list(item, "artifacts", source):
                raw = _require_mapping(raw, "artifacts", source)
                artifacts.append(
                    Artifact(
                        arch=_text(raw.get("arch")),
                        url=_text(raw.get("url")),
                        file=_text(raw.get("file")),
                    )
                )
            native_binaries.append(
                NativeBinary(name=named(item, "native_binaries"), artifacts=artifacts)
            )

        interfaces = []
        for item in _require_list(data, "interfaces", source):
            item = _require_mapping(item, "interfaces", source)
            static_bundle = item.get("static_bundle")
            interfaces.append(
                InterfaceEntry(
                    name=named(item, "interfaces"),
                    image=_text(item.get("image")),
                    digest=_text(item.get("digest")),
                    static_bundle=None if static_bundle is None else _text(static_bundle),
                )
            )

        infrastructure = []
        for item in _require_list(data, "infrastructure", source):
            item = _require_mapping(item, "infrastructure", source)
            infrastructure.append(
                InfrastructureEntry(
                    name=named(item, "infrastructure"),
                    version=_text(item.get("version")),
                    image=_text(item.get("image")),
                    notes=_text(item.get("notes")),
                )
            )

        external_dependencies = []
        for item in _require_list(data, "external_dependencies", source):
            item = _require_mapping(item, "external_dependencies", source)
            external_dependencies.append(
                ExternalDependency(
                    name=named(item, "external_dependencies"),
                    attributes={k: v for k, v in item.items() if k != "name"},
                )
            )

        _check_unique((s.name for s in services), "services", source)
        _check_unique((b.name for b in native_binaries), "native_binaries", source)

        return cls(
            platform_version=_text(data.get("platform_version")),
            git_commit=_text(data.get("git_commit")),
            release_date=_text(data.get("release_date")),
            services=services,
            native_binaries=native_binaries,
            interfaces=interfaces,
            infrastructure=infrastructure,
            external_dependencies=external_dependencies,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the mapping layout read by from_dict()."""
        interfaces = []
        for iface in self.interfaces:
            entry: Dict[str, Any] = {
                "name": iface.name,
                "image": iface.image,
                "digest": iface.digest,
            }
            if iface.static_bundle is not None:
                entry["static_bundle"] = iface.static_bundle
            interfaces.append(entry)

        data: Dict[str, Any] = {
            "platform_version": self.platform_version,
            "git_commit": self.git_commit,
            "release_date": self.release_date,
            "services": [
                {
                    "name": s.name,
                    "service_version": s.service_version,
                    "image": s.image,
                    "digest": s.digest,
                }
                for s in self.services
            ],
            "native_binaries": [
                {
                    "name": b.name,
                    "artifacts": [
                        {"arch": a.arch, "url": a.url, "file": a.file}
                        for a in b.artifacts
                    ],
                }
                for b in self.native_binaries
            ],
            "interfaces": interfaces,
            "infrastructure": [
                {"name": i.name, "version": i.version, "image": i.image, "notes": i.notes}
                for i in self.infrastructure
            ],
        }
        if self.external_dependencies:
            data["external_dependencies"] = [
                {"name": d.name, **d.attributes} for d in self.external_dependencies
            ]
        return data

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    def _binaries_for(self, name: str) -> Dict[str, str]:
        """Map "{os}-{arch}" to location for the native binary named `name`."""
        for binary in self.native_binaries:
            if binary.name == name:
                return {a.arch: a.location for a in binary.artifacts}
        return {}

    def get_service_info(self, name: str) -> ServiceInfo:
        """
        Resolve a named service into a ServiceInfo.

        Searches `services`, then `interfaces`, then `native_binaries`; the
        first match wins. Services and binary-only entries pick up binaries
        from the `native_binaries` entry of the same name. Interfaces never
        carry binaries.

        Raises:
            ServiceNotFoundError: If no collection has an entry named `name`.
        """
        for svc in self.services:
            if svc.name == name:
                return ServiceInfo(
                    name=svc.name,
                    version=svc.service_version,
                    image=svc.image,
                    digest=svc.digest,
                    full_image=f"{svc.image}@{svc.digest}",
                    binaries=MappingProxyType(self._binaries_for(svc.name)),
                )

        for iface in self.interfaces:
            if iface.name == name:
                return ServiceInfo(
                    name=iface.name,
                    image=iface.image,
                    digest=iface.digest,
                    full_image=f"{iface.image}@{iface.digest}",
                    binaries=MappingProxyType({}),
                )

        for binary in self.native_binaries:
            if binary.name == name:
                return ServiceInfo(
                    name=binary.name,
                    binaries=MappingProxyType(self._binaries_for(binary.name)),
                )

        raise ServiceNotFoundError(name)

    def get_infrastructure(self, name: str) -> InfrastructureEntry:
        for entry in self.infrastructure:
            if entry.name == name:
                return entry
        raise ServiceNotFoundError(name)

    def service_names(self) -> List[str]:
        """All resolvable names in lookup order, without duplicates."""
        names: List[str] = []
        for entry in [*self.services, *self.interfaces, *self.native_binaries]:
            if entry.name not in names:
                names.append(entry.name)
        return names


def _load_yaml(text: str, source: Optional[str], error_cls, what: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise error_cls(f"failed to parse {what}", source, details=str(e)) from e


def parse_manifest(text: str, source: Optional[str] = None) -> Manifest:
    """
    Parse YAML manifest text.

    Raises:
        ManifestParseError: If the text is not YAML, is empty, or does not describe a manifest.
    """
    data = _load_yaml(text, source, ManifestParseError, "manifest")
    if data is None:
        raise ManifestParseError("failed to parse manifest: document is empty", source=source)
    return Manifest.from_dict(data, source=source)


def parse_channel_pointer(text: str, source: Optional[str] = None) -> ChannelPointer:
    """
    Parse a channel pointer document.

    Raises:
        ChannelPointerError: If the text is not a YAML mapping or names no manifest path.
    """
    data = _load_yaml(text, source, ChannelPointerError, "channel pointer")
    if not isinstance(data, dict):
        raise ChannelPointerError(
            "failed to parse channel pointer: document must be a mapping",
            source,
            details=f"got {type(data).__name__}",
        )
    pointer = ChannelPointer(
        platform_version=_text(data.get("platform_version")),
        manifest=_text(data.get("manifest")).strip(),
        updated_at=_text(data.get("updated_at")),
    )
    if not pointer.manifest:
        raise ChannelPointerError(f"channel pointer {source} has no manifest path", source)
    return pointer
