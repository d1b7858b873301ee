"""
Version and Channel Resolution

This module turns free-form version strings into the (channel, version)
pair used to address release manifests and their cache entries.
"""

import re
from typing import Optional, Tuple

from manifetch.constants import (
    DEFAULT_CHANNEL,
    KNOWN_CHANNELS,
    LATEST_VERSION,
    SEMVER_PREFIX_PATTERN,
)

_SEMVER_PREFIX_RX = re.compile(SEMVER_PREFIX_PATTERN)


def looks_like_semver(version: str) -> bool:
    """Return True if `version` starts with a major.minor.patch triple."""
    return bool(_SEMVER_PREFIX_RX.match(version))


def normalize_version(version: Optional[str]) -> str:
    """
    Canonicalize a version string for use as a manifest and cache key.

    - Empty or "latest" becomes "latest".
    - Channel names ("stable", "rc") pass through unchanged.
    - Strings already starting with "v" pass through unchanged.
    - Bare semantic versions get a "v" prefix ("1.2.3-rc1" -> "v1.2.3-rc1").
    - Anything else passes through unchanged.
    """
    if not version or version == LATEST_VERSION:
        return LATEST_VERSION
    if version in KNOWN_CHANNELS:
        return version
    if version.startswith("v"):
        return version
    if looks_like_semver(version):
        return "v" + version
    return version


def normalize_channel(channel: Optional[str]) -> str:
    return channel or DEFAULT_CHANNEL


def is_latest(version: Optional[str]) -> bool:
    """Return True if `version` normalizes to the floating "latest" pointer."""
    return normalize_version(version) == LATEST_VERSION


def resolve_version(value: Optional[str]) -> Tuple[str, str]:
    """
    Resolve a user-supplied version string into a (channel, version) pair.

    Examples:
        ""        -> ("stable", "latest")
        "latest"  -> ("stable", "latest")
        "rc"      -> ("rc", "latest")
        "v1.2.3"  -> ("stable", "v1.2.3")
        "1.2.3"   -> ("stable", "v1.2.3")
        "nightly" -> ("stable", "nightly")

    Parameters:
        value (Optional[str]): A channel name, "latest", a version tag, or empty.

    Returns:
        Tuple[str, str]: The channel and canonical version.
    """
    if not value:
        return DEFAULT_CHANNEL, LATEST_VERSION

    if value.startswith("v"):
        return DEFAULT_CHANNEL, value

    if value in KNOWN_CHANNELS:
        return value, LATEST_VERSION
    if value == LATEST_VERSION:
        return DEFAULT_CHANNEL, LATEST_VERSION

    return DEFAULT_CHANNEL, normalize_version(value)
