"""
Configuration for the Manifetch fetcher.

FetchOptions is the immutable option set a ManifestFetcher is built from.
load_fetch_options() assembles one from an optional YAML config file, a few
environment overrides and explicit keyword overrides, in that order.
"""

import os
from dataclasses import dataclass, field, fields
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional, Tuple

import platformdirs
import yaml

from manifetch.constants import (
    APP_NAME,
    CACHE_DIR_ENV_VAR,
    CONFIG_FILE_NAME,
    DEFAULT_LATEST_MAX_STALE_SECONDS,
    DEFAULT_LATEST_TTL_SECONDS,
    DEFAULT_PINNED_MAX_STALE_SECONDS,
    DEFAULT_PINNED_TTL_SECONDS,
    DEFAULT_REPOSITORY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY_SECONDS,
    MANIFEST_CACHE_DIR_NAME,
    OFFLINE_ENV_VAR,
    REPOSITORY_ENV_VAR,
)
from manifetch.exceptions import ConfigFileError, ConfigValidationError
from manifetch.log_utils import logger

# Config file keys that hold durations, mapped to FetchOptions fields
_DURATION_KEYS = {
    "LATEST_TTL_SECONDS": "latest_ttl",
    "LATEST_MAX_STALE_SECONDS": "latest_max_stale",
    "PINNED_TTL_SECONDS": "pinned_ttl",
    "PINNED_MAX_STALE_SECONDS": "pinned_max_stale",
    "RETRY_DELAY_SECONDS": "retry_delay",
}

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


def get_default_cache_dir() -> str:
    """
    Get the platform-appropriate directory for cached manifests.

    Returns:
        str: `<user cache dir>/manifetch/manifests`.
    """
    return os.path.join(platformdirs.user_cache_dir(APP_NAME), MANIFEST_CACHE_DIR_NAME)


def get_default_config_path() -> str:
    return os.path.join(platformdirs.user_config_dir(APP_NAME), CONFIG_FILE_NAME)


@dataclass(frozen=True)
class FetchOptions:
    """Immutable settings for a ManifestFetcher."""

    repository: str = DEFAULT_REPOSITORY
    """Release repository: an HTTP(S) base URL or a filesystem path."""

    cache_dir: str = field(default_factory=get_default_cache_dir)
    """Root of the on-disk manifest cache."""

    offline: bool = False
    """Serve only from cache; never consult a source."""

    latest_ttl: timedelta = timedelta(seconds=DEFAULT_LATEST_TTL_SECONDS)
    latest_max_stale: timedelta = timedelta(seconds=DEFAULT_LATEST_MAX_STALE_SECONDS)
    pinned_ttl: timedelta = timedelta(seconds=DEFAULT_PINNED_TTL_SECONDS)
    pinned_max_stale: timedelta = timedelta(seconds=DEFAULT_PINNED_MAX_STALE_SECONDS)

    retry_count: int = DEFAULT_RETRY_COUNT
    """Total HTTP attempts per request, including the first."""

    retry_delay: timedelta = timedelta(seconds=DEFAULT_RETRY_DELAY_SECONDS)
    """Base backoff; the sleep after attempt N is retry_delay * N."""

    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    """Per-request HTTP timeout in seconds."""

    def __post_init__(self) -> None:
        if not self.repository or not str(self.repository).strip():
            raise ConfigValidationError(
                "repository must not be empty", field="repository", value=self.repository
            )
        if not self.cache_dir or not str(self.cache_dir).strip():
            raise ConfigValidationError(
                "cache_dir must not be empty", field="cache_dir", value=self.cache_dir
            )
        for name in (
            "latest_ttl",
            "latest_max_stale",
            "pinned_ttl",
            "pinned_max_stale",
            "retry_delay",
        ):
            value = getattr(self, name)
            if not isinstance(value, timedelta):
                raise ConfigValidationError(
                    f"{name} must be a timedelta", field=name, value=value
                )
            if value < timedelta(0):
                raise ConfigValidationError(
                    f"{name} must not be negative", field=name, value=value
                )
        if isinstance(self.retry_count, bool) or not isinstance(self.retry_count, int):
            raise ConfigValidationError(
                "retry_count must be an integer", field="retry_count", value=self.retry_count
            )
        if self.retry_count < 1:
            raise ConfigValidationError(
                "retry_count must be at least 1", field="retry_count", value=self.retry_count
            )
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout must be positive",
                field="request_timeout",
                value=self.request_timeout,
            )
        if self.latest_max_stale < self.latest_ttl:
            logger.debug(
                "latest_max_stale is shorter than latest_ttl; stale fallback for latest is effectively disabled"
            )
        if self.pinned_max_stale < self.pinned_ttl:
            logger.debug(
                "pinned_max_stale is shorter than pinned_ttl; stale fallback for pinned versions is effectively disabled"
            )

    def policy_for(self, latest: bool) -> Tuple[timedelta, timedelta]:
        """
        Return the (ttl, max_stale) pair for a floating or pinned version.

        Parameters:
            latest (bool): True when the normalized version is the "latest" pointer.
        """
        if latest:
            return self.latest_ttl, self.latest_max_stale
        return self.pinned_ttl, self.pinned_max_stale


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ConfigValidationError(f"{key} must be a boolean", field=key, value=value)


def _parse_seconds(key: str, value: Any) -> timedelta:
    if isinstance(value, bool):
        raise ConfigValidationError(f"{key} must be a number of seconds", field=key, value=value)
    try:
        return timedelta(seconds=float(value))
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(
            f"{key} must be a number of seconds", field=key, value=value
        ) from e


def _options_from_config(config: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Translate upper-case config file keys into FetchOptions keyword arguments.

    Unknown keys are ignored with a debug message.
    """
    kwargs: Dict[str, Any] = {}
    for key, value in config.items():
        if value is None:
            continue
        if key == "REPOSITORY":
            kwargs["repository"] = str(value)
        elif key == "CACHE_DIR":
            kwargs["cache_dir"] = os.path.expanduser(str(value))
        elif key == "OFFLINE":
            kwargs["offline"] = _parse_bool(key, value)
        elif key in _DURATION_KEYS:
            kwargs[_DURATION_KEYS[key]] = _parse_seconds(key, value)
        elif key == "RETRY_COUNT":
            try:
                kwargs["retry_count"] = int(value)
            except (TypeError, ValueError) as e:
                raise ConfigValidationError(
                    "RETRY_COUNT must be an integer", field=key, value=value
                ) from e
        elif key == "REQUEST_TIMEOUT_SECONDS":
            kwargs["request_timeout"] = _parse_seconds(key, value).total_seconds()
        else:
            logger.debug(f"Ignoring unknown configuration key: {key}")
    return kwargs


def _read_config_file(config_path: str) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Could not parse configuration file {config_path}", details=str(e)) from e
    except OSError as e:
        raise ConfigFileError(f"Could not read configuration file {config_path}", details=str(e)) from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigFileError(
            f"Configuration file {config_path} must contain a mapping",
            details=f"got {type(config).__name__}",
        )
    return config


def load_fetch_options(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> FetchOptions:
    """
    Build FetchOptions from a config file, the environment and overrides.

    Precedence, lowest to highest: built-in defaults, the YAML config file,
    MANIFETCH_REPOSITORY / MANIFETCH_CACHE_DIR / MANIFETCH_OFFLINE, then
    keyword overrides (which must be FetchOptions field names).

    Parameters:
        config_path (Optional[str]): YAML file to read. Defaults to `manifetch.yaml` in the user config directory; a missing default file is not an error.
        environ (Optional[Mapping[str, str]]): Environment to read overrides from; defaults to os.environ.
        **overrides: FetchOptions fields that take precedence over everything else.

    Returns:
        FetchOptions: The validated options.

    Raises:
        ConfigFileError: If an explicitly named file is missing, or any config file is unreadable or malformed.
        ConfigValidationError: If a value is invalid.
    """
    env = os.environ if environ is None else environ
    kwargs: Dict[str, Any] = {}

    if config_path is not None:
        if not os.path.exists(config_path):
            raise ConfigFileError(f"Configuration file not found: {config_path}")
        kwargs.update(_options_from_config(_read_config_file(config_path)))
    else:
        default_path = get_default_config_path()
        if os.path.exists(default_path):
            logger.debug(f"Loading configuration from {default_path}")
            kwargs.update(_options_from_config(_read_config_file(default_path)))

    if env.get(REPOSITORY_ENV_VAR):
        kwargs["repository"] = env[REPOSITORY_ENV_VAR]
    if env.get(CACHE_DIR_ENV_VAR):
        kwargs["cache_dir"] = os.path.expanduser(env[CACHE_DIR_ENV_VAR])
    if OFFLINE_ENV_VAR in env:
        kwargs["offline"] = _parse_bool(OFFLINE_ENV_VAR, env[OFFLINE_ENV_VAR])

    valid_fields = {f.name for f in fields(FetchOptions)}
    unknown = set(overrides) - valid_fields
    if unknown:
        raise ConfigValidationError(
            f"Unknown fetch option(s): {', '.join(sorted(unknown))}"
        )
    kwargs.update(overrides)

    return FetchOptions(**kwargs)
