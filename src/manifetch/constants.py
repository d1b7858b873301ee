"""
Constants and configuration values for Manifetch.

This module contains the default repository location, cache layout names,
freshness thresholds, network settings and logging configuration used
throughout the package.
"""

# Release repository
DEFAULT_REPOSITORY = "https://raw.githubusercontent.com/Livepeer-FrameWorks/gitops/main"
RELEASES_DIR_NAME = "releases"
CHANNELS_DIR_NAME = "channels"
MANIFEST_EXTENSION = ".yaml"
METADATA_EXTENSION = ".meta.json"

# Channels and versions
DEFAULT_CHANNEL = "stable"
LATEST_VERSION = "latest"
KNOWN_CHANNELS = ("stable", "rc")

# Semantic version prefix check (major.minor.patch, anything may follow)
SEMVER_PREFIX_PATTERN = r"^\d+\.\d+\.\d+"

# Cache freshness thresholds (in seconds)
DEFAULT_LATEST_TTL_SECONDS = 15 * 60
DEFAULT_LATEST_MAX_STALE_SECONDS = 60 * 60
DEFAULT_PINNED_TTL_SECONDS = 24 * 60 * 60
DEFAULT_PINNED_MAX_STALE_SECONDS = 7 * 24 * 60 * 60

# Network retry settings
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY_SECONDS = 0.25
DEFAULT_REQUEST_TIMEOUT = 30
RETRYABLE_STATUS_MIN = 500
TOO_MANY_REQUESTS_STATUS = 429

# File and directory names
APP_NAME = "manifetch"
MANIFEST_CACHE_DIR_NAME = "manifests"
CONFIG_FILE_NAME = "manifetch.yaml"

# Environment variable names
LOG_LEVEL_ENV_VAR = "MANIFETCH_LOG_LEVEL"
REPOSITORY_ENV_VAR = "MANIFETCH_REPOSITORY"
CACHE_DIR_ENV_VAR = "MANIFETCH_CACHE_DIR"
OFFLINE_ENV_VAR = "MANIFETCH_OFFLINE"

# Logging configuration
LOGGER_NAME = "manifetch"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_NAME = "manifetch.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
