# src/manifetch/utils.py
import importlib.metadata
import re
from datetime import datetime, timezone
from typing import Any, Optional

from manifetch.constants import APP_NAME

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None

# Fractional seconds of any precision (e.g. RFC3339 nanoseconds, Go trimmed zeros)
_FRACTION_RX = re.compile(r"\.(\d+)")


def _to_microseconds(match: re.Match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `manifetch/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version(APP_NAME)
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"{APP_NAME}/{app_version}"

    return _USER_AGENT_CACHE


def parse_iso_datetime_utc(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 / RFC3339 timestamp and normalize it to UTC.

    Accepts a trailing "Z" and fractional seconds of any length: longer
    fractions are truncated and shorter ones are padded to microseconds.
    Naive timestamps are assumed to be UTC.

    Parameters:
        value (Any): A timestamp string or datetime. Falsey or unparsable values are treated as absent.

    Returns:
        A timezone-aware datetime in UTC if parsing succeeds, `None` otherwise.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = _FRACTION_RX.sub(
            _to_microseconds, str(value).strip().replace("Z", "+00:00")
        )
        try:
            parsed = datetime.fromisoformat(text)
        except (ValueError, TypeError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_rfc3339(moment: datetime) -> str:
    """Render a datetime as an RFC3339 UTC timestamp ending in "Z"."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
