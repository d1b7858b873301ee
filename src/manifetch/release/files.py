"""
File helpers for the release subsystem: atomic writes and repository
location classification.
"""

import json
import os
import tempfile
from typing import Any, Callable

from manifetch.log_utils import logger

# Leading characters that mark a repository location as a filesystem path
_LOCAL_PATH_PREFIXES = ("/", ".", "~")


def is_local_path(location: str) -> bool:
    """
    Return True if a repository location refers to the filesystem.

    The decision is syntactic: locations beginning with "/", "." or "~" are
    paths, everything else is treated as a URL.
    """
    return bool(location) and location.startswith(_LOCAL_PATH_PREFIXES)


def _atomic_write(
    file_path: str, writer_func: Callable[[Any], None], suffix: str = ".tmp"
) -> None:
    """
    Write a file by writing a temporary sibling and atomically replacing the target.

    A concurrent reader sees either the previous file or the complete new one,
    never a partial write. The temporary file is removed on failure.

    Parameters:
        file_path (str): Destination file path to be written.
        writer_func (Callable[[Any], None]): Callable that receives an open text file-like object and writes the desired content to it.
        suffix (str): Suffix to use for the temporary file name (default ".tmp").

    Raises:
        OSError: If the temporary file cannot be created, written or moved into place.
    """
    temp_fd, temp_path = tempfile.mkstemp(
        dir=os.path.dirname(file_path) or ".", prefix="tmp-", suffix=suffix
    )
    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as temp_f:
            writer_func(temp_f)
        os.replace(temp_path, file_path)
    except (UnicodeEncodeError, OSError):
        logger.debug(f"Atomic write to {file_path} failed; removing {temp_path}")
        raise
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError:
                pass


def _atomic_write_text(file_path: str, content: str) -> None:
    _atomic_write(file_path, lambda f: f.write(content))


def _atomic_write_json(file_path: str, data: dict) -> None:
    """Atomically write a mapping to `file_path` as JSON."""
    _atomic_write(file_path, lambda f: json.dump(data, f))
