"""Utility functions for O2G."""

import datetime
import os
import time
from pathlib import Path
from typing import Any, Optional, Union

from slugify import slugify


def to_utc_datetime(value: Any) -> Optional[datetime.datetime]:
    """Parse a front matter date value into an aware UTC datetime.

    Accepts ``datetime``, ``date`` (midnight) and ISO-8601 strings, with or
    without a trailing ``Z``. Naive values are taken as UTC.

    Args:
        value: Value read from front matter

    Returns:
        Aware datetime, or None if the value is not a date
    """
    if isinstance(value, datetime.datetime):
        dt = value
    elif isinstance(value, datetime.date):
        dt = datetime.datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text[-1] in "zZ":
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def format_time(timestamp: Union[datetime.datetime, datetime.date]) -> str:
    """Format a date or datetime as an ISO-8601 UTC string with milliseconds.

    Args:
        timestamp: Time value to format; naive values are taken as UTC and
            dates as midnight

    Returns:
        String like ``2024-05-01T09:30:00.000Z``
    """
    dt = to_utc_datetime(timestamp)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def slugify_filename(path_str: str) -> str:
    """Slugify the stem of a file name and keep its extension.

    Args:
        path_str: File name or path

    Returns:
        Slugified file name, e.g. ``My Photo.PNG`` -> ``my-photo.png``
    """
    path = Path(path_str.replace("\\", "/"))
    stem = slugify(path.stem) or "image"
    return stem + path.suffix.lower()


def find_vault_root(note_path: Path) -> Optional[Path]:
    """Find the Obsidian vault containing a note (folder with ``.obsidian``).

    Args:
        note_path: Path to a note inside the vault

    Returns:
        Vault root path or None if the note is not inside a vault
    """
    for folder in note_path.resolve().parents:
        if (folder / ".obsidian").is_dir():
            return folder
    return None


def unique_path(path: Path, timestamp_ms: Optional[int] = None) -> Path:
    """Return ``path`` or, if it exists, ``<stem>-<epoch ms><suffix>``.

    Args:
        path: Desired destination path
        timestamp_ms: Epoch milliseconds to use instead of the current time

    Returns:
        A path that does not exist yet
    """
    if not os.path.exists(path):
        return path
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return path.with_name(f"{path.stem}-{timestamp_ms}{path.suffix}")
