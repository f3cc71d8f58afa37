"""Utility functions for photo backup auditing."""

import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Generator, List, Optional, Union
import logging

logger = logging.getLogger(__name__)

# Google returns up to nanosecond precision, datetime only holds microseconds
_FRACTION_RE = re.compile(r'\.(\d+)')


def ensure_directory(path: Path) -> bool:
    """
    Ensure directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure

    Returns:
        True if directory exists or was created successfully
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return True
    except Exception as e:
        logger.error(f"Failed to create directory {path}: {e}")
        return False


def is_media_file(file_path: Path, supported_extensions: List[str]) -> bool:
    """
    Check if file is a supported media file.

    Args:
        file_path: Path to file
        supported_extensions: List of supported extensions (without dots)

    Returns:
        True if file is supported media type
    """
    if not file_path.is_file():
        return False

    extension = file_path.suffix.lower().lstrip('.')
    return extension in [ext.lower().lstrip('.') for ext in supported_extensions]


def find_media_files(directory: Path, supported_extensions: List[str]) -> Generator[Path, None, None]:
    """
    Recursively find all media files in a directory.

    Args:
        directory: Directory to search
        supported_extensions: List of supported file extensions

    Yields:
        Absolute Path objects for media files found
    """
    if not directory.exists() or not directory.is_dir():
        logger.warning(f"Directory does not exist or is not a directory: {directory}")
        return

    try:
        for file_path in sorted(directory.rglob('*')):
            if is_media_file(file_path, supported_extensions):
                yield file_path.resolve()
    except Exception as e:
        logger.error(f"Error scanning directory {directory}: {e}")


def parse_instant(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """
    Parse a timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (``Z`` suffix, date-only, or with offset),
    ``date`` and ``datetime`` objects. Naive values are read as UTC.

    Returns:
        Aware UTC datetime, or None if the value is empty or not a real instant
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        text = _FRACTION_RE.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text, count=1)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_instant(value: Optional[datetime]) -> Optional[str]:
    """Format an instant as ISO-8601 UTC with millisecond precision."""
    if value is None:
        return None
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"


def day_key(value: datetime) -> str:
    """Return the UTC calendar day of an instant as YYYY-MM-DD."""
    return value.astimezone(timezone.utc).date().isoformat()


def get_current_timestamp():
    """Get current timestamp as ISO string."""
    return datetime.now().isoformat()
