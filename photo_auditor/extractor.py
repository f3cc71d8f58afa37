"""Embedded metadata extraction for local media files."""

import json
import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import exifread

from .utils import parse_instant

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = ('mp4', 'mov', 'avi', 'mkv', 'mts', '3gp', 'm4v')

EXIF_DATE_TAGS = ('EXIF DateTimeOriginal', 'EXIF DateTimeDigitized', 'Image DateTime')
EXIF_OFFSET_TAGS = {
    'EXIF DateTimeOriginal': 'EXIF OffsetTimeOriginal',
    'EXIF DateTimeDigitized': 'EXIF OffsetTimeDigitized',
    'Image DateTime': 'EXIF OffsetTime',
}
EXIF_SIZE_TAGS = (
    ('EXIF ExifImageWidth', 'EXIF ExifImageLength'),
    ('Image ImageWidth', 'Image ImageLength'),
)


@dataclass(frozen=True)
class EmbeddedMetadata:
    """What a file's own metadata says about it. Every field may be absent."""
    capture_time: Optional[datetime] = None
    width: Optional[int] = None
    height: Optional[int] = None
    file_time: Optional[datetime] = None
    error: Optional[str] = None


def parse_exif_datetime(value: str, offset: Optional[str] = None) -> Optional[datetime]:
    """
    Parse an EXIF ``YYYY:MM:DD HH:MM:SS`` timestamp.

    Args:
        value: EXIF date/time string
        offset: EXIF offset string like ``+08:00``; without it the fields are read as UTC

    Returns:
        Aware UTC datetime, or None for blank or impossible values
    """
    try:
        parsed = datetime.strptime(value.strip()[:19], '%Y:%m:%d %H:%M:%S')
    except ValueError:
        return None

    tz = timezone.utc
    if offset:
        try:
            sign = -1 if offset.strip().startswith('-') else 1
            hours, minutes = offset.strip().lstrip('+-').split(':')
            tz = timezone(sign * timedelta(hours=int(hours), minutes=int(minutes)))
        except ValueError:
            logger.debug(f"Ignoring malformed EXIF offset {offset!r}")

    return parsed.replace(tzinfo=tz).astimezone(timezone.utc)


def _tag_int(tag: Any) -> Optional[int]:
    try:
        value = int(tag.values[0])
    except (AttributeError, IndexError, TypeError, ValueError):
        return None
    return value if value > 0 else None


class MetadataExtractor:
    """Reads capture time and dimensions from images (EXIF) and videos (ffprobe)."""

    def __init__(self, timeout_seconds: float = 5):
        self.timeout_seconds = timeout_seconds

    def extract(self, file_path: Path) -> EmbeddedMetadata:
        """
        Extract embedded metadata without raising.

        Args:
            file_path: Path to media file

        Returns:
            EmbeddedMetadata; ``error`` says why fields are missing when extraction failed
        """
        file_path = Path(file_path)
        file_time = self._file_time(file_path)
        ext = file_path.suffix.lower().lstrip('.')

        try:
            if ext in VIDEO_EXTENSIONS:
                capture_time, width, height = self._extract_video(file_path)
            else:
                capture_time, width, height = self._extract_exif(file_path)
        except subprocess.TimeoutExpired:
            msg = f"metadata extraction timed out after {self.timeout_seconds}s"
            logger.warning(f"{file_path.name}: {msg}")
            return EmbeddedMetadata(file_time=file_time, error=msg)
        except Exception as e:
            logger.warning(f"Could not read metadata from {file_path}: {e}")
            return EmbeddedMetadata(file_time=file_time, error=str(e))

        if capture_time is None:
            logger.debug(f"No embedded capture time in {file_path.name}")

        return EmbeddedMetadata(
            capture_time=capture_time,
            width=width,
            height=height,
            file_time=file_time,
        )

    def _file_time(self, file_path: Path) -> Optional[datetime]:
        try:
            return datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc)
        except OSError as e:
            logger.debug(f"Could not stat {file_path}: {e}")
            return None

    def _extract_exif(self, file_path: Path) -> Tuple[Optional[datetime], Optional[int], Optional[int]]:
        with open(file_path, 'rb') as f:
            tags = exifread.process_file(f, details=False)

        capture_time = None
        for tag_name in EXIF_DATE_TAGS:
            tag = tags.get(tag_name)
            if not tag:
                continue
            offset_tag = tags.get(EXIF_OFFSET_TAGS[tag_name])
            capture_time = parse_exif_datetime(str(tag), str(offset_tag) if offset_tag else None)
            if capture_time:
                break

        width = height = None
        for width_tag, height_tag in EXIF_SIZE_TAGS:
            width, height = _tag_int(tags.get(width_tag)), _tag_int(tags.get(height_tag))
            if width and height:
                break

        return capture_time, width, height

    def _extract_video(self, file_path: Path) -> Tuple[Optional[datetime], Optional[int], Optional[int]]:
        result = subprocess.run(
            ['ffprobe', '-v', 'quiet', '-print_format', 'json',
             '-show_entries', 'format_tags=creation_time:stream=codec_type,width,height',
             str(file_path)],
            capture_output=True, text=True, timeout=self.timeout_seconds
        )
        if result.returncode != 0:
            raise RuntimeError(f"ffprobe exited with {result.returncode}")

        data: Dict[str, Any] = json.loads(result.stdout or '{}')
        creation_time = data.get('format', {}).get('tags', {}).get('creation_time', '')

        capture_time = None
        if creation_time:
            # Format: "2020-07-28T11:49:03.000000Z"
            capture_time = parse_instant(creation_time)

        width = height = None
        for stream in data.get('streams', []):
            if stream.get('codec_type') == 'video' and stream.get('width') and stream.get('height'):
                width, height = int(stream['width']), int(stream['height'])
                break

        return capture_time, width, height
