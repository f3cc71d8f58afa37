"""Capture-time guessing from camera and app filename conventions."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Match, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _from_epoch_millis(match: Match) -> datetime:
    return EPOCH + timedelta(milliseconds=int(match.group(1)))


def _from_fields(date_digits: str, hour: str, minute: str, second: str = '0') -> datetime:
    # Wall-clock digits are taken as UTC fields, the same way the cloud side buckets them
    return datetime(
        int(date_digits[0:4]), int(date_digits[4:6]), int(date_digits[6:8]),
        int(hour), int(minute), int(second),
        tzinfo=timezone.utc,
    )


def _from_date_and_hhmm(match: Match) -> datetime:
    date_digits, time_digits = match.group(1), match.group(2)
    return _from_fields(date_digits, time_digits[0:2], time_digits[2:4])


def _from_date_and_hhmmss(match: Match) -> datetime:
    date_digits, time_digits = match.group(1), match.group(2)
    return _from_fields(date_digits, time_digits[0:2], time_digits[2:4], time_digits[4:6])


def _from_date_and_split_time(match: Match) -> datetime:
    return _from_fields(match.group(1), match.group(2), match.group(3), match.group(4))


def _from_dashed_datetime(match: Match) -> datetime:
    year, month, day, hour, minute, second = (int(g) for g in match.groups())
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


# Order matters: a name may satisfy more than one pattern and the first wins.
FILENAME_PATTERNS: List[Tuple[str, Pattern, Callable[[Match], datetime]]] = [
    ('facebook', re.compile(r'FB_IMG_(\d{13})', re.IGNORECASE), _from_epoch_millis),
    ('date_hhmm_prefix', re.compile(r'^(\d{8})_(\d{4})', re.IGNORECASE), _from_date_and_hhmm),
    ('screenshot', re.compile(r'Screenshot_(\d{8})-(\d{6})', re.IGNORECASE), _from_date_and_hhmmss),
    ('p_prefix', re.compile(r'P_(\d{8})_(\d{6})', re.IGNORECASE), _from_date_and_hhmmss),
    ('video_editor',
     re.compile(r'VideoEditor_(\d{8}) (\d{2})-(\d{2})-(\d{2})\.mp4', re.IGNORECASE),
     _from_date_and_split_time),
    ('v_prefix',
     re.compile(r'V_(\d{8})_(\d{6})_[a-z]{1,2}\d\.mp4', re.IGNORECASE),
     _from_date_and_hhmm),
    ('dashed_video',
     re.compile(r'(\d{4})-(\d{2})-(\d{2})-(\d{2})-(\d{2})-(\d{2})\.mp4', re.IGNORECASE),
     _from_dashed_datetime),
]


def guess_time_from_filename(name: str) -> Optional[datetime]:
    """
    Guess the capture instant encoded in a filename.

    The first matching pattern in ``FILENAME_PATTERNS`` decides. Digit groups
    that do not form a real date or time make the guess absent.

    Args:
        name: File name (basename, with extension)

    Returns:
        Aware UTC datetime, or None if no pattern matches
    """
    if not name:
        return None

    for pattern_name, pattern, build in FILENAME_PATTERNS:
        match = pattern.search(name)
        if not match:
            continue
        try:
            return build(match)
        except (ValueError, OverflowError) as e:
            logger.debug(f"Filename {name} matched {pattern_name} but is not a valid date: {e}")
            return None

    return None
