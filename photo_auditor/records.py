"""Capture-date resolution for local media files.

A ``LocalPhotoRecord`` combines the embedded capture time, the time guessed
from the filename and the configured fallback dates into a best-guess capture
instant and a sorted list of candidate days. Remote items are looked up per
candidate day.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .filename_dates import guess_time_from_filename
from .utils import day_key, format_instant, parse_instant

logger = logging.getLogger(__name__)

SOURCE_EMBEDDED = 'embedded'
SOURCE_FILENAME = 'filename'


@dataclass(frozen=True)
class DayRange:
    """One calendar day expressed as UTC start/end bounds."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.date() != self.end.date() or self.start > self.end:
            raise ValueError(f"Invalid day range: {self.start} - {self.end}")

    @classmethod
    def for_date(cls, day: date) -> 'DayRange':
        return cls(
            start=datetime(day.year, day.month, day.day, tzinfo=timezone.utc),
            end=datetime(day.year, day.month, day.day, 23, 59, 59, 999000, tzinfo=timezone.utc),
        )

    @classmethod
    def from_day_key(cls, key: str) -> 'DayRange':
        """Build the range for an explicit ``YYYY-MM-DD`` day."""
        return cls.for_date(date.fromisoformat(key))

    @classmethod
    def from_instant(cls, instant: datetime) -> 'DayRange':
        """Build the range for the local calendar date of ``instant``."""
        return cls.for_date(instant.astimezone().date())

    @property
    def day_key(self) -> str:
        return self.start.date().isoformat()

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class TimeSignal:
    """A capture-time signal from one source, present or absent."""
    source: str
    value: Optional[datetime] = None

    @property
    def present(self) -> bool:
        return self.value is not None

    def widened_day_keys(self) -> Set[str]:
        """The signal's UTC day plus the day before and after."""
        if self.value is None:
            return set()
        keys = set()
        for offset in (-1, 0, 1):
            try:
                keys.add(day_key(self.value + timedelta(days=offset)))
            except OverflowError:
                continue
        return keys


@dataclass(frozen=True)
class LocalPhotoRecord:
    """One local media file and the capture dates inferred for it."""
    file_path: str
    file_name: str
    embedded_capture_time: Optional[datetime]
    filename_guessed_time: Optional[datetime]
    possible_capture_time: Optional[datetime]
    candidate_day_ranges: Tuple[DayRange, ...]
    fallback_dates: Tuple[Any, ...] = ()
    width: Optional[int] = None
    height: Optional[int] = None
    metadata_error: Optional[str] = field(default=None, compare=False)

    @property
    def candidate_day_keys(self) -> List[str]:
        return [day_range.day_key for day_range in self.candidate_day_ranges]

    @property
    def has_resolution(self) -> bool:
        return bool(self.width and self.height)

    def with_fallback_dates(self, fallback_dates: Iterable[Any]) -> 'LocalPhotoRecord':
        """Return a new record whose candidate days use ``fallback_dates``."""
        return resolve(
            self.embedded_capture_time,
            self.file_path,
            fallback_dates,
            width=self.width,
            height=self.height,
            metadata_error=self.metadata_error,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'path': self.file_path,
            'filename': self.file_name,
            'embedded_capture_time': format_instant(self.embedded_capture_time),
            'filename_guessed_time': format_instant(self.filename_guessed_time),
            'possible_capture_time': format_instant(self.possible_capture_time),
            'candidate_days': self.candidate_day_keys,
            'width': self.width,
            'height': self.height,
        }


def _fallback_day_keys(fallback_dates: Sequence[Any]) -> Set[str]:
    keys = set()
    for value in fallback_dates:
        instant = parse_instant(value)
        if instant is None:
            logger.warning(f"Invalid fallback date {value!r}, skipped")
            continue
        keys.add(day_key(instant))
    return keys


def resolve(
    embedded_capture_time: Optional[datetime],
    file_path: str,
    fallback_dates: Iterable[Any] = (),
    width: Optional[int] = None,
    height: Optional[int] = None,
    metadata_error: Optional[str] = None,
) -> LocalPhotoRecord:
    """
    Build a record from the available capture-time signals.

    The embedded time wins over the filename guess for the possible capture
    time. Both signals contribute their day plus one day on each side to the
    candidate days; fallback dates are only consulted when neither signal is
    present.

    Args:
        embedded_capture_time: Capture time read from the file's metadata
        file_path: Path of the local file
        fallback_dates: Dates to try when the file carries no time signal
        width: Pixel width from metadata, if known
        height: Pixel height from metadata, if known
        metadata_error: Why metadata extraction failed, if it did

    Returns:
        Immutable LocalPhotoRecord
    """
    fallback_dates = tuple(fallback_dates)
    file_name = Path(file_path).name

    signals = [
        TimeSignal(SOURCE_EMBEDDED, parse_instant(embedded_capture_time)),
        TimeSignal(SOURCE_FILENAME, guess_time_from_filename(file_name)),
    ]
    present = [signal for signal in signals if signal.present]
    possible_capture_time = present[0].value if present else None

    day_keys: Set[str] = set()
    for signal in present:
        day_keys |= signal.widened_day_keys()

    if not day_keys:
        day_keys = _fallback_day_keys(fallback_dates)

    return LocalPhotoRecord(
        file_path=str(file_path),
        file_name=file_name,
        embedded_capture_time=signals[0].value,
        filename_guessed_time=signals[1].value,
        possible_capture_time=possible_capture_time,
        candidate_day_ranges=tuple(DayRange.from_day_key(key) for key in sorted(day_keys)),
        fallback_dates=fallback_dates,
        width=width,
        height=height,
        metadata_error=metadata_error,
    )
