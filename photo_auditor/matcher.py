"""Matching local files against remote media items."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import DEFAULT_TIME_TOLERANCE_MS
from .records import LocalPhotoRecord
from .utils import format_instant, parse_instant

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


@dataclass(frozen=True)
class RemoteMediaItem:
    """A media item listed by the cloud library."""
    file_name: str
    creation_time: Optional[datetime]
    width: Optional[int] = None
    height: Optional[int] = None
    id: Optional[str] = None
    product_url: Optional[str] = None

    @classmethod
    def from_api(cls, item: Mapping[str, Any]) -> 'RemoteMediaItem':
        """Build from a Google Photos ``mediaItem`` resource."""
        media_metadata = item.get('mediaMetadata') or {}
        return cls(
            file_name=item.get('filename', ''),
            creation_time=parse_instant(media_metadata.get('creationTime')),
            width=_to_int(media_metadata.get('width')),
            height=_to_int(media_metadata.get('height')),
            id=item.get('id'),
            product_url=item.get('productUrl'),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RemoteMediaItem':
        return cls(
            file_name=data.get('filename', ''),
            creation_time=parse_instant(data.get('creation_time')),
            width=_to_int(data.get('width')),
            height=_to_int(data.get('height')),
            id=data.get('id'),
            product_url=data.get('product_url'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'filename': self.file_name,
            'creation_time': format_instant(self.creation_time),
            'width': self.width,
            'height': self.height,
            'product_url': self.product_url,
        }

    @property
    def has_resolution(self) -> bool:
        return bool(self.width and self.height)


@dataclass(frozen=True)
class MatchResult:
    """Outcome of comparing one local file with one remote item."""
    matched_by_filename: bool
    data_matched: bool
    time_delta_millis: Optional[int] = None
    remote_item: Optional[RemoteMediaItem] = None

    @property
    def matched(self) -> bool:
        return self.matched_by_filename or self.data_matched

    def to_dict(self) -> Dict[str, Any]:
        remote = self.remote_item
        return {
            'matched_by_filename': self.matched_by_filename,
            'data_matched': self.data_matched,
            'time_delta_millis': self.time_delta_millis,
            'remote_id': remote.id if remote else None,
            'remote_filename': remote.file_name if remote else None,
            'remote_creation_time': format_instant(remote.creation_time) if remote else None,
            'remote_url': remote.product_url if remote else None,
        }


class Matcher:
    """Decides whether a local file and a remote item are the same media.

    Exact filename equality is a match on its own. Otherwise the remote
    creation time must lie within ``tolerance_ms`` of the local possible
    capture time and, when ``check_resolution`` is on and both sides know
    their dimensions, the dimensions must agree.
    """

    def __init__(self, tolerance_ms: int = DEFAULT_TIME_TOLERANCE_MS, check_resolution: bool = True):
        if tolerance_ms < 0:
            raise ValueError(f"tolerance_ms must be >= 0, got {tolerance_ms}")
        self.tolerance_ms = tolerance_ms
        self.check_resolution = check_resolution

    def match(self, local: LocalPhotoRecord, remote: RemoteMediaItem) -> MatchResult:
        if local.file_name == remote.file_name:
            return MatchResult(matched_by_filename=True, data_matched=True, remote_item=remote)

        if local.possible_capture_time is None or remote.creation_time is None:
            return MatchResult(matched_by_filename=False, data_matched=False)

        delta = remote.creation_time - local.possible_capture_time
        delta_ms = abs(round(delta.total_seconds() * 1000))
        time_match = delta_ms <= self.tolerance_ms

        resolution_match = True
        if self.check_resolution and local.has_resolution and remote.has_resolution:
            resolution_match = local.width == remote.width and local.height == remote.height
            logger.debug(
                f"Resolution {local.file_name} {local.width}x{local.height} vs "
                f"{remote.file_name} {remote.width}x{remote.height}: "
                f"{'match' if resolution_match else 'mismatch'}"
            )

        data_matched = time_match and resolution_match
        return MatchResult(
            matched_by_filename=False,
            data_matched=data_matched,
            time_delta_millis=delta_ms,
            remote_item=remote if data_matched else None,
        )

    def find_match(
        self,
        local: LocalPhotoRecord,
        items_by_day: Mapping[str, Sequence[RemoteMediaItem]],
    ) -> Optional[MatchResult]:
        """
        Find the first remote item matching ``local`` across its candidate days.

        Every candidate day is searched for an exact filename first; only when
        no day has one are the days searched again, in ascending order, with
        the time and resolution comparison.

        Args:
            local: Local file record
            items_by_day: Remote items keyed by ``YYYY-MM-DD`` day

        Returns:
            The winning MatchResult, or None
        """
        day_keys: List[str] = local.candidate_day_keys

        for key in day_keys:
            for remote in items_by_day.get(key, ()):
                if remote.file_name == local.file_name:
                    return MatchResult(matched_by_filename=True, data_matched=True, remote_item=remote)

        if local.possible_capture_time is None:
            return None

        for key in day_keys:
            for remote in items_by_day.get(key, ()):
                result = self.match(local, remote)
                if result.data_matched:
                    return result

        return None
