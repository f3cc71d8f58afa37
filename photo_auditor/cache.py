"""Per-day cache of remote media item listings."""

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .matcher import RemoteMediaItem
from .utils import ensure_directory, get_current_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Remote items of one day, or the error that prevented listing them."""
    items: List[RemoteMediaItem] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DayCache:
    """Caches remote listings by ``YYYY-MM-DD`` day key.

    Within one run every key is fetched at most once, even when several
    threads ask for it at the same time. Successful listings are also written
    to ``cache_dir`` unless the day is within ``recent_days`` of today, since
    recent days can still change on the remote side.
    """

    def __init__(self, cache_dir: Path, recent_days: int = 3, enabled: bool = True,
                 today: Optional[date] = None):
        self.cache_dir = Path(cache_dir)
        self.recent_days = recent_days
        self.enabled = enabled
        self._today = today

        self._lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}
        self._memo: Dict[str, FetchResult] = {}
        self.stats = {'memory_hits': 0, 'disk_hits': 0, 'fetches': 0, 'writes': 0, 'errors': 0}

        if self.enabled:
            ensure_directory(self.cache_dir)

    @property
    def today(self) -> date:
        return self._today or date.today()

    def is_recent(self, day_key: str) -> bool:
        """Check if a day is too recent to be cached."""
        try:
            day = date.fromisoformat(day_key)
        except ValueError:
            return True
        return (self.today - day).days <= self.recent_days

    def cache_path(self, day_key: str) -> Path:
        return self.cache_dir / f"{day_key}.json"

    def get_or_compute(self, day_key: str, compute: Callable[[], FetchResult]) -> FetchResult:
        """
        Return the listing for ``day_key``, calling ``compute`` only on a miss.

        Args:
            day_key: Day in ``YYYY-MM-DD`` form
            compute: Fetches the listing from the remote side

        Returns:
            FetchResult from memory, disk, or ``compute``
        """
        with self._lock:
            if day_key in self._memo:
                self.stats['memory_hits'] += 1
                return self._memo[day_key]
            key_lock = self._key_locks.setdefault(day_key, threading.Lock())

        with key_lock:
            with self._lock:
                if day_key in self._memo:
                    self.stats['memory_hits'] += 1
                    return self._memo[day_key]

            result = self._read(day_key)
            if result is not None:
                with self._lock:
                    self.stats['disk_hits'] += 1
            else:
                result = self._compute(day_key, compute)
                if result.ok:
                    self._write(day_key, result)

            with self._lock:
                self._memo[day_key] = result
            return result

    def _compute(self, day_key: str, compute: Callable[[], FetchResult]) -> FetchResult:
        with self._lock:
            self.stats['fetches'] += 1
        try:
            result = compute()
        except Exception as e:
            logger.error(f"Fetching remote items for {day_key} failed: {e}")
            result = FetchResult(error=str(e))

        if not result.ok:
            with self._lock:
                self.stats['errors'] += 1
            logger.warning(f"Remote listing for {day_key} failed, not caching: {result.error}")
        return result

    def _read(self, day_key: str) -> Optional[FetchResult]:
        if not self.enabled:
            return None
        if self.is_recent(day_key):
            return None

        path = self.cache_path(day_key)
        if not path.exists():
            return None

        try:
            with open(path, 'r') as f:
                data = json.load(f)
            items = [RemoteMediaItem.from_dict(item) for item in data.get('items', [])]
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable cache file {path}: {e}")
            return None

        logger.info(f"Loaded {len(items)} cached items for {day_key}")
        return FetchResult(items=items)

    def _write(self, day_key: str, result: FetchResult) -> None:
        if not self.enabled:
            return
        if self.is_recent(day_key):
            logger.info(f"{day_key} is within the last {self.recent_days} days, not caching")
            return

        path = self.cache_path(day_key)
        payload: Dict[str, Any] = {
            'day': day_key,
            'fetched_at': get_current_timestamp(),
            'items': [item.to_dict() for item in result.items],
        }
        try:
            tmp_path = path.with_suffix('.json.tmp')
            with open(tmp_path, 'w') as f:
                json.dump(payload, f, indent=2)
            tmp_path.replace(path)
        except OSError as e:
            logger.warning(f"Failed to write cache file {path}: {e}")
            return

        with self._lock:
            self.stats['writes'] += 1
        logger.info(f"Cached {len(result.items)} items for {day_key}")

    def entries(self) -> List[Path]:
        """List cache files on disk."""
        if not self.cache_dir.exists():
            return []
        return sorted(self.cache_dir.glob('????-??-??.json'))

    def clear(self, older_than_days: Optional[int] = None) -> int:
        """
        Remove cache files.

        Args:
            older_than_days: Only remove days older than this many days

        Returns:
            Number of files removed
        """
        removed = 0
        for path in self.entries():
            if older_than_days is not None:
                try:
                    day = date.fromisoformat(path.stem)
                except ValueError:
                    continue
                if (self.today - day).days <= older_than_days:
                    continue
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not remove cache file {path}: {e}")

        with self._lock:
            self._memo.clear()
        logger.info(f"Removed {removed} cache files from {self.cache_dir}")
        return removed
