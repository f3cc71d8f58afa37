"""Backup audit: local files against the cloud library."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from tqdm import tqdm

from .cache import DayCache, FetchResult
from .config import Config
from .errors import PhotoDirectoryError
from .extractor import MetadataExtractor
from .matcher import Matcher, MatchResult, RemoteMediaItem
from .records import LocalPhotoRecord, resolve
from .utils import find_media_files, get_current_timestamp

logger = logging.getLogger(__name__)

REASON_NO_CANDIDATE_DAYS = 'no_candidate_days'
REASON_NO_CAPTURE_TIME = 'no_capture_time'
REASON_NO_REMOTE_ITEMS = 'no_remote_items'
REASON_NOT_FOUND = 'not_found'


class PhotoAuditor:
    """Checks which local media files already exist in the cloud library."""

    def __init__(self, config: Config, remote=None, cache: Optional[DayCache] = None,
                 extractor: Optional[MetadataExtractor] = None, matcher: Optional[Matcher] = None):
        """
        Initialize auditor with configuration and collaborators.

        Args:
            config: Configuration instance
            remote: Object with ``fetch_remote_items_for_day(day_key) -> FetchResult``;
                defaults to a Google Photos client
            cache: Day cache; built from configuration when omitted
            extractor: Metadata extractor; built from configuration when omitted
            matcher: Matcher; built from configuration when omitted
        """
        self.config = config
        self.parallel_jobs = config.get_parallel_jobs()
        self.extensions = config.get_all_extensions()
        self.use_file_times = config.use_file_times()

        self.cache = cache or DayCache(
            config.get_cache_dir(),
            recent_days=config.get_recent_days(),
            enabled=config.is_cache_enabled(),
        )
        self.extractor = extractor or MetadataExtractor(config.get_metadata_timeout())
        self.matcher = matcher or Matcher(
            tolerance_ms=config.get_time_tolerance_ms(),
            check_resolution=config.should_check_resolution(),
        )
        self._remote = remote
        self._remote_lock = threading.Lock()

    @property
    def remote(self):
        """Remote listing source; the default Google Photos client is authorized on first use."""
        with self._remote_lock:
            if self._remote is None:
                from .auth import AuthManager
                from .google_photos import GooglePhotosClient

                auth_manager = AuthManager(self.config.get_credentials_file(), self.config.get_token_file())
                auth_manager.authenticate()
                self._remote = GooglePhotosClient(
                    auth_manager,
                    page_size=self.config.get_page_size(),
                    timeout=self.config.get_request_timeout(),
                )
            return self._remote

    def build_record(self, file_path: Path, fallback_dates: Sequence[Any] = ()) -> LocalPhotoRecord:
        """Extract metadata for one file and resolve its candidate days."""
        metadata = self.extractor.extract(file_path)

        fallbacks = list(fallback_dates)
        if self.use_file_times and metadata.file_time is not None:
            fallbacks.append(metadata.file_time)

        return resolve(
            metadata.capture_time,
            str(file_path),
            fallbacks,
            width=metadata.width,
            height=metadata.height,
            metadata_error=metadata.error,
        )

    def build_records(self, files: Sequence[Path], fallback_dates: Sequence[Any] = ()) -> List[LocalPhotoRecord]:
        """Build records for many files in parallel. Result is ordered by path."""
        if not files:
            return []

        records: List[LocalPhotoRecord] = []
        parallel_jobs = max(1, min(self.parallel_jobs, len(files)))

        with tqdm(total=len(files), desc="Reading metadata", unit="files") as pbar:
            with ThreadPoolExecutor(max_workers=parallel_jobs) as executor:
                future_to_file = {
                    executor.submit(self.build_record, file_path, fallback_dates): file_path
                    for file_path in files
                }

                for future in as_completed(future_to_file):
                    file_path = future_to_file[future]
                    try:
                        records.append(future.result())
                    except Exception as e:
                        logger.error(f"Exception reading metadata of {file_path}: {e}")
                        records.append(resolve(None, str(file_path), fallback_dates, metadata_error=str(e)))
                    pbar.update(1)

        records.sort(key=lambda r: r.file_path)
        return records

    def fetch_days(self, day_keys: Iterable[str]) -> Dict[str, FetchResult]:
        """Fetch remote listings for distinct days, through the cache."""
        unique_keys = sorted(set(day_keys))
        if not unique_keys:
            return {}

        # Consent flow runs on this thread only
        remote = self.remote

        logger.info(f"Querying remote items for {len(unique_keys)} days")
        results: Dict[str, FetchResult] = {}
        parallel_jobs = max(1, min(self.parallel_jobs, len(unique_keys)))

        with tqdm(total=len(unique_keys), desc="Querying days", unit="days") as pbar:
            with ThreadPoolExecutor(max_workers=parallel_jobs) as executor:
                future_to_key = {
                    executor.submit(self._fetch_day, remote, key): key
                    for key in unique_keys
                }
                for future in as_completed(future_to_key):
                    key = future_to_key[future]
                    results[key] = future.result()
                    pbar.update(1)

        return results

    def _fetch_day(self, remote, day_key: str) -> FetchResult:
        return self.cache.get_or_compute(day_key, lambda: remote.fetch_remote_items_for_day(day_key))

    def _unmatched_reason(self, record: LocalPhotoRecord,
                          items_by_day: Dict[str, List[RemoteMediaItem]]) -> str:
        if not record.candidate_day_ranges:
            return REASON_NO_CANDIDATE_DAYS
        if not any(items_by_day.get(key) for key in record.candidate_day_keys):
            return REASON_NO_REMOTE_ITEMS
        if record.possible_capture_time is None:
            return REASON_NO_CAPTURE_TIME
        return REASON_NOT_FOUND

    def build_row(self, record: LocalPhotoRecord, match: Optional[MatchResult],
                  reason: Optional[str] = None) -> Dict[str, Any]:
        """Flatten a record and its winning match into one report row."""
        row = record.to_dict()
        row['matched'] = match is not None
        if match is not None:
            row.update(match.to_dict())
        else:
            row.update(MatchResult(matched_by_filename=False, data_matched=False).to_dict())
        row['reason'] = reason
        row['metadata_error'] = record.metadata_error
        return row

    def audit_records(self, records: Sequence[LocalPhotoRecord]) -> Dict[str, Any]:
        """
        Match already-resolved records against the remote library.

        Args:
            records: Local file records

        Returns:
            Dictionary with report rows and statistics
        """
        fetched = self.fetch_days(key for record in records for key in record.candidate_day_keys)
        items_by_day = {key: result.items for key, result in fetched.items()}
        day_errors = {key: result.error for key, result in fetched.items() if not result.ok}

        results: Dict[str, Any] = {
            'timestamp': get_current_timestamp(),
            'total_files': len(records),
            'matched_by_filename': 0,
            'matched_by_data': 0,
            'unmatched': 0,
            'unmatched_reasons': {},
            'days_queried': len(fetched),
            'day_errors': day_errors,
            'errors': [f"Remote listing failed for {key}: {error}" for key, error in sorted(day_errors.items())],
            'files': [],
        }

        for record in records:
            match = self.matcher.find_match(record, items_by_day)
            if match is not None:
                if match.matched_by_filename:
                    results['matched_by_filename'] += 1
                else:
                    results['matched_by_data'] += 1
                logger.info(f"Backup found for {record.file_name}")
                results['files'].append(self.build_row(record, match))
            else:
                reason = self._unmatched_reason(record, items_by_day)
                results['unmatched'] += 1
                results['unmatched_reasons'][reason] = results['unmatched_reasons'].get(reason, 0) + 1
                logger.info(f"No backup found for {record.file_name} ({reason})")
                results['files'].append(self.build_row(record, None, reason))

            if record.metadata_error:
                results['errors'].append(f"Metadata unavailable for {record.file_path}: {record.metadata_error}")

        results['cache_stats'] = dict(self.cache.stats)
        return results

    def run(self, photo_dir: Optional[Path] = None, fallback_dates: Optional[Sequence[Any]] = None,
            progress_callback: Optional[Callable[[int, int], None]] = None) -> Dict[str, Any]:
        """
        Audit every media file under the photo directory.

        Args:
            photo_dir: Directory to audit (defaults to configuration)
            fallback_dates: Fallback dates (defaults to configuration)
            progress_callback: Called with (files_found, 0) after scanning

        Returns:
            Dictionary with report rows and statistics
        """
        photo_dir = Path(photo_dir) if photo_dir else self.config.get_photo_dir()
        if fallback_dates is None:
            fallback_dates = self.config.get_fallback_dates()

        if not photo_dir.exists() or not photo_dir.is_dir():
            raise PhotoDirectoryError(f"Photo directory not accessible: {photo_dir}", path=str(photo_dir))

        logger.info(f"Auditing {photo_dir}")
        files = list(find_media_files(photo_dir, self.extensions))
        logger.info(f"Found {len(files):,} local media files")
        if progress_callback:
            progress_callback(len(files), 0)

        records = self.build_records(files, fallback_dates)
        results = self.audit_records(records)
        results['photo_dir'] = str(photo_dir)
        results['fallback_dates'] = [str(value) for value in fallback_dates]

        logger.info(
            f"Audit complete: {results['total_files']:,} files, "
            f"{results['matched_by_filename']:,} matched by filename, "
            f"{results['matched_by_data']:,} matched by time, "
            f"{results['unmatched']:,} unmatched"
        )
        return results
