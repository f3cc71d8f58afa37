"""Reporting and statistics for backup audits."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional

from .utils import ensure_directory

logger = logging.getLogger(__name__)

REASON_LABELS = {
    'no_candidate_days': "no capture time could be inferred and no fallback date applied",
    'no_capture_time': "no capture time, and no remote item with the same filename",
    'no_remote_items': "the cloud library has no items on the candidate days",
    'not_found': "no remote item matched by filename or time",
}


class AuditReporter:
    """Generates reports and statistics for backup audits."""

    def __init__(self, config):
        """Initialize reporter with configuration."""
        self.config = config
        self.logs_dir = Path(config.get_logs_dir())

    def generate_summary_report(self, results: Dict[str, Any]) -> str:
        """
        Generate human-readable summary report.

        Args:
            results: Results from the audit run

        Returns:
            Formatted summary report
        """
        total = results.get('total_files', 0)
        matched = results.get('matched_by_filename', 0) + results.get('matched_by_data', 0)

        report = []
        report.append("=" * 50)
        report.append("PHOTO BACKUP AUDIT SUMMARY REPORT")
        report.append("=" * 50)
        report.append(f"Completed: {results.get('timestamp', 'Unknown')}")
        report.append(f"Directory: {results.get('photo_dir', 'N/A')}")
        report.append("")

        report.append("=== FILE STATISTICS ===")
        report.append(f"• Local files checked: {total:,}")
        report.append(f"• Backed up: {matched:,}")
        report.append(f"    - matched by filename: {results.get('matched_by_filename', 0):,}")
        report.append(f"    - matched by capture time: {results.get('matched_by_data', 0):,}")
        report.append(f"• Not found: {results.get('unmatched', 0):,}")
        for reason, count in sorted(results.get('unmatched_reasons', {}).items()):
            report.append(f"    - {count:,}: {REASON_LABELS.get(reason, reason)}")
        report.append("")

        report.append("=== REMOTE QUERIES ===")
        report.append(f"• Days queried: {results.get('days_queried', 0):,}")
        stats = results.get('cache_stats', {})
        if stats:
            report.append(f"• Cache hits: {stats.get('disk_hits', 0):,} from disk, "
                          f"{stats.get('memory_hits', 0):,} in memory")
            report.append(f"• Live fetches: {stats.get('fetches', 0):,} "
                          f"({stats.get('errors', 0):,} failed)")
        report.append("")

        missing = [row for row in results.get('files', []) if not row.get('matched')]
        if missing:
            report.append("=== FILES WITHOUT BACKUP ===")
            for row in missing[:20]:
                report.append(f"❌ {row.get('path')}")
            if len(missing) > 20:
                report.append(f"... and {len(missing) - 20} more")
            report.append("")

        errors = results.get('errors', [])
        if errors:
            report.append("=== ERRORS ENCOUNTERED ===")
            for error in errors:
                report.append(f"⚠️ {error}")
            report.append("")

        status = "✅ ALL FILES BACKED UP" if total and matched == total else "⚠️ SOME FILES NOT FOUND"
        if not total:
            status = "NO FILES CHECKED"
        report.append(f"STATUS: {status}")

        return "\n".join(report)

    def save_report(self, results: Dict[str, Any], filename: Optional[str] = None) -> str:
        """
        Save the per-file JSON report.

        Args:
            results: Results dictionary
            filename: Optional filename or path (auto-generated if None)

        Returns:
            Path to saved report file
        """
        if filename is None:
            filename = f"{datetime.now().strftime('%Y%m%d%H%M%S')}-result.json"

        report_file = Path(filename)
        if not report_file.is_absolute() and report_file.parent == Path('.'):
            report_file = self.logs_dir / report_file
        ensure_directory(report_file.parent)

        payload = {
            'metadata': {
                'created': results.get('timestamp'),
                'photo_dir': results.get('photo_dir'),
                'fallback_dates': results.get('fallback_dates', []),
                'total_files': results.get('total_files', 0),
                'matched_by_filename': results.get('matched_by_filename', 0),
                'matched_by_data': results.get('matched_by_data', 0),
                'unmatched': results.get('unmatched', 0),
                'days_queried': results.get('days_queried', 0),
                'time_tolerance_ms': self.config.get_time_tolerance_ms(),
                'check_resolution': self.config.should_check_resolution(),
                'errors': results.get('errors', []),
            },
            'files': results.get('files', []),
        }

        try:
            with open(report_file, 'w') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            logger.info(f"Report saved: {report_file}")
            return str(report_file)
        except Exception as e:
            logger.error(f"Failed to save report: {e}")
            raise

    def latest_report(self) -> Optional[Path]:
        """Return the most recent auto-named report, if any."""
        if not self.logs_dir.exists():
            return None
        reports: List[Path] = sorted(self.logs_dir.glob('*-result.json'))
        return reports[-1] if reports else None
