#!/usr/bin/env python3
"""
Photo Backup Audit CLI

Checks whether the photos and videos in a local folder have already been
backed up to Google Photos, and writes a per-file report.
"""

import sys
import logging
import click
from pathlib import Path
from colorama import init, Fore, Style

# Add the photo_auditor package to path
sys.path.insert(0, str(Path(__file__).parent))

from photo_auditor import (
    AuditReporter,
    Config,
    DayCache,
    MetadataExtractor,
    PhotoAuditor,
)
from photo_auditor.errors import PhotoAuditorError
from photo_auditor.utils import format_instant

# Initialize colorama for cross-platform colored output
init()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

# Will be reconfigured after config is loaded
_file_handler = None
_console_handler = None


def setup_logging(level: str = 'INFO', log_dir: Path = None):
    """Set up logging configuration."""
    global _console_handler
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Console handler on stderr, report output on stdout
    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)
    _console_handler = logging.StreamHandler(sys.stderr)
    _console_handler.setFormatter(formatter)
    root_logger.addHandler(_console_handler)

    if log_dir:
        _setup_file_logging(log_dir, formatter, root_logger)

    # Reduce noise from libraries
    for noisy in ('urllib3', 'google', 'google_auth_oauthlib', 'exifread'):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _setup_file_logging(log_dir: Path, formatter: logging.Formatter, root_logger: logging.Logger,
                        log_name: str = 'photo_audit'):
    """Add file handler to root logger."""
    global _file_handler
    log_dir.mkdir(parents=True, exist_ok=True)

    # Remove previous file handler if any
    if _file_handler is not None:
        root_logger.removeHandler(_file_handler)
        _file_handler.close()

    _file_handler = logging.FileHandler(log_dir / f'{log_name}.log')
    _file_handler.setFormatter(formatter)
    root_logger.addHandler(_file_handler)


def print_header(title: str):
    """Print a formatted header."""
    click.echo(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{title.center(60)}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}\n")


def print_success(message: str):
    """Print success message."""
    click.echo(f"{Fore.GREEN}OK: {message}{Style.RESET_ALL}")


def print_warning(message: str):
    """Print warning message."""
    click.echo(f"{Fore.YELLOW}WARN: {message}{Style.RESET_ALL}")


def print_error(message: str):
    """Print error message."""
    click.echo(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}")


def print_info(message: str):
    """Print info message."""
    click.echo(f"{Fore.BLUE}INFO: {message}{Style.RESET_ALL}")


@click.group()
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--log-level', '-l', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Logging level')
@click.pass_context
def cli(ctx, config, log_level):
    """Photo Backup Auditor - find local photos missing from Google Photos."""

    # Initial logging setup (console only)
    setup_logging(log_level)

    try:
        config_obj = Config(config)

        # Now set up file logging in the configured logs directory
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
        log_name = ctx.invoked_subcommand or 'photo_audit'
        _setup_file_logging(config_obj.get_logs_dir(), formatter, logging.getLogger(), log_name)

        ctx.ensure_object(dict)
        ctx.obj['config'] = config_obj

    except Exception as e:
        print_error(f"Failed to load configuration: {e}")
        sys.exit(1)


@cli.command()
@click.option('--photo-dir', '-d', type=click.Path(file_okay=False), help='Directory to audit (override config)')
@click.option('--fallback-date', '-f', multiple=True,
              help='Date to search when a file has no capture time (repeatable, override config)')
@click.option('--no-cache', is_flag=True, help='Always query Google Photos, ignore and skip the day cache')
@click.option('--report', '-r', help='Save JSON report to specific file')
@click.option('--progress', is_flag=True, help='Show detailed progress information')
@click.pass_context
def run(ctx, photo_dir, fallback_date, no_cache, report, progress):
    """Audit local files against Google Photos."""

    print_header("PHOTO BACKUP AUDIT")

    config = ctx.obj['config']

    errors = config.validate_config(check_photo_dir=photo_dir is None)
    if fallback_date:
        errors = [e for e in errors if not e.startswith("Invalid fallback date")]
    if errors:
        print_error("Configuration validation failed:")
        for error in errors:
            click.echo(f"  - {error}")
        sys.exit(1)

    cache = None
    if no_cache:
        cache = DayCache(config.get_cache_dir(), recent_days=config.get_recent_days(), enabled=False)

    auditor = PhotoAuditor(config, cache=cache)
    reporter = AuditReporter(config)

    try:
        def progress_callback(current, total):
            if progress:
                click.echo(f"Found: {current:,} local media files")

        results = auditor.run(
            photo_dir=Path(photo_dir) if photo_dir else None,
            fallback_dates=list(fallback_date) if fallback_date else None,
            progress_callback=progress_callback,
        )

        if results['errors']:
            print_warning(f"Audit completed with {len(results['errors'])} errors:")
            for error in results['errors'][:5]:
                click.echo(f"  - {error}")
            if len(results['errors']) > 5:
                click.echo(f"  - ... and {len(results['errors']) - 5} more errors")

        matched = results['matched_by_filename'] + results['matched_by_data']
        print_success(f"Audit complete: {matched:,}/{results['total_files']:,} files backed up")
        if results['unmatched']:
            print_warning(f"Not found in Google Photos: {results['unmatched']:,}")

        report_file = reporter.save_report(results, report)
        print_success(f"Report saved: {report_file}")

        click.echo("\n" + reporter.generate_summary_report(results))

    except PhotoAuditorError as e:
        print_error(e.message)
        sys.exit(1)
    except Exception as e:
        print_error(f"Audit failed: {e}")
        sys.exit(1)


@cli.command()
@click.argument('files', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--fallback-date', '-f', multiple=True, help='Fallback date (repeatable, override config)')
@click.pass_context
def guess(ctx, files, fallback_date):
    """Show the capture time and candidate days inferred for FILES."""

    config = ctx.obj['config']
    fallback_dates = list(fallback_date) if fallback_date else config.get_fallback_dates()
    auditor = PhotoAuditor(
        config,
        cache=DayCache(config.get_cache_dir(), enabled=False),
        extractor=MetadataExtractor(config.get_metadata_timeout()),
    )

    for file_path in files:
        record = auditor.build_record(Path(file_path).resolve(), fallback_dates)
        click.echo(f"{Fore.CYAN}{record.file_name}{Style.RESET_ALL}")
        click.echo(f"  Embedded time:  {format_instant(record.embedded_capture_time) or '-'}")
        click.echo(f"  Filename time:  {format_instant(record.filename_guessed_time) or '-'}")
        click.echo(f"  Possible time:  {format_instant(record.possible_capture_time) or '-'}")
        if record.width and record.height:
            click.echo(f"  Resolution:     {record.width}x{record.height}")
        days = ', '.join(record.candidate_day_keys) or 'none'
        click.echo(f"  Candidate days: {days}")
        if record.metadata_error:
            print_warning(f"Metadata unavailable: {record.metadata_error}")


@cli.command()
@click.option('--force', is_flag=True, help='Ignore stored token and authorize again')
@click.pass_context
def auth(ctx, force):
    """Authorize read-only access to Google Photos."""
    from photo_auditor.auth import AuthManager

    config = ctx.obj['config']
    manager = AuthManager(config.get_credentials_file(), config.get_token_file())
    try:
        manager.authenticate(force=force)
        print_success(f"Token stored in {config.get_token_file()}")
    except PhotoAuditorError as e:
        print_error(e.message)
        sys.exit(1)


@cli.command('clear-cache')
@click.option('--older-than-days', type=int, default=None, help='Only remove days older than N days')
@click.pass_context
def clear_cache(ctx, older_than_days):
    """Remove cached Google Photos day listings."""
    config = ctx.obj['config']
    cache = DayCache(config.get_cache_dir(), recent_days=config.get_recent_days())
    removed = cache.clear(older_than_days)
    print_success(f"Removed {removed:,} cached days from {config.get_cache_dir()}")


@cli.command()
@click.pass_context
def status(ctx):
    """Show configuration, cache and last report."""

    print_header("AUDIT STATUS")

    config = ctx.obj['config']
    cache = DayCache(config.get_cache_dir(), recent_days=config.get_recent_days(), enabled=False)
    latest = AuditReporter(config).latest_report()

    click.echo(f"Configuration: {config.config_path}")
    click.echo(f"Photo directory: {config.get_photo_dir()}")
    click.echo(f"Time tolerance: {config.get_time_tolerance_ms():,} ms")
    click.echo(f"Resolution check: {'on' if config.should_check_resolution() else 'off'}")
    click.echo()

    if config.get_token_file().exists():
        print_success(f"Token: {config.get_token_file()}")
    else:
        click.echo("  [ ] Token: not authorized yet (run 'auth')")

    print_info(f"Cached days: {len(cache.entries()):,} in {config.get_cache_dir()}")

    if latest:
        print_success(f"Last report: {latest}")
    else:
        click.echo("  [ ] Report: no audit run yet")


if __name__ == '__main__':
    cli()
