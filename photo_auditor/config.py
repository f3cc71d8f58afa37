"""Configuration management for photo backup auditing."""

import yaml
from pathlib import Path
from typing import Dict, List, Any, Optional
import logging

from .errors import ConfigurationError
from .utils import parse_instant

logger = logging.getLogger(__name__)

DEFAULT_TIME_TOLERANCE_MS = 5 * 60 * 1000
DEFAULT_RECENT_DAYS = 3


class Config:
    """Manages configuration for photo backup auditing from YAML files."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config file. If None, searches for config files.
        """
        self.config_path = config_path or self._find_config_file()
        self.config: Dict[str, Any] = {}
        self._load_config()
        # Relative paths in the file are resolved against its own directory
        self.base_dir = Path(self.config_path).resolve().parent

    def _find_config_file(self) -> str:
        """Find configuration file in standard locations."""
        possible_paths = [
            Path.cwd() / "config.local.yml",
            Path.cwd() / "config.yml",
            Path(__file__).parent.parent / "config.local.yml",
            Path(__file__).parent.parent / "config.yml",
        ]

        for config_file in possible_paths:
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return str(config_file.resolve())

        raise ConfigurationError("No configuration file found. Expected config.yml or config.local.yml")

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not Path(self.config_path).exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_path}",
                                     path=str(self.config_path))
        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {self.config_path}")
        except yaml.YAMLError as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}",
                                     path=str(self.config_path)) from e

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path like 'matching.time_tolerance_ms'
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        try:
            for key in keys:
                value = value[key]
            return value if value is not None else default
        except (KeyError, TypeError):
            return default

    def _resolve_path(self, value: str) -> Path:
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def get_photo_dir(self) -> Path:
        """Get the local directory to audit."""
        return self._resolve_path(self.get('audit.photo_dir', 'photos_to_check'))

    def get_supported_extensions(self) -> Dict[str, List[str]]:
        """Get supported file extensions for photos and videos."""
        extensions = self.get('audit.extensions', {})
        return {
            'photos': extensions.get('photos', ['jpg', 'jpeg', 'png']),
            'videos': extensions.get('videos', ['mp4']),
        }

    def get_all_extensions(self) -> List[str]:
        extensions = self.get_supported_extensions()
        return extensions['photos'] + extensions['videos']

    def get_fallback_dates(self) -> List[Any]:
        """Get fallback dates used when a file has no capture-time signal."""
        return list(self.get('audit.fallback_dates', []))

    def use_file_times(self) -> bool:
        """Check if the file modification time should be added as a fallback date."""
        return bool(self.get('audit.use_file_times', False))

    def get_time_tolerance_ms(self) -> int:
        """Get time-proximity tolerance in milliseconds."""
        return int(self.get('matching.time_tolerance_ms', DEFAULT_TIME_TOLERANCE_MS))

    def should_check_resolution(self) -> bool:
        """Check if resolution must agree for a time-proximity match."""
        return bool(self.get('matching.check_resolution', True))

    def is_cache_enabled(self) -> bool:
        return bool(self.get('cache.enabled', True))

    def get_cache_dir(self) -> Path:
        """Get directory for per-day remote item cache files."""
        return self._resolve_path(self.get('cache.dir', 'cache'))

    def get_recent_days(self) -> int:
        """Get number of recent days that are never cached."""
        return int(self.get('cache.recent_days', DEFAULT_RECENT_DAYS))

    def get_credentials_file(self) -> Path:
        return self._resolve_path(self.get('google.credentials_file', 'credentials.json'))

    def get_token_file(self) -> Path:
        return self._resolve_path(self.get('google.token_file', 'token.json'))

    def get_page_size(self) -> int:
        return int(self.get('google.page_size', 100))

    def get_request_timeout(self) -> float:
        return float(self.get('google.request_timeout', 30))

    def get_metadata_timeout(self) -> float:
        """Get per-file metadata extraction timeout in seconds."""
        return float(self.get('metadata.timeout_seconds', 5))

    def get_parallel_jobs(self) -> int:
        """Get number of parallel jobs to run."""
        return int(self.get('process.parallel_jobs', 4))

    def get_logs_dir(self) -> Path:
        """Get directory for log files and result reports."""
        return self._resolve_path(self.get('output.logs_dir', 'logs'))

    def get_log_level(self) -> str:
        """Get logging level."""
        return self.get('logging.level', 'INFO')

    def validate_config(self, check_photo_dir: bool = True) -> List[str]:
        """
        Validate configuration and return list of errors.

        Args:
            check_photo_dir: Whether the configured photo directory must exist

        Returns:
            List of validation error messages
        """
        errors = []

        if check_photo_dir:
            photo_dir = self.get_photo_dir()
            if not photo_dir.exists():
                errors.append(f"Photo directory does not exist: {photo_dir}")
            elif not photo_dir.is_dir():
                errors.append(f"Photo directory is not a directory: {photo_dir}")

        if not self.get_all_extensions():
            errors.append("No supported file extensions configured")

        for value in self.get_fallback_dates():
            if parse_instant(value) is None:
                errors.append(f"Invalid fallback date: {value!r}")

        if self.get_time_tolerance_ms() < 0:
            errors.append(f"Invalid time_tolerance_ms: {self.get_time_tolerance_ms()} (must be >= 0)")

        if self.get_recent_days() < 0:
            errors.append(f"Invalid recent_days: {self.get_recent_days()} (must be >= 0)")

        page_size = self.get_page_size()
        if page_size < 1 or page_size > 100:
            errors.append(f"Invalid page_size value: {page_size} (must be 1-100)")

        parallel_jobs = self.get_parallel_jobs()
        if parallel_jobs < 1 or parallel_jobs > 32:
            errors.append(f"Invalid parallel_jobs value: {parallel_jobs} (must be 1-32)")

        if self.get_metadata_timeout() <= 0:
            errors.append("metadata.timeout_seconds must be positive")

        return errors

    def __str__(self) -> str:
        """String representation of configuration."""
        return f"Config(path={self.config_path}, photo_dir={self.get_photo_dir()})"
