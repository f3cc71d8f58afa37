"""Shared fixtures for photo backup audit tests."""

import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from photo_auditor.cache import FetchResult
from photo_auditor.extractor import EmbeddedMetadata
from photo_auditor.matcher import RemoteMediaItem


@pytest.fixture
def photo_dir(tmp_path):
    """Create an empty local photo directory."""
    path = tmp_path / 'photos_to_check'
    path.mkdir()
    return path


@pytest.fixture
def config_data(photo_dir, tmp_path):
    return {
        'audit': {
            'photo_dir': str(photo_dir),
            'extensions': {
                'photos': ['jpg', 'jpeg', 'png'],
                'videos': ['mp4', 'mov'],
            },
            'fallback_dates': [],
            'use_file_times': False,
        },
        'matching': {
            'time_tolerance_ms': 300000,
            'check_resolution': True,
        },
        'cache': {
            'enabled': True,
            'dir': 'cache',
            'recent_days': 3,
        },
        'google': {
            'credentials_file': 'credentials.json',
            'token_file': 'token.json',
            'page_size': 100,
            'request_timeout': 30,
        },
        'metadata': {'timeout_seconds': 5},
        'process': {'parallel_jobs': 4},
        'output': {'logs_dir': 'logs'},
        'logging': {'level': 'INFO'},
    }


@pytest.fixture
def write_config(tmp_path):
    """Factory fixture: dump a config dict to YAML and return its path."""

    def _write(data, filename='config.yml'):
        config_path = tmp_path / filename
        with open(config_path, 'w') as f:
            yaml.dump(data, f)
        return config_path

    return _write


@pytest.fixture
def sample_config(config_data, write_config):
    """Create a Config backed by a temp config file."""
    from photo_auditor.config import Config
    return Config(str(write_config(config_data)))


@pytest.fixture
def create_media_file(photo_dir):
    """Factory fixture: create a file in the photo directory."""

    def _create(relative_path, content=b'not-really-an-image'):
        full_path = photo_dir / relative_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(content)
        return full_path

    return _create


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def remote_item(file_name, creation_time=None, width=None, height=None, item_id=None):
    return RemoteMediaItem(
        file_name=file_name,
        creation_time=creation_time,
        width=width,
        height=height,
        id=item_id or f"id-{file_name}",
    )


class FakeRemote:
    """Remote listing source with canned items per day that counts its calls."""

    def __init__(self, items_by_day=None, errors=None):
        self.items_by_day = items_by_day or {}
        self.errors = errors or {}
        self.calls = []
        self._lock = threading.Lock()

    def fetch_remote_items_for_day(self, day_key):
        with self._lock:
            self.calls.append(day_key)
        if day_key in self.errors:
            return FetchResult(error=self.errors[day_key])
        return FetchResult(items=list(self.items_by_day.get(day_key, [])))


class FakeExtractor:
    """Extractor returning canned metadata keyed by file name."""

    def __init__(self, metadata=None):
        self.metadata = metadata or {}

    def extract(self, file_path):
        return self.metadata.get(Path(file_path).name, EmbeddedMetadata())
