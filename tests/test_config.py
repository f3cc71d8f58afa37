#!/usr/bin/env python3
"""Tests for audit configuration using should/when pattern."""

from datetime import date
from pathlib import Path

import pytest

from photo_auditor.config import DEFAULT_RECENT_DAYS, DEFAULT_TIME_TOLERANCE_MS, Config
from photo_auditor.errors import ConfigurationError


def test_should_load_values_when_config_file_exists(sample_config, photo_dir):
    """Should expose configured values through accessors."""
    # When configuration is loaded
    config = sample_config

    # Should provide the configured settings
    assert config.get_photo_dir() == photo_dir
    assert config.get_time_tolerance_ms() == 300000
    assert config.should_check_resolution() is True
    assert config.get_recent_days() == 3
    assert config.get_parallel_jobs() == 4
    assert config.get_all_extensions() == ['jpg', 'jpeg', 'png', 'mp4', 'mov']


def test_should_resolve_relative_paths_against_config_directory(sample_config, tmp_path):
    """Should resolve relative paths from the directory holding the config file."""
    assert sample_config.get_cache_dir() == tmp_path.resolve() / 'cache'
    assert sample_config.get_logs_dir() == tmp_path.resolve() / 'logs'
    assert sample_config.get_token_file() == tmp_path.resolve() / 'token.json'
    assert sample_config.get_credentials_file() == tmp_path.resolve() / 'credentials.json'


def test_should_use_defaults_when_sections_missing(write_config):
    """Should fall back to defaults when the file is empty."""
    config = Config(str(write_config({})))

    assert config.get_time_tolerance_ms() == DEFAULT_TIME_TOLERANCE_MS
    assert config.get_recent_days() == DEFAULT_RECENT_DAYS
    assert config.should_check_resolution() is True
    assert config.is_cache_enabled() is True
    assert config.use_file_times() is False
    assert config.get_fallback_dates() == []
    assert config.get_page_size() == 100
    assert config.get_supported_extensions() == {'photos': ['jpg', 'jpeg', 'png'], 'videos': ['mp4']}


def test_should_return_default_when_value_is_null(write_config):
    """Should treat an explicit null like a missing key."""
    config = Config(str(write_config({'audit': {'fallback_dates': None}})))
    assert config.get_fallback_dates() == []
    assert config.get('audit.missing.deeper', 'x') == 'x'


def test_should_accept_unquoted_yaml_dates_when_loading_fallbacks(tmp_path):
    """Should keep YAML date values so they can be used as fallback dates."""
    config_path = tmp_path / 'config.yml'
    config_path.write_text("audit:\n  photo_dir: .\n  fallback_dates:\n    - 2025-01-01\n")

    config = Config(str(config_path))

    assert config.get_fallback_dates() == [date(2025, 1, 1)]
    assert config.validate_config() == []


def test_should_raise_when_config_file_missing(tmp_path):
    """Should raise ConfigurationError for a missing file."""
    with pytest.raises(ConfigurationError) as exc_info:
        Config(str(tmp_path / 'nope.yml'))
    assert 'not found' in exc_info.value.message


def test_should_raise_when_yaml_invalid(tmp_path):
    """Should raise ConfigurationError for malformed YAML."""
    config_path = tmp_path / 'config.yml'
    config_path.write_text("audit: [unclosed\n")

    with pytest.raises(ConfigurationError):
        Config(str(config_path))


def test_should_pass_validation_when_config_is_sane(sample_config):
    """Should report no errors for the sample configuration."""
    assert sample_config.validate_config() == []


def test_should_report_errors_when_values_out_of_range(config_data, write_config, tmp_path):
    """Should list every invalid setting."""
    config_data['audit']['photo_dir'] = str(tmp_path / 'missing')
    config_data['audit']['fallback_dates'] = ['2025-01-01', 'yesterday']
    config_data['matching']['time_tolerance_ms'] = -5
    config_data['google']['page_size'] = 500
    config_data['process']['parallel_jobs'] = 64
    config_data['metadata']['timeout_seconds'] = 0

    errors = Config(str(write_config(config_data))).validate_config()

    assert any(e.startswith('Photo directory does not exist') for e in errors)
    assert "Invalid fallback date: 'yesterday'" in errors
    assert any('time_tolerance_ms' in e for e in errors)
    assert any('page_size' in e for e in errors)
    assert any('parallel_jobs' in e for e in errors)
    assert any('timeout_seconds' in e for e in errors)
    assert len(errors) == 6


def test_should_skip_photo_dir_check_when_overridden(config_data, write_config, tmp_path):
    """Should not require the configured directory when another one is given."""
    config_data['audit']['photo_dir'] = str(tmp_path / 'missing')
    config = Config(str(write_config(config_data)))

    assert config.validate_config(check_photo_dir=False) == []


def test_should_report_file_as_photo_dir(config_data, write_config, tmp_path):
    """Should reject a photo_dir that is a file."""
    not_a_dir = tmp_path / 'file.txt'
    not_a_dir.write_text('x')
    config_data['audit']['photo_dir'] = str(not_a_dir)

    errors = Config(str(write_config(config_data))).validate_config()

    assert errors == [f"Photo directory is not a directory: {not_a_dir}"]


def test_should_find_config_in_working_directory(config_data, write_config, tmp_path, monkeypatch):
    """Should pick up config.yml from the current directory when no path is given."""
    write_config(config_data)
    monkeypatch.chdir(tmp_path)

    config = Config()

    assert Path(config.config_path) == (tmp_path / 'config.yml').resolve()


def test_should_prefer_local_config_when_both_exist(config_data, write_config, tmp_path, monkeypatch):
    """Should prefer config.local.yml over config.yml."""
    write_config(config_data)
    write_config(config_data, filename='config.local.yml')
    monkeypatch.chdir(tmp_path)

    assert Path(Config().config_path).name == 'config.local.yml'
