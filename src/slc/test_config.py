"""Tests for config loading and settings resolution."""

from pathlib import Path

import pytest

from slc.config import Settings, StatuslineConfig, SystemMonitoring, resolve_settings
from slc.exceptions import ConfigError


def test_feature_order_and_duplicates_ignored():
    a = StatuslineConfig(features=["git", "directory", "git"])
    b = StatuslineConfig(features=["directory", "git"])
    assert a == b
    assert hash(a) == hash(b)


def test_defaults():
    config = StatuslineConfig()
    assert config.features == {"directory", "git", "model"}
    assert config.theme == "detailed"
    assert config.colors is True
    assert config.monitoring == SystemMonitoring()


def test_load_yaml(tmp_path):
    path = tmp_path / "statusline.yaml"
    path.write_text(
        """
features: [directory, cpu, memory, load]
theme: compact
colors: false
system_monitoring:
  refresh_rate: 5
  cpu_threshold: 90
"""
    )
    config = StatuslineConfig.load(path)
    assert config.features == {"directory", "cpu", "memory", "load"}
    assert config.theme == "compact"
    assert config.colors is False
    assert config.monitoring.refresh_rate == 5
    assert config.monitoring.cpu_threshold == 90
    assert config.monitoring.memory_threshold == 85


def test_load_missing_file_returns_defaults(tmp_path):
    assert StatuslineConfig.load(tmp_path / "nope.yaml") == StatuslineConfig()


def test_load_invalid_theme_raises(tmp_path):
    path = tmp_path / "statusline.yaml"
    path.write_text("theme: neon\n")
    with pytest.raises(ConfigError):
        StatuslineConfig.load(path)


def test_load_non_mapping_raises(tmp_path):
    path = tmp_path / "statusline.yaml"
    path.write_text("- directory\n")
    with pytest.raises(ConfigError):
        StatuslineConfig.load(path)


def test_config_is_immutable():
    config = StatuslineConfig()
    with pytest.raises(Exception):
        config.theme = "compact"


def test_resolve_settings_defaults(monkeypatch):
    for name in Settings.model_fields:
        monkeypatch.delenv(f"SLC_{name.upper()}", raising=False)
    assert resolve_settings() == Settings()


def test_resolve_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("SLC_LOOKUP_TTL", "45")
    monkeypatch.setenv("SLC_CACHE_DIR", str(tmp_path))
    settings = resolve_settings()
    assert settings.lookup_ttl == 45
    assert settings.cache_dir == tmp_path


def test_resolve_settings_expands_user(monkeypatch):
    monkeypatch.setenv("SLC_CACHE_DIR", "~/slc-cache")
    assert resolve_settings().cache_dir == Path.home() / "slc-cache"


def test_explicit_override_beats_env(monkeypatch):
    monkeypatch.setenv("SLC_MIN_INTERVAL", "10")
    assert resolve_settings(min_interval=2).min_interval == 2


def test_unknown_setting_raises():
    with pytest.raises(ValueError):
        resolve_settings(bogus=1)
