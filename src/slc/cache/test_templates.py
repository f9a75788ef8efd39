"""Tests for the precomputed template table."""

import os
import time

import pytest

from slc.cache.manager import CacheManager
from slc.cache.templates import COMMON_CONFIGS, TemplateCache
from slc.compiler.compiler import Compiler
from slc.config import Settings, StatuslineConfig


@pytest.fixture
def settings(tmp_path):
    return Settings(cache_dir=tmp_path / "cache")


def table(settings):
    manager = CacheManager(settings.cache_dir)
    return TemplateCache(manager, settings, Compiler(settings, cache=manager).script_key)


def test_match_is_value_equality(settings):
    config = StatuslineConfig(features=["git", "directory"], theme="minimal")
    assert table(settings).match(config) == "minimal"
    assert table(settings).match(StatuslineConfig(features=["directory"])) is None


def test_lookup_misses_until_stored(settings):
    templates = table(settings)
    config = COMMON_CONFIGS["default"]
    assert templates.lookup(config) is None
    assert templates.store(config, "#!/usr/bin/env bash\n")
    assert templates.lookup(config) == "#!/usr/bin/env bash\n"


def test_store_ignores_uncommon_configs(settings):
    assert not table(settings).store(StatuslineConfig(features=["cpu"]), "x")


def test_remember_does_not_touch_files(settings):
    templates = table(settings)
    assert templates.remember(COMMON_CONFIGS["plain"], "script")
    assert templates.lookup(COMMON_CONFIGS["plain"]) == "script"
    assert not settings.cache_dir.exists()


def test_stored_entries_survive_process(settings):
    table(settings).store(COMMON_CONFIGS["plain"], "script")
    assert table(settings).lookup(COMMON_CONFIGS["plain"]) == "script"


def test_expired_entry_is_not_served(settings):
    templates = table(settings)
    templates.store(COMMON_CONFIGS["plain"], "script")
    old = time.time() - settings.script_ttl - 10
    os.utime(templates.cache.path_for(templates.key(COMMON_CONFIGS["plain"])), (old, old))
    assert table(settings).lookup(COMMON_CONFIGS["plain"]) is None


def test_entries_match_pipeline_output(settings, tmp_path):
    """Every precomputed template equals what the full pipeline produces."""
    texts = Compiler(settings).precompute_templates()
    assert set(texts) == set(COMMON_CONFIGS)

    reference = Compiler(
        settings, cache=CacheManager(tmp_path / "other", ttl=86400, grace=604800)
    )
    for name, config in COMMON_CONFIGS.items():
        assert texts[name] == reference.compile(config).text


# =============================================================================
# Interaction with Compiler.generate
# =============================================================================


def script_path(compiler, config):
    return compiler.cache.path_for(compiler.script_key(config))


def test_generate_does_not_rewrite_cached_script(settings):
    config = COMMON_CONFIGS["default"]
    compiler = Compiler(settings)
    text = compiler.generate(config)
    path = script_path(compiler, config)
    old = time.time() - 100
    os.utime(path, (old, old))

    again = Compiler(settings)
    again.compile = lambda c: pytest.fail("should not recompile")
    assert again.generate(config) == text
    assert again.generate(config) == text
    assert path.stat().st_mtime == pytest.approx(old)


def test_generate_recompiles_after_script_ttl(settings):
    config = COMMON_CONFIGS["default"]
    compiler = Compiler(settings)
    compiler.generate(config)
    path = script_path(compiler, config)
    old = time.time() - settings.script_ttl - 10
    os.utime(path, (old, old))

    calls = []
    again = Compiler(settings)
    original = again.compile

    def counting(c):
        calls.append(c)
        return original(c)

    again.compile = counting
    again.generate(config)
    assert len(calls) == 1
    assert path.stat().st_mtime > old + settings.script_ttl
