"""End-to-end tests for config -> script compilation."""

import re

from slc.compiler.compiler import Compiler
from slc.config import StatuslineConfig
from slc.features.colors import palette


def test_fixture_configs_compile_and_validate(settings, fixture_config):
    """Test that every fixture compiles to a validated, smaller script."""
    result = Compiler(settings).compile(fixture_config)
    assert result.report.is_valid, result.report.findings
    assert result.text == result.optimized
    assert result.stats["bytes_reduced"] > 0
    assert result.text.startswith("#!/usr/bin/env bash\n")


def test_compile_is_deterministic(settings, fixture_config):
    """Test that separate compilers produce byte-identical output."""
    first = Compiler(settings).compile(fixture_config)
    second = Compiler(settings).compile(fixture_config)
    assert first.raw == second.raw
    assert first.text == second.text


def test_feature_order_does_not_matter(settings, fixture_loader):
    config = fixture_loader("all_features")
    shuffled = config.model_copy(
        update={"features": frozenset(reversed(sorted(config.features)))}
    )
    listed = StatuslineConfig.model_validate(
        {
            "features": ["alerts", "directory", "usage", "git", "git", "cpu", "model",
                         "projections", "memory", "load", "session", "tokens",
                         "burnrate", "cache"],
            "usage_integration": True,
            "logging": True,
        }
    )
    compiler = Compiler(settings)
    expected = compiler.compile(config).text
    assert compiler.compile(shuffled).text == expected
    assert compiler.compile(listed).text == expected


def test_generate_uses_cache_across_compilers(settings, fixture_loader):
    config = fixture_loader("compact")
    text = Compiler(settings).generate(config)
    assert list(settings.cache_dir.iterdir())
    assert Compiler(settings).generate(config) == text


def test_threshold_changes_script(settings, fixture_loader):
    base = fixture_loader("system_monitoring")
    tighter = base.model_copy(
        update={"system_monitoring": base.monitoring.model_copy(update={"cpu_threshold": 50})}
    )
    compiler = Compiler(settings)
    assert compiler.compile(base).text != compiler.compile(tighter).text
    assert compiler.script_key(base) != compiler.script_key(tighter)


def test_displays_only_call_defined_colors(settings, fixture_loader):
    config = fixture_loader("all_features")
    raw = Compiler(settings, optimize=False).compile(config).raw
    used = set(re.findall(r"\$\((\w+_clr)\)", raw))
    used |= set(re.findall(r"\w+_clr=(\w+_clr)", raw))
    assert used
    assert used <= set(palette(config.theme))
