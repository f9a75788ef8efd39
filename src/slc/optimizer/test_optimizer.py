"""Tests for the optimizer passes and stats."""

import re

import pytest

from slc.compiler.compiler import Compiler
from slc.config import Settings, StatuslineConfig
from slc.optimizer import (
    OptimizationOptions,
    Optimizer,
    normalize_whitespace,
    optimization_stats,
)
from slc.optimizer.rules import RegexRule


@pytest.fixture
def raw(tmp_path):
    config = StatuslineConfig(
        features=["directory", "git", "model", "cpu", "memory", "load"],
        logging=True,
    )
    return Compiler(Settings(cache_dir=tmp_path), optimize=False).compile(config).raw


def test_optimize_is_idempotent(raw):
    optimizer = Optimizer()
    once = optimizer.optimize(raw)
    assert once != raw
    assert optimizer.optimize(once) == once


def test_optimize_shrinks_generated_script(raw):
    optimized = Optimizer().optimize(raw)
    stats = optimization_stats(raw, optimized)
    assert stats["bytes_reduced"] > 0
    assert "current_directory_path" not in optimized.replace(".current_directory_path", "")


def test_optimize_preserves_shebang(raw):
    optimized = Optimizer().optimize(raw)
    assert optimized.split("\n", 1)[0] == raw.split("\n", 1)[0]


def test_options_disable_passes():
    optimizer = Optimizer(
        OptimizationOptions(compact_identifiers=False, substitute_idioms=False)
    )
    text = 'current_directory_path=1\n[ -n "$x" ]\n\n\n\n\nend'
    assert optimizer.optimize(text) == 'current_directory_path=1\n[ -n "$x" ]\n\n\nend'


def test_normalize_whitespace_collapses_blank_runs():
    assert normalize_whitespace("a\n\n\n\n\nb") == "a\n\n\nb"
    assert normalize_whitespace("a\n\nb") == "a\n\nb"


def test_normalize_whitespace_skips_heredocs():
    text = "cat <<'EOF'\nx\n\n\n\n\ny\nEOF\n\n\n\n\nend"
    assert normalize_whitespace(text) == "cat <<'EOF'\nx\n\n\n\n\ny\nEOF\n\n\nend"


def test_failed_rule_returns_original():
    optimizer = Optimizer()

    def boom(m):
        raise RuntimeError("bad rule")

    optimizer.passes = lambda: [("broken", [RegexRule("boom", re.compile("x"), boom)])]
    assert optimizer.optimize("x\n\n\n\n\nx") == "x\n\n\n\n\nx"


def test_optimization_stats():
    stats = optimization_stats("aaaa", "aa")
    assert stats == {
        "original_size": 4,
        "optimized_size": 2,
        "bytes_reduced": 2,
        "reduction_percent": 50.0,
        "compression_ratio": "0.500",
    }


def test_optimization_stats_empty_input():
    stats = optimization_stats("", "")
    assert stats["reduction_percent"] == 0.0
    assert stats["compression_ratio"] == "1.000"


def test_checked_rejects_unbalanced_result():
    text = 'echo "unterminated\n[ -z "$x" ] && x=1\n'
    final, optimized, report = Optimizer().optimize_checked(text)
    assert final == text
    assert optimized != text
    assert not report.is_valid
    assert report.severity == "high"


def test_checked_accepts_generated_script(raw):
    final, optimized, report = Optimizer().optimize_checked(raw)
    assert report.is_valid, report.findings
    assert final == optimized


def test_checked_ships_rewritten_snippet():
    text = '[ -z "$cached_result" ] && cached_result=""\n'
    final, optimized, report = Optimizer().optimize_checked(text)
    assert report.is_valid, report.findings
    assert final == optimized
    assert "[[ ! $cached_result ]]" in final
