"""Optimizer - behaviour-preserving rewrites of generated bash."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from slc.optimizer.rules import OptimizationRule, identifier_rules, idiom_rules
from slc.optimizer.validator import HEREDOC_START, ValidationReport, Validator

log = logging.getLogger(__name__)

MAX_BLANK_LINES = 2


@dataclass(frozen=True)
class OptimizationOptions:
    compact_identifiers: bool = True
    substitute_idioms: bool = True
    normalize_whitespace: bool = True


def normalize_whitespace(text: str) -> str:
    """Collapse runs of 3+ blank lines to 2, leaving heredoc bodies alone."""
    out: List[str] = []
    blank_run = 0
    active_heredocs: List[str] = []  # stack of delimiters

    for line in text.split("\n"):
        stripped = line.strip()

        if active_heredocs:
            out.append(line)
            if stripped == active_heredocs[-1]:
                active_heredocs.pop()
            continue

        if not stripped:
            blank_run += 1
            if blank_run <= MAX_BLANK_LINES:
                out.append(line)
            continue

        blank_run = 0
        out.append(line)
        if not stripped.startswith("#"):
            active_heredocs.extend(m.group(1) for m in HEREDOC_START.finditer(line))

    return "\n".join(out)


class Optimizer:
    """Runs the rewrite passes in a fixed order.

    1. identifier compaction
    2. idiom substitution
    3. whitespace normalization
    """

    def __init__(self, options: OptimizationOptions | None = None):
        self.options = options or OptimizationOptions()
        self.validator = Validator()

    def passes(self) -> List[Tuple[str, List[OptimizationRule]]]:
        passes = []
        if self.options.compact_identifiers:
            passes.append(("identifiers", identifier_rules()))
        if self.options.substitute_idioms:
            passes.append(("idioms", idiom_rules()))
        return passes

    def optimize(self, text: str) -> str:
        """Return the optimized text, or ``text`` unchanged on any failure."""
        try:
            result = text
            for pass_name, rules in self.passes():
                for rule in rules:
                    before = result
                    result = rule.apply(result)
                    if result != before:
                        log.debug(f"{pass_name}: applied {rule.name}")
            if self.options.normalize_whitespace:
                result = normalize_whitespace(result)
            return result
        except Exception as e:
            log.warning(f"Optimization failed, keeping original text: {e}")
            return text

    def optimize_checked(self, text: str) -> Tuple[str, str, ValidationReport]:
        """Optimize and validate.

        Returns:
            (final, optimized, report) where ``final`` is the optimized text
            when it validated and the original otherwise.
        """
        optimized = self.optimize(text)
        report = self.validator.validate(text, optimized)
        if not report.is_valid:
            messages = "; ".join(f.message for f in report.by_severity("high"))
            log.info(f"Optimized script rejected, shipping original: {messages}")
            return text, optimized, report
        return optimized, optimized, report


def optimization_stats(original: str, optimized: str) -> dict:
    """Size comparison between the original and optimized text."""
    original_size = len(original.encode())
    optimized_size = len(optimized.encode())
    reduced = original_size - optimized_size
    percent = round(reduced / original_size * 100, 2) if original_size else 0.0
    ratio = optimized_size / original_size if original_size else 1.0
    return {
        "original_size": original_size,
        "optimized_size": optimized_size,
        "bytes_reduced": reduced,
        "reduction_percent": percent,
        "compression_ratio": f"{ratio:.3f}",
    }
