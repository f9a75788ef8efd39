"""Optimizer and validator for generated bash."""

from slc.optimizer.optimizer import (
    OptimizationOptions,
    Optimizer,
    normalize_whitespace,
    optimization_stats,
)
from slc.optimizer.validator import ValidationFinding, ValidationReport, Validator

__all__ = [
    "OptimizationOptions",
    "Optimizer",
    "ValidationFinding",
    "ValidationReport",
    "Validator",
    "normalize_whitespace",
    "optimization_stats",
]
