"""Compiler IR spec - feature fragments and compiled script results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from slc.optimizer.validator import ValidationReport


@dataclass(frozen=True)
class JqField:
    """One value extracted from the stdin JSON.

    The assembler merges every fragment's fields into a single jq call.
    """

    name: str  # shell variable, e.g. "current_directory_path"
    expr: str  # jq expression, e.g. '.workspace.current_dir // .cwd'
    default: str = ""  # fallback when jq is missing or the field is null


@dataclass(frozen=True)
class FeatureFragment:
    """Shell code emitted by one feature encoder."""

    name: str  # encoder name, e.g. "git"
    setup: str = ""  # functions and constants, emitted before extraction
    query: str = ""  # runtime lookups, emitted after extraction
    display: str = ""  # printf segments
    input_fields: Tuple[JqField, ...] = ()
    helpers: Tuple[str, ...] = ()  # shared helper names, see features.helpers


@dataclass(frozen=True)
class CompiledScript:
    """Result of one pipeline run."""

    raw: str
    optimized: str
    report: ValidationReport
    stats: Dict[str, object] = field(default_factory=dict)
    duration: float = 0.0  # seconds

    @property
    def text(self) -> str:
        """The text to ship: optimized when it validated, raw otherwise."""
        return self.optimized if self.report.is_valid else self.raw

    @property
    def size(self) -> int:
        return len(self.text.encode())
