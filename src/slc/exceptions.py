"""SLC Exceptions

Custom exceptions for the status line compiler.
"""

from __future__ import annotations


class SlcError(Exception):
    """Base exception for all slc errors."""

    pass


class ConfigError(SlcError):
    """Raised when a status line configuration cannot be loaded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config {path}: {reason}")


class GenerationError(SlcError):
    """Raised when a script cannot be generated.

    Wraps any encoder, template or assembler failure so callers never see a
    partial script.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Script generation failed: {reason}")


class TemplateGapError(SlcError):
    """Raised when a shell template is rendered with missing or unknown gaps."""

    def __init__(self, template: str, missing: set[str], unexpected: set[str]):
        self.template = template
        self.missing = missing
        self.unexpected = unexpected
        parts = []
        if missing:
            parts.append(f"missing {', '.join(sorted(missing))}")
        if unexpected:
            parts.append(f"unexpected {', '.join(sorted(unexpected))}")
        super().__init__(f"Template '{template}': {'; '.join(parts)}")


class RefreshError(SlcError):
    """Raised when a cache refresh function fails."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Refresh failed for {key}: {reason}")
