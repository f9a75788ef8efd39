"""Ordered rewrite rules for generated bash.

Every rule carries an explicit guard. A rule whose guard reports the text is
already in target form is skipped, so applying a pass twice is a no-op and a
rewrite never nests into its own output (no ``[[[``).
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional, Pattern


class OptimizationRule(ABC):
    """A single guarded rewrite."""

    name: str

    def skip(self, text: str) -> bool:
        """True when the text is already in target form."""
        return False

    @abstractmethod
    def rewrite(self, text: str) -> str:
        ...

    def apply(self, text: str) -> str:
        if self.skip(text):
            return text
        return self.rewrite(text)


@dataclass
class SubstringRule(OptimizationRule):
    """Literal replacement that leaves existing target occurrences intact.

    The target may contain the source (``$(date +%s)`` inside
    ``${EPOCHSECONDS:-$(date +%s)}``), so the text is split on the target
    first and only the pieces in between are rewritten.
    """

    name: str
    old: str
    new: str

    def skip(self, text: str) -> bool:
        return self.old not in text.replace(self.new, "")

    def rewrite(self, text: str) -> str:
        return self.new.join(
            part.replace(self.old, self.new) for part in text.split(self.new)
        )


@dataclass
class RegexRule(OptimizationRule):
    """Structural rewrite with lookaround guards."""

    name: str
    pattern: Pattern[str]
    replace: Callable[[re.Match], str]
    guard: Optional[Pattern[str]] = None  # matches => already optimized, skip

    def skip(self, text: str) -> bool:
        if self.guard is not None and self.guard.search(text):
            return True
        return self.pattern.search(text) is None

    def rewrite(self, text: str) -> str:
        return self.pattern.sub(self.replace, text)


@dataclass
class IdentifierRule(OptimizationRule):
    """Rename one shell identifier to its short alias, whole tokens only.

    A token preceded by ``.`` is a jq path segment and is left alone.
    """

    long: str
    alias: str
    name: str = field(init=False)

    def __post_init__(self):
        self.name = f"ident:{self.long}"
        self._alias_token = re.compile(rf"(?<![\w.]){re.escape(self.alias)}(?!\w)")
        self._braced = re.compile(rf"\$\{{{re.escape(self.long)}\}}(?!\w)")
        self._token = re.compile(rf"(?<![\w.]){re.escape(self.long)}(?!\w)")

    def skip(self, text: str) -> bool:
        # Renaming onto a name already in use would merge two variables.
        if self._alias_token.search(text):
            return True
        return self._token.search(text) is None

    def rewrite(self, text: str) -> str:
        text = self._braced.sub(lambda m: "$" + self.alias, text)
        return self._token.sub(lambda m: self.alias, text)


# =============================================================================
# Rule tables
# =============================================================================

COMPACT_IDENTIFIERS = {
    "current_directory_path": "cwd",
    "git_branch_name": "git_branch",
    "session_percentage": "pct",
    "total_tokens": "tot_tokens",
    "tokens_per_minute": "tpm",
    "cost_per_hour": "cost_ph",
    "use_color_flag": "use_color",
    "cache_file_path": "cache_file",
    "is_git_repository": "is_git_repo",
    "git_cache_file": "git_cache",
    "color_prefix": "clr_pre",
    "color_suffix": "clr_suf",
    "home_directory": "home",
}


def identifier_rules() -> list[OptimizationRule]:
    return [IdentifierRule(long, alias) for long, alias in COMPACT_IDENTIFIERS.items()]


# Single-bracket tests must not sit inside [[ ... ]]
_OPEN = r"(?<!\[)\[ "
_CLOSE = r" \](?!\])"
_VAR = r'"\$(?:(\w+)|\{(\w+)\})"'


def _var(m: re.Match, first: int = 1) -> str:
    return m.group(first) or m.group(first + 1)


def idiom_rules() -> list[OptimizationRule]:
    return [
        RegexRule(
            "command-check",
            re.compile(_OPEN + r'"\$\((?:command -v|which) ([\w.+-]+)\)"' + _CLOSE),
            lambda m: f"command -v {m.group(1)} >/dev/null 2>&1",
        ),
        RegexRule(
            "home-abbrev",
            re.compile(r'\$\(echo "\$(\w+)" \| sed "s\|\^\$HOME\|~\|g"\)'),
            lambda m: "${" + m.group(1) + "/#$HOME/\\~}",
        ),
        SubstringRule("epoch-seconds", "$(date +%s)", "${EPOCHSECONDS:-$(date +%s)}"),
        RegexRule(
            "cat-redirect",
            re.compile(r"\$\(cat " + _VAR + r"\)"),
            lambda m: f'$(<"${_var(m)}")',
        ),
        RegexRule(
            "status-check",
            re.compile(_OPEN + r"\$\? -eq 0" + _CLOSE),
            lambda m: "((! $?))",
        ),
        RegexRule(
            "nonempty-test",
            re.compile(_OPEN + r"-n " + _VAR + _CLOSE),
            lambda m: f"[[ ${_var(m)} ]]",
        ),
        RegexRule(
            "empty-test",
            re.compile(_OPEN + r"-z " + _VAR + _CLOSE),
            lambda m: f"[[ ! ${_var(m)} ]]",
        ),
        RegexRule(
            "file-test",
            re.compile(_OPEN + r"-([fdre]) " + _VAR + _CLOSE),
            lambda m: f"[[ -{m.group(1)} ${_var(m, 2)} ]]",
        ),
    ]
