"""Validator - compares original and optimized script text.

Any high severity finding means the optimized text must not be shipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Literal, NamedTuple, Tuple

Category = Literal["syntax", "behavior", "performance"]
Severity = Literal["low", "medium", "high"]

SEVERITY_RANK = {"low": 0, "medium": 1, "high": 2}

# <<'DELIM' / <<"DELIM" / <<DELIM / <<-DELIM, but not <<< or a shift like 1<<2
HEREDOC_START = re.compile(r"<<-?\s*['\"]?([A-Za-z_][A-Za-z0-9_]*)['\"]?")

BLOCKING_CALLS = {
    "sleep": re.compile(r"(?<![\w-])sleep\s"),
    "wait": re.compile(r"(?<![\w-])wait(?![\w-])"),
    "read -t": re.compile(r"(?<![\w-])read\s+(?:-\w+\s+)*-t\s"),
    "vmstat N": re.compile(r"(?<![\w-])vmstat\s+\d"),
}

EXIT_CALL = re.compile(r"(?<![\w-])exit(?![\w-])")

BRACKETS = (("[", "]"), ("{", "}"), ("(", ")"))

# characters after which a '#' starts a comment
_WORD_BREAKS = " \t\n;&|()"


@dataclass(frozen=True)
class ValidationFinding:
    category: Category
    severity: Severity
    message: str


@dataclass(frozen=True)
class ValidationReport:
    is_valid: bool
    findings: Tuple[ValidationFinding, ...] = field(default_factory=tuple)

    @property
    def severity(self) -> Severity:
        """Highest finding severity; "low" when there are no findings."""
        if not self.findings:
            return "low"
        return max((f.severity for f in self.findings), key=SEVERITY_RANK.__getitem__)

    def by_severity(self, severity: Severity) -> List[ValidationFinding]:
        return [f for f in self.findings if f.severity == severity]


class QuoteScan(NamedTuple):
    balanced: bool
    single: int  # quote characters that open or close a single-quoted string
    double: int


def scan_quotes(text: str) -> QuoteScan:
    """Quote-aware scan of bash text.

    Tracks single and double quoted strings, ``$( ... )`` nesting (including
    arithmetic), comments and heredoc bodies. Escaped characters outside
    single quotes are skipped.
    """
    stack: List[str] = ["code"]
    depth: List[int] = []  # paren depth per open $( ... )
    pending_heredocs: List[str] = []
    single = double = 0
    i, n = 0, len(text)

    while i < n:
        c = text[i]
        state = stack[-1]

        if state == "sq":
            if c == "'":
                stack.pop()
                single += 1
            i += 1
            continue

        if c == "\\":
            i += 2
            continue

        if state == "dq":
            if c == '"':
                stack.pop()
                double += 1
            elif text.startswith("$(", i):
                stack.append("cmd")
                depth.append(0)
                i += 2
                continue
            i += 1
            continue

        # code or cmd
        if c == "'":
            stack.append("sq")
            single += 1
        elif c == '"':
            stack.append("dq")
            double += 1
        elif c == "#" and (i == 0 or text[i - 1] in _WORD_BREAKS):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        elif text.startswith("$(", i):
            stack.append("cmd")
            depth.append(0)
            i += 2
            continue
        elif c == "<" and text.startswith("<<", i) and not text.startswith("<<<", i):
            match = HEREDOC_START.match(text, i)
            if match:
                pending_heredocs.append(match.group(1))
                i = match.end()
                continue
        elif state == "cmd" and c == "(":
            depth[-1] += 1
        elif state == "cmd" and c == ")":
            if depth[-1] == 0:
                stack.pop()
                depth.pop()
            else:
                depth[-1] -= 1
        elif c == "\n" and pending_heredocs:
            i = _skip_heredocs(text, i + 1, pending_heredocs)
            pending_heredocs = []
            continue
        i += 1

    return QuoteScan(balanced=stack == ["code"], single=single, double=double)


def _skip_heredocs(text: str, start: int, delimiters: List[str]) -> int:
    """Return the offset just past the last heredoc terminator line."""
    pos = start
    for delim in delimiters:
        while pos < len(text):
            end = text.find("\n", pos)
            line_end = len(text) if end == -1 else end
            line = text[pos:line_end]
            pos = line_end + 1
            if line.strip() == delim:
                break
    return min(pos, len(text))


def bracket_balance(text: str) -> dict[str, int]:
    return {o + c: text.count(o) - text.count(c) for o, c in BRACKETS}


class Validator:
    """Checks an optimized script against its original."""

    def validate(self, original: str, optimized: str) -> ValidationReport:
        findings: List[ValidationFinding] = []
        findings += self._check_syntax(original, optimized)
        findings += self._check_behavior(original, optimized)
        findings += self._check_performance(original, optimized)
        is_valid = not any(f.severity == "high" for f in findings)
        return ValidationReport(is_valid=is_valid, findings=tuple(findings))

    def _check_syntax(self, original: str, optimized: str) -> List[ValidationFinding]:
        findings = []
        before, after = scan_quotes(original), scan_quotes(optimized)
        if not after.balanced:
            findings.append(
                ValidationFinding("syntax", "high", "Unbalanced quotes in optimized script")
            )
        elif before.balanced and (
            before.single % 2 != after.single % 2 or before.double % 2 != after.double % 2
        ):
            findings.append(
                ValidationFinding("syntax", "high", "Quote parity changed")
            )

        orig_brackets, opt_brackets = bracket_balance(original), bracket_balance(optimized)
        for pair, diff in opt_brackets.items():
            if diff != orig_brackets[pair]:
                findings.append(
                    ValidationFinding(
                        "syntax",
                        "high",
                        f"Bracket balance for {pair} changed "
                        f"({orig_brackets[pair]} -> {diff})",
                    )
                )

        for marker in ("[[[", "]]]"):
            if optimized.count(marker) > original.count(marker):
                findings.append(
                    ValidationFinding("syntax", "high", f"Malformed test bracket {marker}")
                )
        return findings

    def _check_behavior(self, original: str, optimized: str) -> List[ValidationFinding]:
        findings = []
        # only a real interpreter line counts; snippets start with code
        if (original.startswith("#!") or optimized.startswith("#!")) and (
            original.split("\n", 1)[0] != optimized.split("\n", 1)[0]
        ):
            findings.append(ValidationFinding("behavior", "high", "Shebang line changed"))
        before, after = len(EXIT_CALL.findall(original)), len(EXIT_CALL.findall(optimized))
        if before != after:
            findings.append(
                ValidationFinding(
                    "behavior", "high", f"Number of exit calls changed ({before} -> {after})"
                )
            )
        return findings

    def _check_performance(self, original: str, optimized: str) -> List[ValidationFinding]:
        findings = []
        for name, pattern in BLOCKING_CALLS.items():
            if len(pattern.findall(optimized)) > len(pattern.findall(original)):
                findings.append(
                    ValidationFinding(
                        "performance", "medium", f"New blocking call introduced: {name}"
                    )
                )
        if len(optimized) > len(original):
            findings.append(
                ValidationFinding(
                    "performance",
                    "low",
                    f"Optimized script is larger ({len(original)} -> {len(optimized)} bytes)",
                )
            )
        return findings
