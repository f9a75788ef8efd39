"""Jinja2 environment and typed shell templates.

Shell snippets are Jinja templates with named gaps. Every gap must be filled
on render and nothing else may be passed, so a typo in an encoder fails at
generation time instead of producing a script with an empty variable.

Bash syntax such as ``${#arr[@]}`` collides with Jinja's default comment
markers, so the environment uses ``<#-- ... --#>`` for comments instead.
"""

from __future__ import annotations

import shlex
from functools import cached_property
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, StrictUndefined, Template, TemplateError, meta

from slc.exceptions import GenerationError, TemplateGapError


def dq_escape(value: Any) -> str:
    """Escape a value for use inside a double-quoted shell string."""
    text = str(value)
    for ch in ("\\", '"', "$", "`"):
        text = text.replace(ch, "\\" + ch)
    return text


def shell_path(path: Path, home: Optional[Path] = None) -> str:
    """Render a path for a double-quoted shell context.

    Paths under the home directory are written relative to ``${HOME}`` so the
    emitted script keeps working when the home directory moves.
    """
    home = home if home is not None else Path.home()
    path = Path(path).expanduser()
    try:
        rel = path.relative_to(home)
    except ValueError:
        return dq_escape(path)
    if str(rel) == ".":
        return "${HOME}"
    return "${HOME}/" + dq_escape(rel.as_posix())


def get_shell_jinja_env() -> Environment:
    """Create a Jinja2 environment configured for bash output."""
    env = Environment(
        comment_start_string="<#--",
        comment_end_string="--#>",
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=False,
        undefined=StrictUndefined,
        autoescape=False,
    )
    env.filters["shquote"] = lambda v: shlex.quote(str(v))
    env.filters["dq"] = dq_escape
    return env


class ShellTemplate:
    """A named shell snippet with strictly checked gaps."""

    def __init__(self, name: str, source: str):
        self.name = name
        self.source = source

    @cached_property
    def _env(self) -> Environment:
        return get_shell_jinja_env()

    @cached_property
    def gaps(self) -> frozenset[str]:
        """Names the template expects to be filled."""
        try:
            ast = self._env.parse(self.source)
        except TemplateError as e:
            raise GenerationError(f"template '{self.name}' is invalid: {e}") from e
        return frozenset(meta.find_undeclared_variables(ast))

    @cached_property
    def _template(self) -> Template:
        return self._env.from_string(self.source)

    def render(self, **values: Any) -> str:
        missing = set(self.gaps - values.keys())
        unexpected = set(values.keys() - self.gaps)
        if missing or unexpected:
            raise TemplateGapError(self.name, missing, unexpected)
        try:
            return self._template.render(**values)
        except TemplateError as e:
            raise GenerationError(f"template '{self.name}' failed: {e}") from e

    def __repr__(self) -> str:
        return f"ShellTemplate({self.name!r}, gaps={sorted(self.gaps)})"
