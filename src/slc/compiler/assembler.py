"""ScriptAssembler - stitches feature fragments into one bash script.

Section order is fixed:

    header, logging, rate limiter, content tracking, colors, helpers,
    setups, input extraction, queries, displays, log output, epilogue

and fragments are ordered by encoder priority, so the output depends only on
the feature set and never on the order features were listed in.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import slc
from slc.compiler.spec import FeatureFragment, JqField
from slc.config import Settings, StatuslineConfig
from slc.features import ENCODERS, StyleConfig, ordered_features
from slc.features.colors import encode_colors
from slc.features.helpers import resolve_helpers
from slc.templating import ShellTemplate, shell_path

SHEBANG = "#!/usr/bin/env bash"

HEADER = ShellTemplate(
    "header",
    """\
{{ shebang }}
# Generated by slc {{ version }}
# Theme: {{ theme }} | Colors: {{ colors }} | Features: {{ features }}
# Lookups cached under {{ cache_dir }} ({{ ttl }}s TTL with {{ grace }}s stale fallback)
# Set SLC_DEBUG=1 for cache diagnostics on stderr

input=$(cat)""",
)

LOGGING = ShellTemplate(
    "logging",
    """\
# ---- logging ----
LOG_FILE="{{ cache_dir }}/statusline.log"
mkdir -p "${LOG_FILE%/*}" 2>/dev/null
{ printf '[%s] status line triggered\\n' "$(date '+%Y-%m-%d %H:%M:%S')"; printf 'input: %s\\n' "$input"; } >> "$LOG_FILE" 2>/dev/null""",
)

RATE_LIMITER = ShellTemplate(
    "rate_limiter",
    """\
# ---- rate limiter ----
rate_limit_file="{{ cache_dir }}/statusline_rate_limit.tmp"
min_interval={{ min_interval }}
if [ "$min_interval" -gt 0 ]; then
  current_time=$(date +%s)
  if [ -f "$rate_limit_file" ]; then
    last_time=$(cat "$rate_limit_file")
    case $last_time in
      ''|*[!0-9]*) last_time=0 ;;
    esac
    if [ $((current_time - last_time)) -lt "$min_interval" ]; then
      exit 0
    fi
  fi
  mkdir -p "${rate_limit_file%/*}" 2>/dev/null
  { echo "$current_time" > "$rate_limit_file"; } 2>/dev/null
fi""",
)

CONTENT_TRACKING = """\
# ---- content tracking ----
content_displayed=0
segment_sep() { if [ "$content_displayed" -eq 1 ]; then printf '  '; fi; }"""

EXTRACTION = ShellTemplate(
    "input_extraction",
    """\
# ---- input extraction ----
{% for field in fields %}
{{ field.name }}={{ field.default | shquote }}
{% endfor %}
if [ "$(command -v jq)" ]; then
  eval "$(printf '%s' "$input" | jq -r '{{ jq_object }} | to_entries | .[] | "\\(.key)=\\(.value | tostring | @sh)"' 2>/dev/null)"
fi""",
)

LOG_OUTPUT = ShellTemplate(
    "log_output",
    """\
# ---- log extracted data ----
{
{% for field in fields %}
  printf '  {{ field.name }}=%s\\n' "${{ field.name }}"
{% endfor %}
} >> "$LOG_FILE" 2>/dev/null""",
)

EPILOGUE = """\
if [ "$content_displayed" -eq 1 ]; then printf '\\n'; fi"""

ENCODER_ORDER = {cls.name: i for i, cls in enumerate(ENCODERS)}


def merge_input_fields(fragments: Sequence[FeatureFragment]) -> List[JqField]:
    """All stdin fields, first declaration wins."""
    merged: Dict[str, JqField] = {}
    for fragment in fragments:
        for field in fragment.input_fields:
            merged.setdefault(field.name, field)
    return list(merged.values())


def jq_object(fields: Sequence[JqField]) -> str:
    return "{" + ", ".join(f"{f.name}: ({f.expr})" for f in fields) + "}"


class ScriptAssembler:
    """Assembles fragments into script text."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def assemble(
        self,
        config: StatuslineConfig,
        fragments: Sequence[FeatureFragment],
        style: StyleConfig,
    ) -> str:
        fragments = sorted(fragments, key=lambda f: ENCODER_ORDER.get(f.name, len(ENCODER_ORDER)))
        cache_dir = shell_path(self.settings.cache_dir)
        fields = merge_input_fields(fragments)

        parts = [
            HEADER.render(
                shebang=SHEBANG,
                version=slc.__version__,
                theme=config.theme,
                colors="on" if config.colors else "off",
                features=", ".join(ordered_features(config.features)) or "none",
                cache_dir=cache_dir,
                ttl=self.settings.lookup_ttl,
                grace=self.settings.lookup_grace,
            )
        ]
        if config.logging:
            parts.append(LOGGING.render(cache_dir=cache_dir))
        parts.append(
            RATE_LIMITER.render(cache_dir=cache_dir, min_interval=self.settings.min_interval)
        )
        parts.append(CONTENT_TRACKING)
        parts.append(encode_colors(style))

        helper_names = [name for f in fragments for name in f.helpers]
        helpers = resolve_helpers(helper_names)
        if helpers:
            parts.append(
                "# ---- helpers ----\n" + "\n\n".join(h.body for h in helpers)
            )

        parts += [f.setup for f in fragments]
        if fields:
            parts.append(EXTRACTION.render(fields=fields, jq_object=jq_object(fields)))
        parts += [f.query for f in fragments]

        displays = [f.display for f in fragments if f.display.strip()]
        if displays:
            parts.append("# ---- render statusline ----\n" + "\n".join(displays))
        if config.logging and fields:
            parts.append(LOG_OUTPUT.render(fields=fields))
        parts.append(EPILOGUE)

        return "\n\n".join(p.strip("\n") for p in parts if p.strip()) + "\n"
