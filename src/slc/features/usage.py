"""Usage and cost segments backed by ``ccusage blocks --json``.

The active block is selected with jq and its fields are turned into shell
assignments via ``@sh``, then ``eval``'d. Only the fields the enabled
segments need are extracted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from slc.cache.keys import usage_fields
from slc.compiler.spec import FeatureFragment
from slc.config import StatuslineConfig
from slc.features.base import FeatureEncoder, StyleConfig, indent, segment
from slc.templating import ShellTemplate

USAGE_COMMAND = ("ccusage", "blocks", "--json")

COST_WARNING = 15.0  # USD per hour

# shell variable -> jq expression over the active block
BLOCK_FIELDS = {
    "cost": (
        ("cost_usd", ".costUSD"),
        ("cost_per_hour", ".burnRate.costPerHour"),
    ),
    "tokens": (("total_tokens", ".totalTokens"),),
    "burnrate": (("tokens_per_minute", ".burnRate.tokensPerMinute"),),
    "session": (
        ("reset_time_str", "(.usageLimitResetTime // .endTime)"),
        ("start_time_str", ".startTime"),
    ),
    "cache": (
        ("input_tokens", ".tokenCounts.inputTokens"),
        ("cache_read_tokens", ".tokenCounts.cacheReadInputTokens"),
    ),
    "projections": (
        ("projected_cost", ".projection.totalCost"),
        ("projected_minutes", ".projection.remainingMinutes"),
    ),
    "alerts": (("cost_per_hour", ".burnRate.costPerHour"),),
}

USAGE_BLOCKS = ShellTemplate(
    "usage_blocks",
    """\
# ---- ccusage ----
usage_blocks() {
  if [ "$(command -v ccusage)" ]; then
    run_bounded {{ timeout }} {{ command }} 2>/dev/null && return 0
  fi
  if [ "$(command -v npx)" ]; then
    run_bounded {{ timeout }} npx --yes ccusage@latest {{ args }} 2>/dev/null && return 0
  fi
  return 1
}""",
)

QUERY = ShellTemplate(
    "usage_query",
    """\
# usage (ccusage)
{% for name in variables %}
{{ name }}=""
{% endfor %}
if [ "$(command -v jq)" ]; then
  usage_cache_file="{{ cache_file }}"
  blocks_output=$(cache_lookup "$usage_cache_file" {{ ttl }} {{ grace }} usage_blocks)
  if [ -n "$blocks_output" ]; then
    eval "$(printf '%s' "$blocks_output" | jq -r '[.blocks[]? | select(.isActive == true)][0] // empty | {{ jq_object }} | to_entries | .[] | "\\(.key)=\\(.value | @sh)"' 2>/dev/null)"
  fi
fi""",
)

SESSION = ShellTemplate(
    "usage_session",
    """\
session_percentage=0
session_text=""
session_bar=""
if [ -n "$reset_time_str" ] && [ -n "$start_time_str" ]; then
  start_sec=$(to_epoch "$start_time_str")
  end_sec=$(to_epoch "$reset_time_str")
  now_sec=$(date +%s)
  if [ -n "$start_sec" ] && [ -n "$end_sec" ]; then
    session_total=$((end_sec - start_sec))
    if [ "$session_total" -lt 1 ]; then session_total=1; fi
    session_elapsed=$((now_sec - start_sec))
    if [ "$session_elapsed" -lt 0 ]; then session_elapsed=0; fi
    if [ "$session_elapsed" -gt "$session_total" ]; then session_elapsed=$session_total; fi
    session_percentage=$((session_elapsed * 100 / session_total))
    session_remaining=$((end_sec - now_sec))
    if [ "$session_remaining" -lt 0 ]; then session_remaining=0; fi
{% if compact %}
    session_text=$(fmt_time_hm "$session_remaining")
{% else %}
    session_text="$(fmt_time_hm "$session_remaining") until reset (${session_percentage}%)"
{% endif %}
{% if progress_bar %}
    session_bar=$(progress_bar "$session_percentage" 10)
{% endif %}
  fi
fi
{% if colors %}
session_state_clr=session_clr
if [ $((100 - session_percentage)) -le 10 ]; then
  session_state_clr=alert_clr
elif [ $((100 - session_percentage)) -le 25 ]; then
  session_state_clr=warn_clr
fi
{% endif %}""",
)


@dataclass(frozen=True)
class UsageConfig:
    show_cost: bool
    show_tokens: bool
    show_burn_rate: bool
    show_session: bool
    show_progress_bar: bool
    show_cache: bool
    show_projections: bool
    show_alerts: bool
    compact: bool
    cost_warning: float
    ttl: int
    grace: int
    timeout: int


class UsageEncoder(FeatureEncoder):
    name = "usage"
    features = frozenset(
        {"usage", "session", "tokens", "burnrate", "cache", "projections", "alerts"}
    )

    def configure(self, config: StatuslineConfig) -> Optional[UsageConfig]:
        if not config.usage_integration or not self.features & config.features:
            return None
        f = config.features
        return UsageConfig(
            show_cost="usage" in f,
            show_tokens="tokens" in f or "burnrate" in f,
            show_burn_rate="burnrate" in f,
            show_session="session" in f,
            show_progress_bar="session" in f and config.theme != "minimal",
            show_cache="cache" in f,
            show_projections="projections" in f,
            show_alerts="alerts" in f,
            compact=config.theme == "compact",
            cost_warning=COST_WARNING,
            ttl=self.settings.lookup_ttl,
            grace=self.settings.lookup_grace,
            timeout=self.settings.lookup_timeout,
        )

    def _block_fields(self, fc: UsageConfig) -> list[tuple[str, str]]:
        groups = [
            ("cost", fc.show_cost),
            ("tokens", fc.show_tokens),
            ("burnrate", fc.show_burn_rate),
            ("session", fc.show_session),
            ("cache", fc.show_cache),
            ("projections", fc.show_projections),
            ("alerts", fc.show_alerts),
        ]
        fields: dict[str, str] = {}
        for group, enabled in groups:
            if enabled:
                for name, expr in BLOCK_FIELDS[group]:
                    fields.setdefault(name, expr)
        return list(fields.items())

    def encode(self, feature_config: UsageConfig, style: StyleConfig) -> FeatureFragment:
        fc = feature_config
        fields = self._block_fields(fc)
        jq_object = "{" + ", ".join(f'{name}: ({expr} // "")' for name, expr in fields) + "}"

        setup = USAGE_BLOCKS.render(
            timeout=fc.timeout,
            command=" ".join(USAGE_COMMAND),
            args=" ".join(USAGE_COMMAND[1:]),
        )
        query = QUERY.render(
            variables=[name for name, _ in fields],
            cache_file=self.runtime_cache_file("usage", usage_fields(USAGE_COMMAND)),
            ttl=fc.ttl,
            grace=fc.grace,
            jq_object=jq_object,
        )
        helpers = ["run_bounded", "cache_lookup"]
        if fc.show_session:
            query += "\n" + SESSION.render(
                compact=fc.compact,
                progress_bar=fc.show_progress_bar,
                colors=style.colors,
            )
            helpers += ["to_epoch", "fmt_time_hm"]
            if fc.show_progress_bar:
                helpers.append("progress_bar")
        if fc.show_alerts:
            helpers.append("num_above")

        return FeatureFragment(
            name=self.name,
            setup=setup,
            query=query,
            display="\n".join(self._displays(fc, style)),
            helpers=tuple(helpers),
        )

    def _displays(self, fc: UsageConfig, style: StyleConfig) -> list[str]:
        blocks = []
        if fc.show_session:
            body = segment(
                style,
                "$session_state_clr",
                style.label("⌛", "session:"),
                "%s",
                '"$session_text"',
            )
            if fc.show_progress_bar:
                body += "\n" + segment(
                    style,
                    "$session_state_clr",
                    " [",
                    "%s]",
                    '"$session_bar"',
                    standalone=False,
                )
            blocks.append(_when('[ -n "$session_text" ]', body))

        if fc.show_cost:
            with_rate = segment(
                style,
                "cost_clr",
                style.label("💵", "$"),
                "$%.2f ($%.2f/h)",
                '"$cost_usd" "$cost_per_hour"',
            )
            plain = segment(style, "cost_clr", style.label("💵", "$"), "$%.2f", '"$cost_usd"')
            blocks.append(
                _when(
                    "[[ $cost_usd =~ ^[0-9.]+$ ]]",
                    "\n".join(
                        [
                            "if [[ $cost_per_hour =~ ^[0-9.]+$ ]]; then",
                            indent(with_rate),
                            "else",
                            indent(plain),
                            "fi",
                        ]
                    ),
                )
            )

        if fc.show_tokens:
            plain = segment(style, "usage_clr", style.label("📊", "tok:"), "%s tok", '"$total_tokens"')
            if fc.show_burn_rate:
                with_rate = segment(
                    style,
                    "usage_clr",
                    style.label("📊", "tok:"),
                    "%s tok (%.0f/min)",
                    '"$total_tokens" "$tokens_per_minute"',
                )
                body = "\n".join(
                    [
                        "if [[ $tokens_per_minute =~ ^[0-9.]+$ ]]; then",
                        indent(with_rate),
                        "else",
                        indent(plain),
                        "fi",
                    ]
                )
            else:
                body = plain
            blocks.append(_when("[[ $total_tokens =~ ^[0-9]+$ ]]", body))

        if fc.show_cache:
            body = "\n".join(
                [
                    "cache_share=$((cache_read_tokens * 100 / (input_tokens + cache_read_tokens)))",
                    segment(style, "ok_clr", style.label("♻️", "cache:"), "%s%%", '"$cache_share"'),
                ]
            )
            blocks.append(
                _when(
                    "[[ $input_tokens =~ ^[0-9]+$ ]] && [[ $cache_read_tokens =~ ^[0-9]+$ ]]"
                    " && [ $((input_tokens + cache_read_tokens)) -gt 0 ]",
                    body,
                )
            )

        if fc.show_projections:
            label = style.label("📈", "proj:")
            with_minutes = segment(
                style,
                "usage_clr",
                label,
                "$%.2f (%sm left)",
                '"$projected_cost" "${projected_minutes%.*}"',
            )
            plain = segment(style, "usage_clr", label, "$%.2f", '"$projected_cost"')
            blocks.append(
                _when(
                    "[[ $projected_cost =~ ^[0-9.]+$ ]]",
                    "\n".join(
                        [
                            "if [[ $projected_minutes =~ ^[0-9.]+$ ]]; then",
                            indent(with_minutes),
                            "else",
                            indent(plain),
                            "fi",
                        ]
                    ),
                )
            )

        if fc.show_alerts:
            blocks.append(
                _when(
                    f'[[ $cost_per_hour =~ ^[0-9.]+$ ]] && num_above "$cost_per_hour" {fc.cost_warning}',
                    segment(
                        style,
                        "alert_clr",
                        style.label("🔥", "alert:"),
                        "burn $%.2f/h",
                        '"$cost_per_hour"',
                    ),
                )
            )
        return blocks


def _when(condition: str, body: str) -> str:
    return "\n".join([f"if {condition}; then", indent(body), "fi"])
