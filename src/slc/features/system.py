"""CPU, memory and load segments.

Metrics come from a collector function whose output is a list of shell
assignments. The output is cached with the monitoring refresh rate as TTL and
``eval``'d by the script.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from slc.cache.keys import system_fields
from slc.compiler.spec import FeatureFragment
from slc.config import StatuslineConfig
from slc.features.base import FeatureEncoder, StyleConfig, indent, segment
from slc.templating import ShellTemplate

COLLECTOR = ShellTemplate(
    "collect_system_metrics",
    """\
collect_system_metrics() {
  local platform cpu_percent=0 mem_used_gb=0 mem_total_gb=0 mem_percent=0
  local load_1min=0 load_5min=0 load_15min=0
  platform=$(uname -s 2>/dev/null)
  case "$platform" in
    Linux*)
{% if show_cpu %}
      if [ -r /proc/stat ]; then
        local cpu_times active total
        read -r -a cpu_times < /proc/stat
        if [ "${#cpu_times[@]}" -ge 8 ]; then
          active=$((cpu_times[1] + cpu_times[2] + cpu_times[3] + cpu_times[6] + cpu_times[7] + ${cpu_times[8]:-0}))
          total=$((active + cpu_times[4] + cpu_times[5]))
          if [ "$total" -gt 0 ]; then cpu_percent=$((active * 100 / total)); fi
        fi
      fi
{% endif %}
{% if show_memory %}
      if [ -r /proc/meminfo ]; then
        eval "$(awk '/^MemTotal:/ { t = $2 } /^MemAvailable:/ { a = $2 } END { if (t > 0) { u = t - a; printf "mem_used_gb=%d mem_total_gb=%d mem_percent=%d", (u + 524288) / 1048576, (t + 524288) / 1048576, u * 100 / t } }' /proc/meminfo 2>/dev/null)"
      fi
{% endif %}
{% if show_load %}
      if [ -r /proc/loadavg ]; then
        read -r load_1min load_5min load_15min _ < /proc/loadavg
      fi
{% endif %}
      ;;
    Darwin*)
{% if show_cpu %}
      cpu_percent=$(ps -A -o %cpu= 2>/dev/null | awk -v n="$(sysctl -n hw.ncpu 2>/dev/null || echo 1)" '{ s += $1 } END { if (n < 1) n = 1; p = s / n; if (p > 100) p = 100; printf "%d", p }')
{% endif %}
{% if show_memory %}
      local mem_bytes page_size pages_used
      mem_bytes=$(sysctl -n hw.memsize 2>/dev/null || echo 0)
      page_size=$(sysctl -n hw.pagesize 2>/dev/null || echo 4096)
      pages_used=$(vm_stat 2>/dev/null | awk '/Pages active/ { a = $3 } /Pages wired down/ { w = $4 } /occupied by compressor/ { c = $5 } END { printf "%d", a + w + c }')
      if [ "${mem_bytes:-0}" -gt 0 ]; then
        mem_total_gb=$((mem_bytes / 1073741824))
        mem_used_gb=$((pages_used * page_size / 1073741824))
        mem_percent=$((pages_used * page_size * 100 / mem_bytes))
      fi
{% endif %}
{% if show_load %}
      local load_avg
      load_avg=($(sysctl -n vm.loadavg 2>/dev/null))
      if [ "${#load_avg[@]}" -ge 4 ]; then
        load_1min=${load_avg[1]}
        load_5min=${load_avg[2]}
        load_15min=${load_avg[3]}
      fi
{% endif %}
      ;;
    *)
{% if show_load %}
      local up
      up=$(uptime 2>/dev/null)
      if [[ $up =~ load[[:space:]]+averages?:[[:space:]]+([0-9.]+),?[[:space:]]+([0-9.]+),?[[:space:]]+([0-9.]+) ]]; then
        load_1min=${BASH_REMATCH[1]}
        load_5min=${BASH_REMATCH[2]}
        load_15min=${BASH_REMATCH[3]}
      fi
{% endif %}
      :
      ;;
  esac
{% if show_cpu %}
  printf 'cpu_percent=%d\\n' "$cpu_percent"
{% endif %}
{% if show_memory %}
  printf 'mem_used_gb=%d\\nmem_total_gb=%d\\nmem_percent=%d\\n' "$mem_used_gb" "$mem_total_gb" "$mem_percent"
{% endif %}
{% if show_load %}
  printf 'load_1min=%s\\nload_5min=%s\\nload_15min=%s\\n' "$load_1min" "$load_5min" "$load_15min"
{% endif %}
}""",
)

QUERY = ShellTemplate(
    "system_query",
    """\
# system metrics
cpu_percent=0 mem_used_gb=0 mem_total_gb=0 mem_percent=0
load_1min=0 load_5min=0 load_15min=0
sys_cache_file="{{ cache_file }}"
system_metrics=$(cache_lookup "$sys_cache_file" {{ ttl }} {{ grace }} collect_system_metrics)
if [ -n "$system_metrics" ]; then eval "$system_metrics"; fi""",
)

LEVEL = ShellTemplate(
    "threshold_color",
    """\
{{ var }}=ok_clr
if num_above "${{ value }}" {{ threshold }}; then
  {{ var }}=alert_clr
elif num_above "${{ value }}" {{ warning }}; then
  {{ var }}=warn_clr
fi""",
)

TREND = """\
load_trend="→"
if num_above "$load_1min" "$load_5min"; then
  load_trend="↗"
elif num_above "$load_5min" "$load_1min"; then
  load_trend="↘"
fi"""


@dataclass(frozen=True)
class SystemConfig:
    show_cpu: bool
    show_memory: bool
    show_load: bool
    refresh_rate: int
    cpu_threshold: int
    memory_threshold: int
    load_threshold: float
    compact: bool


class SystemEncoder(FeatureEncoder):
    name = "system"
    features = frozenset({"cpu", "memory", "load"})

    def configure(self, config: StatuslineConfig) -> Optional[SystemConfig]:
        if not self.features & config.features:
            return None
        monitoring = config.monitoring
        return SystemConfig(
            show_cpu="cpu" in config.features,
            show_memory="memory" in config.features,
            show_load="load" in config.features,
            refresh_rate=monitoring.refresh_rate,
            cpu_threshold=monitoring.cpu_threshold,
            memory_threshold=monitoring.memory_threshold,
            load_threshold=monitoring.load_threshold,
            compact=config.theme == "compact",
        )

    def encode(self, feature_config: SystemConfig, style: StyleConfig) -> FeatureFragment:
        fc = feature_config
        setup = "# ---- system metrics ----\n" + COLLECTOR.render(
            show_cpu=fc.show_cpu, show_memory=fc.show_memory, show_load=fc.show_load
        )
        query = QUERY.render(
            cache_file=self.runtime_cache_file(
                "system", system_fields(fc.show_cpu, fc.show_memory, fc.show_load)
            ),
            ttl=fc.refresh_rate,
            grace=max(self.settings.lookup_grace, fc.refresh_rate),
        )

        blocks = []
        if fc.show_cpu:
            blocks.append(
                self._block(
                    style,
                    'if [ -n "$cpu_percent" ] && [ "$cpu_percent" != "0" ]; then',
                    self._level(style, "cpu_clr", "cpu_percent", fc.cpu_threshold, max(fc.cpu_threshold - 30, 0)),
                    segment(style, "$cpu_clr", style.label("💻", "cpu:"), "%s%%", '"$cpu_percent"'),
                )
            )
        if fc.show_memory:
            fmt = "%sG/%sG" if fc.compact else "%sGB/%sGB (%s%%)"
            args = '"$mem_used_gb" "$mem_total_gb"'
            if not fc.compact:
                args += ' "$mem_percent"'
            blocks.append(
                self._block(
                    style,
                    'if [ "${mem_total_gb:-0}" -gt 0 ] 2>/dev/null; then',
                    self._level(style, "mem_clr", "mem_percent", fc.memory_threshold, max(fc.memory_threshold - 30, 0)),
                    segment(style, "$mem_clr", style.label("🧠", "ram:"), fmt, args),
                )
            )
        if fc.show_load:
            if fc.compact:
                pre = TREND
                seg = segment(style, "$load_clr", style.label("⚡", "load:"), "%s%s", '"$load_1min" "$load_trend"')
            else:
                pre = ""
                seg = segment(
                    style,
                    "$load_clr",
                    style.label("⚡", "load:"),
                    "%s/%s/%s",
                    '"$load_1min" "$load_5min" "$load_15min"',
                )
            level = self._level(style, "load_clr", "load_1min", fc.load_threshold, fc.load_threshold / 2)
            blocks.append(
                self._block(
                    style,
                    'if [ -n "$load_1min" ] && [ "$load_1min" != "0" ]; then',
                    "\n".join(p for p in (level, pre) if p),
                    seg,
                )
            )

        helpers = ["cache_lookup"]
        if style.colors or (fc.show_load and fc.compact):
            helpers.append("num_above")
        return FeatureFragment(
            name=self.name,
            setup=setup,
            query=query,
            display="\n".join(blocks),
            helpers=tuple(helpers),
        )

    @staticmethod
    def _level(style, var, value, threshold, warning) -> str:
        if not style.colors:
            return ""
        return LEVEL.render(var=var, value=value, threshold=threshold, warning=warning)

    @staticmethod
    def _block(style, condition, pre, seg) -> str:
        body = "\n".join(p for p in (pre, seg) if p)
        return "\n".join([condition, indent(body), "fi"])
