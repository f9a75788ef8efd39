"""Shared shell helpers.

Fragments name the helpers they call; the assembler emits the dependency
closure once, in HELPER_ORDER, so a helper is always defined before anything
that calls it.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from slc.exceptions import GenerationError


@dataclass(frozen=True)
class ShellHelper:
    name: str
    body: str
    dependencies: Tuple[str, ...] = field(default_factory=tuple)


DEBUG_LOG = ShellHelper(
    "debug_log",
    """\
debug_log() {
  if [ -n "$SLC_DEBUG" ]; then printf 'slc: %s\\n' "$*" >&2; fi
}""",
)

RUN_BOUNDED = ShellHelper(
    "run_bounded",
    """\
run_bounded() {
  local secs="$1"
  shift
  if declare -F "$1" >/dev/null 2>&1; then
    "$@"
  elif [ "$(command -v timeout)" ]; then
    timeout "$secs" "$@"
  else
    "$@"
  fi
}""",
)

# cache_lookup FILE TTL GRACE cmd...
#   fresh file        -> print it
#   refresh succeeds  -> write atomically, print the new value
#   refresh fails     -> print the stale file while within GRACE
#   otherwise         -> return 1
CACHE_LOOKUP = ShellHelper(
    "cache_lookup",
    """\
cache_lookup() {
  local f="$1" ttl="$2" grace="$3" now age mtime out
  shift 3
  now=$(date +%s)
  age=$((grace + 1))
  if [ -f "$f" ]; then
    mtime=$(stat -c %Y "$f" 2>/dev/null || stat -f %m "$f" 2>/dev/null || echo 0)
    age=$((now - mtime))
  fi
  if [ "$age" -le "$ttl" ]; then
    cat "$f" 2>/dev/null && return 0
  fi
  if out=$("$@" 2>/dev/null) && [ -n "$out" ]; then
    mkdir -p "${f%/*}" 2>/dev/null
    { printf '%s\\n' "$out" > "$f.$$" && mv -f "$f.$$" "$f"; } 2>/dev/null
    printf '%s\\n' "$out"
    return 0
  fi
  if [ "$age" -le "$grace" ]; then
    debug_log "serving stale ${f##*/} (age ${age}s)"
    cat "$f" 2>/dev/null && return 0
  fi
  return 1
}""",
    ("debug_log",),
)

NUM_ABOVE = ShellHelper(
    "num_above",
    """\
num_above() {
  awk -v a="$1" -v b="$2" 'BEGIN { exit !(a + 0 > b + 0) }'
}""",
)

TO_EPOCH = ShellHelper(
    "to_epoch",
    """\
to_epoch() {
  local ts="$1" bsd_ts
  date -d "$ts" +%s 2>/dev/null && return 0
  # BSD date: Z as +0000, fractional seconds dropped
  bsd_ts="${ts/Z/+0000}"
  bsd_ts="${bsd_ts/.*+/+}"
  date -u -j -f '%Y-%m-%dT%H:%M:%S%z' "$bsd_ts" +%s 2>/dev/null && return 0
  if [ "$(command -v python3)" ]; then
    python3 - "$ts" <<'PY' 2>/dev/null && return 0
import sys, datetime
print(int(datetime.datetime.fromisoformat(sys.argv[1].replace("Z", "+00:00")).timestamp()))
PY
  fi
  return 1
}""",
)

FMT_TIME_HM = ShellHelper(
    "fmt_time_hm",
    """\
fmt_time_hm() {
  local s="${1:-0}"
  if [ "$s" -lt 0 ]; then s=0; fi
  printf '%dh %dm' $((s / 3600)) $(((s % 3600) / 60))
}""",
)

PROGRESS_BAR = ShellHelper(
    "progress_bar",
    """\
progress_bar() {
  local p="${1:-0}" width="${2:-10}" filled empty
  if [ "$p" -lt 0 ]; then p=0; fi
  if [ "$p" -gt 100 ]; then p=100; fi
  filled=$((p * width / 100))
  empty=$((width - filled))
  printf '%*s' "$filled" '' | tr ' ' '='
  printf '%*s' "$empty" '' | tr ' ' '-'
}""",
)

HELPERS = {
    h.name: h
    for h in (
        DEBUG_LOG,
        RUN_BOUNDED,
        CACHE_LOOKUP,
        NUM_ABOVE,
        TO_EPOCH,
        FMT_TIME_HM,
        PROGRESS_BAR,
    )
}

# Emission order: dependencies before dependents.
HELPER_ORDER = tuple(HELPERS)


def resolve_helpers(names: Iterable[str]) -> List[ShellHelper]:
    """Return the dependency closure of ``names`` in emission order."""
    seen: set[str] = set()
    queue = deque(names)
    while queue:
        name = queue.popleft()
        if name in seen:
            continue
        if name not in HELPERS:
            raise GenerationError(f"unknown shell helper '{name}'")
        seen.add(name)
        queue.extend(HELPERS[name].dependencies)
    return [HELPERS[name] for name in HELPER_ORDER if name in seen]
