"""Color bootstrap and theme palettes."""

from __future__ import annotations

from slc.features.base import StyleConfig
from slc.templating import ShellTemplate

BASIC = {
    "red": "31",
    "green": "32",
    "yellow": "33",
    "blue": "34",
    "magenta": "35",
    "cyan": "36",
    "bright_red": "1;31",
    "bright_green": "1;32",
    "bright_yellow": "1;33",
    "bright_blue": "1;34",
    "bright_magenta": "1;35",
    "bright_cyan": "1;36",
    "bright_white": "1;37",
}

THEME_PALETTES = {
    "minimal": {
        "dir_clr": BASIC["cyan"],
        "git_clr": BASIC["green"],
        "cost_clr": BASIC["green"],
        "model_clr": BASIC["magenta"],
        "ver_clr": BASIC["yellow"],
        "usage_clr": BASIC["yellow"],
        "session_clr": BASIC["blue"],
    },
    "detailed": {
        "dir_clr": BASIC["bright_cyan"],
        "git_clr": BASIC["bright_green"],
        "cost_clr": BASIC["bright_green"],
        "model_clr": BASIC["bright_magenta"],
        "ver_clr": BASIC["bright_yellow"],
        "usage_clr": BASIC["bright_yellow"],
        "session_clr": BASIC["bright_blue"],
    },
    "compact": {
        "dir_clr": BASIC["cyan"],
        "git_clr": BASIC["green"],
        "cost_clr": BASIC["green"],
        "model_clr": BASIC["blue"],
        "ver_clr": BASIC["yellow"],
        "usage_clr": BASIC["yellow"],
        "session_clr": BASIC["red"],
    },
}

# Same in every theme
STATUS_COLORS = {
    "ok_clr": BASIC["green"],
    "warn_clr": BASIC["yellow"],
    "alert_clr": BASIC["bright_red"],
    "sys_clr": BASIC["bright_white"],
}

COLOR_BOOTSTRAP = """\
# ---- color helpers ----
use_color_flag=1
if [ -n "$NO_COLOR" ]; then use_color_flag=0; fi
if [ -n "$FORCE_COLOR" ]; then use_color_flag=1; fi
if [ "$TERM" = "dumb" ] && [ -z "$FORCE_COLOR" ]; then use_color_flag=0; fi
C() { if [ "$use_color_flag" -eq 1 ]; then printf '\\033[%sm' "$1"; fi; }
RST() { if [ "$use_color_flag" -eq 1 ]; then printf '\\033[0m'; fi; }"""

PALETTE = ShellTemplate(
    "palette",
    """\
# ---- {{ theme }} palette ----
{% for name, code in colors %}
{{ name }}() { C '{{ code }}'; }
{% endfor %}
rst() { RST; }""",
)


def palette(theme: str) -> dict[str, str]:
    return {**THEME_PALETTES[theme], **STATUS_COLORS}


def encode_colors(style: StyleConfig) -> str:
    """Color bootstrap plus the theme palette.

    Nothing is emitted when colors are disabled; display segments then skip
    the palette calls entirely.
    """
    if not style.colors:
        return ""
    colors = sorted(palette(style.theme).items())
    return COLOR_BOOTSTRAP + "\n\n" + PALETTE.render(theme=style.theme, colors=colors)
