"""Feature encoder base class and shared rendering helpers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from slc.cache.manager import CacheManager
from slc.compiler.spec import FeatureFragment
from slc.config import Settings, StatuslineConfig
from slc.templating import ShellTemplate, shell_path


@dataclass(frozen=True)
class StyleConfig:
    """Presentation options shared by all encoders."""

    colors: bool = True
    emojis: bool = True
    theme: str = "detailed"

    @classmethod
    def from_config(cls, config: StatuslineConfig) -> "StyleConfig":
        return cls(
            colors=config.colors,
            emojis=config.colors and not config.custom_emojis,
            theme=config.theme,
        )

    def label(self, emoji: str, text: str) -> str:
        """Segment prefix: the emoji when enabled, the text label otherwise."""
        return f"{emoji} " if self.emojis else f"{text} "


SEGMENT = ShellTemplate(
    "segment",
    """\
{% if standalone %}
segment_sep
{% endif %}
{% if colors %}
printf '{{ label }}%s{{ fmt }}%s' "$({{ clr }})" {{ args }} "$(rst)"
{% else %}
printf '{{ label }}{{ fmt }}' {{ args }}
{% endif %}
{% if standalone %}
content_displayed=1
{% endif %}""",
)


def segment(
    style: StyleConfig,
    clr: str,
    label: str,
    fmt: str,
    args: str,
    standalone: bool = True,
) -> str:
    """Render one printf segment.

    Args:
        style: Active style.
        clr: Palette function name, e.g. "dir_clr", or a ``$var`` holding one.
        label: Literal prefix, already resolved via ``StyleConfig.label``.
        fmt: printf format for the value(s).
        args: Quoted shell arguments for ``fmt``.
        standalone: Emit the separator and mark content as displayed. Inline
            parts that extend the previous segment pass False.
    """
    return SEGMENT.render(
        colors=style.colors,
        clr=clr,
        label=label,
        fmt=fmt,
        args=args,
        standalone=standalone,
    ).strip("\n")


def indent(text: str, prefix: str = "  ") -> str:
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


class FeatureEncoder(ABC):
    """Turns one feature's configuration into a shell fragment.

    Encoders share the process-wide CacheManager so runtime lookups key their
    cache files the same way the compiler keys its own entries.
    """

    name: str = ""
    features: frozenset[str] = frozenset()

    def __init__(self, cache: CacheManager, settings: Settings):
        self.cache = cache
        self.settings = settings

    @property
    def cache_dir(self) -> str:
        """The cache directory as emitted into the script."""
        return shell_path(self.settings.cache_dir)

    def runtime_cache_file(self, domain: str, fields: Any) -> str:
        return f"{self.cache_dir}/{self.cache.key(domain, fields)}"

    @abstractmethod
    def configure(self, config: StatuslineConfig) -> Optional[Any]:
        """Extract this encoder's sub-config, or None when it is disabled."""

    @abstractmethod
    def encode(self, feature_config: Any, style: StyleConfig) -> FeatureFragment:
        """Produce the fragment. Must be pure for equal inputs."""
