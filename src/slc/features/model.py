"""Model name and version segment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from slc.compiler.spec import FeatureFragment, JqField
from slc.config import StatuslineConfig
from slc.features.base import FeatureEncoder, StyleConfig, indent, segment


@dataclass(frozen=True)
class ModelConfig:
    show_version: bool = True


class ModelEncoder(FeatureEncoder):
    name = "model"
    features = frozenset({"model"})

    def configure(self, config: StatuslineConfig) -> Optional[ModelConfig]:
        if "model" not in config.features:
            return None
        # compact theme drops the version to save width
        return ModelConfig(show_version=config.theme != "compact")

    def encode(self, feature_config: ModelConfig, style: StyleConfig) -> FeatureFragment:
        fields = [JqField("model_name", '.model.display_name // "Claude"', "Claude")]
        lines = [
            'if [ -n "$model_name" ]; then',
            indent(
                segment(
                    style,
                    "model_clr",
                    style.label("🤖", "model:"),
                    "%s",
                    '"$model_name"',
                )
            ),
        ]
        if feature_config.show_version:
            fields.append(JqField("model_version", '.model.version // ""'))
            lines += [
                '  if [ -n "$model_version" ]; then',
                indent(
                    segment(
                        style,
                        "ver_clr",
                        " v",
                        "%s",
                        '"$model_version"',
                        standalone=False,
                    ),
                    "    ",
                ),
                "  fi",
            ]
        lines.append("fi")
        return FeatureFragment(
            name=self.name,
            display="\n".join(lines),
            input_fields=tuple(fields),
        )
