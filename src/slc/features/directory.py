"""Working directory segment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from slc.compiler.spec import FeatureFragment, JqField
from slc.config import StatuslineConfig
from slc.features.base import FeatureEncoder, StyleConfig, indent, segment


@dataclass(frozen=True)
class DirectoryConfig:
    pass


class DirectoryEncoder(FeatureEncoder):
    name = "directory"
    features = frozenset({"directory"})

    def configure(self, config: StatuslineConfig) -> Optional[DirectoryConfig]:
        if "directory" not in config.features:
            return None
        return DirectoryConfig()

    def encode(self, feature_config: DirectoryConfig, style: StyleConfig) -> FeatureFragment:
        query = (
            'current_dir=$(echo "$current_directory_path" | sed "s|^$HOME|~|g")'
        )
        display = "\n".join(
            [
                'if [ -n "$current_dir" ]; then',
                indent(
                    segment(
                        style,
                        "dir_clr",
                        style.label("📁", "dir:"),
                        "%s",
                        '"$current_dir"',
                    )
                ),
                "fi",
            ]
        )
        return FeatureFragment(
            name=self.name,
            query="# directory\n" + query,
            display=display,
            input_fields=(
                JqField(
                    "current_directory_path",
                    '.workspace.current_dir // .cwd // "unknown"',
                    "unknown",
                ),
            ),
        )
