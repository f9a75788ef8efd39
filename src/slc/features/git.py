"""Git branch segment, cached per working directory."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from slc.cache.keys import git_fields
from slc.compiler.spec import FeatureFragment
from slc.config import StatuslineConfig
from slc.features.base import FeatureEncoder, StyleConfig, indent, segment
from slc.templating import ShellTemplate

BRANCH_COMMAND = ("git", "rev-parse", "--abbrev-ref", "HEAD")

GIT_QUERY = ShellTemplate(
    "git_query",
    """\
# git
git_branch_name=""
is_git_repository=0
if [ "$(command -v git)" ] && run_bounded {{ timeout }} git rev-parse --git-dir >/dev/null 2>&1; then
  is_git_repository=1
fi
if [ "$is_git_repository" -eq 1 ]; then
  git_cache_file="{{ cache_file }}_${PWD//\\//_}"
  git_branch_name=$(cache_lookup "$git_cache_file" {{ ttl }} {{ grace }} run_bounded {{ timeout }} {{ command }})
fi""",
)


@dataclass(frozen=True)
class GitConfig:
    ttl: int
    grace: int
    timeout: int


class GitEncoder(FeatureEncoder):
    name = "git"
    features = frozenset({"git"})

    def configure(self, config: StatuslineConfig) -> Optional[GitConfig]:
        if "git" not in config.features:
            return None
        return GitConfig(
            ttl=self.settings.git_ttl,
            grace=self.settings.git_grace,
            timeout=self.settings.lookup_timeout,
        )

    def encode(self, feature_config: GitConfig, style: StyleConfig) -> FeatureFragment:
        query = GIT_QUERY.render(
            cache_file=self.runtime_cache_file("git", git_fields(BRANCH_COMMAND)),
            ttl=feature_config.ttl,
            grace=feature_config.grace,
            timeout=feature_config.timeout,
            command=" ".join(BRANCH_COMMAND),
        )
        display = "\n".join(
            [
                'if [ -n "$git_branch_name" ]; then',
                indent(
                    segment(
                        style,
                        "git_clr",
                        style.label("🌿", "git:"),
                        "%s",
                        '"$git_branch_name"',
                    )
                ),
                "fi",
            ]
        )
        return FeatureFragment(
            name=self.name,
            query=query,
            display=display,
            helpers=("run_bounded", "cache_lookup"),
        )
