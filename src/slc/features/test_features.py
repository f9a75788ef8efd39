"""Tests for feature encoders."""

import pytest

from slc.cache.keys import git_fields, usage_fields
from slc.cache.manager import CacheManager
from slc.config import Settings, StatuslineConfig, SystemMonitoring
from slc.exceptions import GenerationError
from slc.features import ENCODERS, StyleConfig, ordered_features
from slc.features.colors import encode_colors
from slc.features.directory import DirectoryEncoder
from slc.features.git import BRANCH_COMMAND, GitEncoder
from slc.features.helpers import resolve_helpers
from slc.features.model import ModelEncoder
from slc.features.system import SystemEncoder
from slc.features.usage import USAGE_COMMAND, UsageEncoder

ALL_FEATURES = StatuslineConfig(
    features=[
        "directory", "git", "model", "cpu", "memory", "load",
        "usage", "session", "tokens", "burnrate", "cache", "projections", "alerts",
    ],
    usage_integration=True,
)

EMOJI = StyleConfig(colors=True, emojis=True, theme="detailed")
PLAIN = StyleConfig(colors=False, emojis=False, theme="detailed")


@pytest.fixture
def settings(tmp_path):
    return Settings(cache_dir=tmp_path / "cache")


def make(cls, settings):
    return cls(CacheManager(settings.cache_dir), settings)


def fragment(cls, settings, config, style=EMOJI):
    encoder = make(cls, settings)
    return encoder.encode(encoder.configure(config), style)


def test_encoders_are_deterministic(settings):
    style = StyleConfig.from_config(ALL_FEATURES)
    for cls in ENCODERS:
        assert fragment(cls, settings, ALL_FEATURES, style) == fragment(
            cls, settings, ALL_FEATURES, style
        )


def test_disabled_encoders_configure_none(settings):
    config = StatuslineConfig(features=["directory"])
    assert make(DirectoryEncoder, settings).configure(config) is not None
    for cls in (GitEncoder, ModelEncoder, SystemEncoder, UsageEncoder):
        assert make(cls, settings).configure(config) is None


def test_unknown_features_are_dropped():
    assert ordered_features({"context", "git", "directory"}) == ["directory", "git"]


def test_style_from_config():
    assert StyleConfig.from_config(StatuslineConfig()).emojis is True
    assert StyleConfig.from_config(StatuslineConfig(custom_emojis=True)).emojis is False
    assert StyleConfig.from_config(StatuslineConfig(colors=False)).emojis is False


def test_directory_fragment(settings):
    frag = fragment(DirectoryEncoder, settings, ALL_FEATURES)
    assert frag.input_fields[0].name == "current_directory_path"
    assert ".workspace.current_dir" in frag.input_fields[0].expr
    assert 'sed "s|^$HOME|~|g"' in frag.query
    assert "📁" in frag.display
    assert "content_displayed=1" in frag.display


def test_text_labels_without_emojis(settings):
    frag = fragment(DirectoryEncoder, settings, ALL_FEATURES, PLAIN)
    assert "printf 'dir: %s' \"$current_dir\"" in frag.display
    assert "dir_clr" not in frag.display


def test_model_version_hidden_in_compact(settings):
    detailed = fragment(ModelEncoder, settings, StatuslineConfig(features=["model"]))
    compact = fragment(
        ModelEncoder, settings, StatuslineConfig(features=["model"], theme="compact")
    )
    assert "model_version" in detailed.display
    assert "model_version" not in compact.display
    assert [f.name for f in compact.input_fields] == ["model_name"]


def test_git_is_guarded_and_cached(settings):
    encoder = make(GitEncoder, settings)
    frag = encoder.encode(encoder.configure(ALL_FEATURES), EMOJI)
    assert '[ "$(command -v git)" ]' in frag.query
    assert "run_bounded 3 git rev-parse --abbrev-ref HEAD" in frag.query
    assert encoder.cache.key("git", git_fields(BRANCH_COMMAND)) in frag.query
    assert "cache_lookup \"$git_cache_file\" 5 60" in frag.query
    assert set(frag.helpers) == {"run_bounded", "cache_lookup"}


def test_system_collects_only_requested_metrics(settings):
    frag = fragment(SystemEncoder, settings, StatuslineConfig(features=["cpu"]))
    assert "/proc/stat" in frag.setup
    assert "/proc/meminfo" not in frag.setup
    assert "load_1min=%s" not in frag.setup
    assert "💻" in frag.display
    assert "🧠" not in frag.display


def test_system_thresholds_and_refresh_rate(settings):
    config = StatuslineConfig(
        features=["cpu", "load"],
        system_monitoring=SystemMonitoring(refresh_rate=5, cpu_threshold=90, load_threshold=4.0),
    )
    frag = fragment(SystemEncoder, settings, config)
    assert 'num_above "$cpu_percent" 90' in frag.display
    assert 'num_above "$cpu_percent" 60' in frag.display
    assert 'num_above "$load_1min" 4.0' in frag.display
    assert "5 300 collect_system_metrics" in frag.query


def test_system_compact_load_has_trend(settings):
    config = StatuslineConfig(features=["load"], theme="compact", colors=False)
    frag = fragment(SystemEncoder, settings, config, PLAIN)
    assert "load_trend" in frag.display
    assert "num_above" in frag.helpers


def test_usage_requires_integration(settings):
    encoder = make(UsageEncoder, settings)
    assert encoder.configure(StatuslineConfig(features=["usage"])) is None
    assert encoder.configure(
        StatuslineConfig(features=["usage"], usage_integration=True)
    ) is not None


def test_usage_extracts_only_enabled_fields(settings):
    config = StatuslineConfig(features=["usage"], usage_integration=True)
    frag = fragment(UsageEncoder, settings, config)
    assert 'cost_usd: (.costUSD // "")' in frag.query
    assert "total_tokens" not in frag.query
    assert "@sh" in frag.query
    assert "💵" in frag.display


def test_usage_lookup_is_cached_and_bounded(settings):
    encoder = make(UsageEncoder, settings)
    config = StatuslineConfig(features=["usage"], usage_integration=True)
    frag = encoder.encode(encoder.configure(config), EMOJI)
    assert "run_bounded 3 ccusage blocks --json" in frag.setup
    assert "npx --yes ccusage@latest blocks --json" in frag.setup
    assert encoder.cache.key("usage", usage_fields(USAGE_COMMAND)) in frag.query
    assert "30 300 usage_blocks" in frag.query


def test_usage_session_progress_bar(settings):
    detailed = fragment(
        UsageEncoder,
        settings,
        StatuslineConfig(features=["session"], usage_integration=True),
    )
    minimal = fragment(
        UsageEncoder,
        settings,
        StatuslineConfig(features=["session"], usage_integration=True, theme="minimal"),
    )
    assert "progress_bar" in detailed.helpers
    assert "session_bar" in detailed.display
    assert "progress_bar" not in minimal.helpers


def test_usage_alert_threshold(settings):
    frag = fragment(
        UsageEncoder,
        settings,
        StatuslineConfig(features=["alerts"], usage_integration=True),
    )
    assert 'num_above "$cost_per_hour" 15.0' in frag.display


def test_helper_closure_in_order():
    names = [h.name for h in resolve_helpers(["progress_bar", "cache_lookup"])]
    assert names == ["debug_log", "cache_lookup", "progress_bar"]


def test_unknown_helper_raises():
    with pytest.raises(GenerationError):
        resolve_helpers(["nope"])


def test_color_palette():
    code = encode_colors(StyleConfig(colors=True, theme="detailed"))
    assert "dir_clr() { C '1;36'; }" in code
    assert "NO_COLOR" in code
    assert "dir_clr() { C '36'; }" in encode_colors(StyleConfig(theme="minimal"))
    assert encode_colors(PLAIN) == ""


def test_usage_projections_show_minutes(settings):
    frag = fragment(
        UsageEncoder,
        settings,
        StatuslineConfig(features=["projections"], usage_integration=True),
    )
    assert "projected_minutes: (.projection.remainingMinutes" in frag.query
    assert '"${projected_minutes%.*}"' in frag.display
    assert "cost_usd" not in frag.query
