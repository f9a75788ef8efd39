"""Feature encoders, in canonical emission order."""

from slc.features.base import FeatureEncoder, StyleConfig
from slc.features.directory import DirectoryEncoder
from slc.features.git import GitEncoder
from slc.features.model import ModelEncoder
from slc.features.system import SystemEncoder
from slc.features.usage import UsageEncoder

# Emission order is fixed here, never by the order of the configured list.
ENCODERS = (DirectoryEncoder, GitEncoder, ModelEncoder, SystemEncoder, UsageEncoder)

FEATURE_PRIORITY = (
    "directory",
    "git",
    "model",
    "cpu",
    "memory",
    "load",
    "usage",
    "session",
    "tokens",
    "burnrate",
    "cache",
    "projections",
    "alerts",
)


def ordered_features(features) -> list[str]:
    """Known features in priority order; unknown identifiers are dropped."""
    return [f for f in FEATURE_PRIORITY if f in features]


__all__ = [
    "ENCODERS",
    "FEATURE_PRIORITY",
    "FeatureEncoder",
    "StyleConfig",
    "ordered_features",
]
