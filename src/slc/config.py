"""Configuration parsing for statusline.yaml and compiler settings"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ValidationError

from slc.exceptions import ConfigError

log = logging.getLogger(__name__)


# =============================================================================
# Status line configuration
# =============================================================================


class SystemMonitoring(BaseModel):
    """System metric refresh and alert thresholds"""

    refresh_rate: int = 3  # seconds between metric collections
    cpu_threshold: int = 80  # percent
    memory_threshold: int = 85  # percent
    load_threshold: float = 2.0  # 1-minute load average

    model_config = {"frozen": True, "extra": "forbid"}


class StatuslineConfig(BaseModel):
    """Declarative status line configuration.

    ``features`` is a set: ordering and duplicates in the input list never
    affect the generated script.
    """

    features: frozenset[str] = frozenset({"directory", "git", "model"})
    theme: Literal["minimal", "detailed", "compact"] = "detailed"
    colors: bool = True
    custom_emojis: bool = False
    usage_integration: bool = False  # ccusage
    logging: bool = False
    system_monitoring: SystemMonitoring | None = None

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def monitoring(self) -> SystemMonitoring:
        """System monitoring settings, falling back to defaults"""
        return self.system_monitoring or SystemMonitoring()

    @classmethod
    def load(cls, path: Path) -> "StatuslineConfig":
        """Load config from yaml file"""
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(str(path), f"invalid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(str(path), "top level must be a mapping")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(path), str(e)) from e


# =============================================================================
# Compiler settings
# =============================================================================


class Settings(BaseModel):
    """Compiler tunables.

    Every TTL and grace window is in seconds. ``min_interval`` is the
    rate limiter gap between two script invocations (0 disables it).
    """

    cache_dir: Path = Path.home() / ".claude" / "statusline"
    script_ttl: int = 86400
    script_grace: int = 604800
    lookup_ttl: int = 30
    lookup_grace: int = 300
    lookup_timeout: int = 3
    git_ttl: int = 5
    git_grace: int = 60
    min_interval: int = 0

    model_config = {"frozen": True, "extra": "forbid"}


ENV_PREFIX = "SLC_"


def resolve_settings(**overrides) -> Settings:
    """
    Resolve compiler settings.

    Priority (per field):
    1. Explicit keyword override
    2. SLC_<FIELD> environment variable (e.g. SLC_CACHE_DIR, SLC_LOOKUP_TTL)
    3. Settings default

    Returns:
        Resolved Settings
    """
    values = {}
    for name in Settings.model_fields:
        if overrides.get(name) is not None:
            values[name] = overrides[name]
            log.debug(f"Using explicit {name}: {overrides[name]}")
            continue

        env_value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if env_value:
            values[name] = env_value
            log.debug(f"Using {ENV_PREFIX}{name.upper()} from env: {env_value}")

    unknown = set(overrides) - set(Settings.model_fields)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    settings = Settings.model_validate(values)
    if "cache_dir" in values:
        settings = settings.model_copy(
            update={"cache_dir": Path(settings.cache_dir).expanduser()}
        )
    return settings
