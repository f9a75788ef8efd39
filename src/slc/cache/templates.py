"""TemplateCache - precomputed scripts for the most common configurations.

Matching is plain value equality against a fixed table; the stored text is
whatever the full pipeline produced for that config, so the two can never
drift apart.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping, Optional

from slc.cache.manager import CacheManager
from slc.config import Settings, StatuslineConfig

log = logging.getLogger(__name__)

COMMON_CONFIGS: Mapping[str, StatuslineConfig] = {
    "default": StatuslineConfig(),
    "minimal": StatuslineConfig(features={"directory", "git"}, theme="minimal"),
    "plain": StatuslineConfig(features={"directory", "git", "model"}, colors=False),
    "usage": StatuslineConfig(
        features={"directory", "git", "model", "usage", "session"},
        usage_integration=True,
    ),
}


class TemplateCache:
    """Exact-match table in front of the compile pipeline."""

    def __init__(
        self,
        cache: CacheManager,
        settings: Settings,
        key: Callable[[StatuslineConfig], str],
        table: Optional[Mapping[str, StatuslineConfig]] = None,
    ):
        self.cache = cache
        self.settings = settings
        self._key = key
        self.table = dict(COMMON_CONFIGS if table is None else table)
        self._texts: Dict[str, str] = {}

    def match(self, config: StatuslineConfig) -> Optional[str]:
        """Name of the table entry equal to ``config``, if any."""
        for name, common in self.table.items():
            if common == config:
                return name
        return None

    def key(self, config: StatuslineConfig) -> str:
        return self._key(config)

    def lookup(self, config: StatuslineConfig) -> Optional[str]:
        name = self.match(config)
        if name is None:
            return None
        if name in self._texts:
            return self._texts[name]
        entry = self.cache.read_entry(self.key(config))
        if entry is None or self.cache.age(entry) > self.settings.script_ttl:
            return None
        log.debug(f"Template '{name}' loaded from {self.cache.path_for(entry.key)}")
        self._texts[name] = entry.value
        return entry.value

    def remember(self, config: StatuslineConfig, text: str) -> bool:
        """Keep ``text`` in memory if ``config`` is in the table."""
        name = self.match(config)
        if name is None:
            return False
        self._texts[name] = text
        return True

    def store(self, config: StatuslineConfig, text: str) -> bool:
        """Remember ``text`` and write it to the file tier."""
        if not self.remember(config, text):
            return False
        self.cache.set(self.key(config), text, ttl=self.settings.script_ttl)
        return True

    def precompute(
        self, compile_fn: Callable[[StatuslineConfig], str]
    ) -> Dict[str, str]:
        """Fill every table entry by running ``compile_fn``."""
        for name, config in self.table.items():
            self.store(config, compile_fn(config))
            log.info(f"Precomputed template '{name}'")
        return dict(self._texts)

    def __len__(self) -> int:
        return len(self.table)
