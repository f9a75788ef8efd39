"""Cache tiers, keys and the precomputed template table."""

from slc.cache.manager import CacheEntry, CacheManager, command_refresh
from slc.cache.templates import COMMON_CONFIGS, TemplateCache

__all__ = [
    "COMMON_CONFIGS",
    "CacheEntry",
    "CacheManager",
    "TemplateCache",
    "command_refresh",
]
